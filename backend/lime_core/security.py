"""
Lime Core Backend — Token & Password Helpers
==============================================

What:  Signs/verifies session tokens and OAuth state tokens (python-jose,
       HS256) and hashes/verifies passwords (bcrypt).
Who:   AuthService issues tokens; `dependencies.get_current_user` decodes them.

Session token claims:
    sub    user id
    email  user email
    org    current organization id (tenant filter key), may be null
    typ    "access"
    iat / exp
"""

import secrets
import time
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from lime_core.config import settings
from lime_core.exceptions import AuthenticationError, ValidationError
from lime_core.schemas.auth import AuthenticatedUser

ACCESS_TOKEN_TYPE = "access"
OAUTH_STATE_TOKEN_TYPE = "oauth_state"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """False for provider-only accounts (no stored hash) and malformed hashes."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _encode(claims: Dict[str, Any], lifetime_seconds: int) -> str:
    now = int(time.time())
    payload = dict(claims, iat=now, exp=now + lifetime_seconds)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def access_token_lifetime() -> int:
    return settings.access_token_expire_minutes * 60


def create_access_token(
    user_id: str,
    email: str,
    organization_id: Optional[str],
) -> str:
    return _encode(
        {
            "sub": user_id,
            "email": email,
            "org": organization_id,
            "typ": ACCESS_TOKEN_TYPE,
        },
        access_token_lifetime(),
    )


def decode_access_token(token: str) -> AuthenticatedUser:
    """
    Verify signature and expiry, then build the request identity.

    Raises:
        AuthenticationError: bad signature, expired, wrong token type or
                             missing claims.
    """
    try:
        claims = _decode(token)
    except JWTError as e:
        raise AuthenticationError(
            message="Invalid or expired token",
            context={"error_type": type(e).__name__},
        )

    if claims.get("typ") != ACCESS_TOKEN_TYPE or not claims.get("sub") or not claims.get("email"):
        raise AuthenticationError(message="Invalid or expired token")

    return AuthenticatedUser(
        id=claims["sub"],
        email=claims["email"],
        current_organization_id=claims.get("org"),
    )


def new_oauth_nonce() -> str:
    return secrets.token_urlsafe(16)


def create_oauth_state(nonce: str) -> str:
    """Short-lived signed state for the provider round trip, bound to `nonce`."""
    return _encode(
        {"typ": OAUTH_STATE_TOKEN_TYPE, "nonce": nonce},
        settings.oauth_state_expire_seconds,
    )


def verify_oauth_state(state: Optional[str], nonce: Optional[str]) -> None:
    """
    Raises ValidationError unless `state` is one of ours, unexpired, and was
    issued for `nonce` (the value held in the browser's cookie).
    """
    if not state:
        raise ValidationError(message="Missing OAuth state", field="state")
    try:
        claims = _decode(state)
    except JWTError:
        raise ValidationError(message="Invalid or expired OAuth state", field="state")
    if claims.get("typ") != OAUTH_STATE_TOKEN_TYPE:
        raise ValidationError(message="Invalid or expired OAuth state", field="state")
    if not nonce or not isinstance(claims.get("nonce"), str):
        raise ValidationError(message="OAuth state was not issued to this browser", field="state")
    if not secrets.compare_digest(claims["nonce"].encode(), nonce.encode()):
        raise ValidationError(message="OAuth state was not issued to this browser", field="state")

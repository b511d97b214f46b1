"""
Lime Core Backend — Authentication Service
============================================

What:  Password authentication, the two-phase Google sign-in handshake, and
       session token issuance.
How:   Password check with bcrypt against `users.password_hash`; Google
       handshake split into `begin_handshake()` (returns the consent URL) and
       `complete_handshake()` (verifies state, exchanges the code, upserts the
       user, issues a session). Both phases return plain values or raise
       LimeError subclasses; the route decides how to present them.

Flow (Google):
    GET /auth/google            → begin_handshake()    → 302 to Google
    GET /auth/google/callback   → complete_handshake() → 302 to frontend
                                                          /login/success?token=...
    First sign-in provisions the user and a personal organization with an
    owner membership, so the issued token always carries a tenant.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lime_core.exceptions import LimeError, ValidationError
from lime_core.models.organization import Organization, OrganizationMember, User
from lime_core.schemas.auth import AuthData, AuthRequest, UserResponse
from lime_core.security import (
    access_token_lifetime,
    create_access_token,
    create_oauth_state,
    verify_oauth_state,
    verify_password,
)
from lime_core.services.identity_provider import GoogleIdentityProvider

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AuthService:
    """Authentication operations for one request's database session."""

    def __init__(
        self,
        db: AsyncSession,
        identity_provider: Optional[GoogleIdentityProvider] = None,
    ):
        self.db = db
        self.identity_provider = identity_provider or GoogleIdentityProvider()

    def _issue(self, user: User) -> AuthData:
        token = create_access_token(
            user_id=user.id,
            email=user.email,
            organization_id=user.current_organization_id,
        )
        return AuthData(
            access_token=token,
            expires_in=access_token_lifetime(),
            user=UserResponse.model_validate(user),
        )

    async def authenticate(self, request: AuthRequest) -> AuthData:
        """
        Exchange email + password for a session.

        Raises:
            ValidationError: unknown email, wrong password, disabled or
                             provider-only account (→ 400). The message is the
                             same for all of them.
        """
        try:
            result = await self.db.execute(select(User).where(User.email == request.email))
            user = result.scalar_one_or_none()

            if user is None or not user.is_active or not verify_password(
                request.password, user.password_hash
            ):
                logger.warning("Authentication failed for %s", request.email)
                raise ValidationError(message=INVALID_CREDENTIALS_MESSAGE)

            logger.info("User %s authenticated", user.id)
            return self._issue(user)
        except LimeError:
            raise
        except Exception as e:
            logger.error("Error authenticating %s: %s", request.email, str(e), exc_info=True)
            await self.db.rollback()
            raise LimeError(
                message="Failed to authenticate",
                code="AUTHENTICATE_ERROR",
                context={"error_type": type(e).__name__},
            )

    async def get_user(self, user_id: str) -> Optional[UserResponse]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        return UserResponse.model_validate(user) if user else None

    # ── Google Handshake ──────────────────────────────────────────────────

    def begin_handshake(self, nonce: str) -> str:
        """
        Phase one: the provider URL to send the browser to.

        `nonce` is the value the route stores in the browser's cookie; the
        signed state carries it so the callback can only complete in the same
        browser that started the flow.
        """
        return self.identity_provider.authorization_url(state=create_oauth_state(nonce))

    async def complete_handshake(
        self,
        code: Optional[str],
        state: Optional[str],
        provider_error: Optional[str] = None,
        browser_nonce: Optional[str] = None,
    ) -> AuthData:
        """
        Phase two: turn the provider callback into a session.

        Raises:
            ValidationError:       provider reported an error, bad/missing state,
                                   state not issued to this browser, missing
                                   code, disabled account
            IdentityProviderError: token exchange or userinfo failed
        """
        if provider_error:
            raise ValidationError(
                message="Google sign-in was cancelled or denied",
                context={"provider_error": provider_error},
            )
        verify_oauth_state(state, browser_nonce)
        if not code:
            raise ValidationError(message="Missing authorization code", field="code")

        tokens = await self.identity_provider.exchange_code(code)
        profile = await self.identity_provider.fetch_userinfo(tokens["access_token"])

        try:
            user = await self._upsert_google_user(profile)
        except Exception:
            await self.db.rollback()
            raise
        logger.info("Google sign-in completed for user %s", user.id)
        return self._issue(user)

    async def _upsert_google_user(self, profile: Dict[str, Any]) -> User:
        """Find the user by Google subject, then by email; create if neither."""
        subject = str(profile["sub"])
        email = str(profile["email"]).strip().lower()
        name = profile.get("name")

        result = await self.db.execute(select(User).where(User.google_sub == subject))
        user = result.scalar_one_or_none()
        if user is None:
            result = await self.db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()

        if user is None:
            user = User(email=email, name=name, google_sub=subject)
            self.db.add(user)
            await self.db.flush()
            logger.info("Provisioned user %s from Google sign-in", user.id)
        else:
            if not user.is_active:
                raise ValidationError(message="This account has been disabled")
            user.google_sub = subject
            if not user.name and name:
                user.name = name

        if user.current_organization_id is None:
            organization = Organization(name=f"{name or email}'s Organization")
            self.db.add(organization)
            await self.db.flush()
            self.db.add(
                OrganizationMember(
                    organization_id=organization.id,
                    user_id=user.id,
                    role="owner",
                )
            )
            user.current_organization_id = organization.id

        await self.db.flush()
        await self.db.refresh(user)
        return user

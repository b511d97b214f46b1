"""
Lime Core Backend — Authentication Route Handlers
===================================================

What:  Password sign-in, the Google sign-in redirect pair, and "who am I".
How:   POST /auth/authenticate and GET /auth/me answer with the standard
       envelope. The two Google routes are browser redirects: they always
       answer 302, either onward (to Google, or to the frontend with a token)
       or to the frontend login page with a generic error. Faults in the
       redirect routes are logged here and never shown to the browser.

The login route drops a short-lived nonce cookie scoped to /auth/google; the
callback only completes when the signed state carries the same nonce, so a
callback URL replayed into another browser fails.

Redirect targets:
    success → {frontend_url}/login/success?token=<access_token>
    failure → {frontend_url}/login?error=Google authentication failed
"""

import logging
from typing import Optional
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Cookie, Depends, Query
from fastapi.responses import RedirectResponse

from lime_core.config import settings
from lime_core.dependencies import get_auth_service, get_current_user
from lime_core.envelope import respond
from lime_core.middleware.request_id import request_id_var
from lime_core.routing import Route, error_responses, register_routes
from lime_core.schemas.auth import AuthData, AuthenticatedUser, AuthRequest, UserResponse
from lime_core.schemas.envelope import ApiResponse
from lime_core.security import new_oauth_nonce
from lime_core.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

GOOGLE_FAILURE_MESSAGE = "Google authentication failed"
OAUTH_NONCE_COOKIE = "lime_oauth_nonce"
OAUTH_NONCE_COOKIE_PATH = "/auth/google"


def _frontend_redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{settings.frontend_url.rstrip('/')}{path}"
    if params:
        url = f"{url}?{urlencode(params, quote_via=quote)}"
    return RedirectResponse(url=url, status_code=302)


def login_failure_redirect() -> RedirectResponse:
    return _frontend_redirect("/login", error=GOOGLE_FAILURE_MESSAGE)


async def authenticate(
    body: AuthRequest,
    service: AuthService = Depends(get_auth_service),
):
    return await respond(
        service.authenticate(body),
        success_message="Authentication successful",
        fallback_message="An error occurred during authentication",
    )


async def google_login(service: AuthService = Depends(get_auth_service)):
    """Phase one: send the browser to Google's consent screen."""
    nonce = new_oauth_nonce()
    try:
        response = RedirectResponse(url=service.begin_handshake(nonce), status_code=302)
    except Exception as e:
        logger.error(
            "[%s] Google sign-in could not start: %s",
            request_id_var.get(""),
            str(e),
            exc_info=True,
        )
        return login_failure_redirect()

    response.set_cookie(
        OAUTH_NONCE_COOKIE,
        nonce,
        max_age=settings.oauth_state_expire_seconds,
        path=OAUTH_NONCE_COOKIE_PATH,
        secure=settings.frontend_url.startswith("https://"),
        httponly=True,
        samesite="lax",
    )
    return response


async def google_callback(
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None, description="Set by Google on denial"),
    nonce: Optional[str] = Cookie(default=None, alias=OAUTH_NONCE_COOKIE),
    service: AuthService = Depends(get_auth_service),
):
    """Phase two: finish the handshake and hand the session token to the frontend."""
    try:
        auth = await service.complete_handshake(
            code, state, provider_error=error, browser_nonce=nonce
        )
    except Exception as e:
        logger.error(
            "[%s] Google callback failed: %s",
            request_id_var.get(""),
            str(e),
            exc_info=True,
        )
        response = login_failure_redirect()
    else:
        response = _frontend_redirect("/login/success", token=auth.access_token)

    response.delete_cookie(OAUTH_NONCE_COOKIE, path=OAUTH_NONCE_COOKIE_PATH)
    return response


async def me(
    user: AuthenticatedUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await respond(
        service.get_user(user.id),
        success_message="User retrieved successfully",
        fallback_message="An error occurred while retrieving the user",
        resource="User",
    )


# ── Route Table ───────────────────────────────────────────────────────────
ROUTES = [
    Route("POST", "/authenticate", authenticate, ApiResponse[AuthData], 200,
          "Sign in with email and password", error_responses(400, 500)),
    Route("GET", "/google", google_login, None, 302,
          "Start Google sign-in", {302: {"description": "Redirect to Google"}}),
    Route("GET", "/google/callback", google_callback, None, 302,
          "Google sign-in callback",
          {302: {"description": "Redirect to the frontend login pages"}}),
    Route("GET", "/me", me, ApiResponse[UserResponse], 200,
          "Current user", error_responses(401, 404, 500)),
]

register_routes(router, ROUTES)

"""
Lime Core Backend — Google Identity Provider Client
=====================================================

What:  The three HTTP touch points of Google's OAuth 2.0 authorization-code
       flow: the consent URL, the code→token exchange and the userinfo call.
How:   httpx.AsyncClient. A client can be injected (tests pass one built on
       httpx.MockTransport); otherwise a short-lived client is opened per call.
       No retries: a failed call fails the handshake.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
from urllib.parse import urlencode

import httpx

from lime_core.config import settings
from lime_core.exceptions import IdentityProviderError

logger = logging.getLogger(__name__)

GOOGLE_SCOPES = "openid email profile"


class GoogleIdentityProvider:
    """Stateless wrapper around Google's OAuth endpoints."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return settings.google_oauth_enabled

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient() as client:
                yield client

    def authorization_url(self, state: str) -> str:
        """Consent-screen URL the browser is redirected to."""
        if not self.is_configured:
            raise IdentityProviderError(message="Google sign-in is not configured")
        params = {
            "client_id": settings.google_client_id,
            "redirect_uri": settings.google_redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{settings.google_authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Trade the callback's authorization code for provider tokens."""
        if not self.is_configured:
            raise IdentityProviderError(message="Google sign-in is not configured")
        try:
            async with self._client() as client:
                response = await client.post(
                    settings.google_token_url,
                    data={
                        "code": code,
                        "client_id": settings.google_client_id,
                        "client_secret": settings.google_client_secret,
                        "redirect_uri": settings.google_redirect_uri,
                        "grant_type": "authorization_code",
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError(
                message="Could not reach Google token endpoint",
                context={"error_type": type(e).__name__},
            )

        if response.status_code != 200:
            raise IdentityProviderError(
                message="Google token exchange failed",
                context={"status_code": response.status_code},
            )

        payload = response.json()
        if not payload.get("access_token"):
            raise IdentityProviderError(message="Google token response had no access token")
        return payload

    async def fetch_userinfo(self, access_token: str) -> Dict[str, Any]:
        """OpenID userinfo: requires `sub` and a verified `email`."""
        try:
            async with self._client() as client:
                response = await client.get(
                    settings.google_userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError(
                message="Could not reach Google userinfo endpoint",
                context={"error_type": type(e).__name__},
            )

        if response.status_code != 200:
            raise IdentityProviderError(
                message="Google userinfo request failed",
                context={"status_code": response.status_code},
            )

        info = response.json()
        if not info.get("sub") or not info.get("email"):
            raise IdentityProviderError(message="Google profile is missing subject or email")
        if info.get("email_verified") is False:
            raise IdentityProviderError(message="Google account email is not verified")
        return info

"""Bearer-token verification against the Supabase identity provider.

Every request to the recipe API passes through :func:`authenticate` before
any handler logic runs. Nothing is cached: the token is re-verified on each
call.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .errors import Forbidden, IdentityProviderError, Unauthenticated

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Principal:
    id: str
    email: Optional[str] = None


class TokenVerifier:
    """Turns a raw access token into a Principal, or raises Unauthenticated."""

    def verify(self, token: str) -> Principal:
        raise NotImplementedError


class SupabaseTokenVerifier(TokenVerifier):
    def __init__(self, url: str, key: str, timeout: float = 10.0, http: Optional[httpx.Client] = None):
        self.url = url.rstrip("/")
        self.key = key
        self.timeout = timeout
        self._http = http

    def _get(self, token: str) -> httpx.Response:
        headers = {"apikey": self.key, "Authorization": f"{BEARER_PREFIX}{token}"}
        endpoint = f"{self.url}/auth/v1/user"
        if self._http is not None:
            return self._http.get(endpoint, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as http:
            return http.get(endpoint, headers=headers)

    def verify(self, token: str) -> Principal:
        try:
            response = self._get(token)
        except httpx.HTTPError as exc:
            logger.error("Token verification failed: %s", exc)
            raise IdentityProviderError("Token verification failed", str(exc))

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        reason = body.get("msg") or body.get("message") or body.get("error_description")
        if response.status_code >= 500:
            logger.error("Identity provider answered %s: %s", response.status_code, reason)
            raise IdentityProviderError("Token verification failed", reason)
        if response.status_code >= 400:
            raise Unauthenticated("Invalid or expired token", reason)

        return Principal(id=body.get("id") or "", email=body.get("email"))


def authenticate(authorization: Optional[str], verifier: TokenVerifier) -> Principal:
    if not authorization:
        raise Unauthenticated("No authorization header provided")
    if not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("Invalid authorization header format. Expected: Bearer <token>")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated("No token provided")

    principal = verifier.verify(token)
    if not principal.id:
        raise Forbidden("User not found")
    return principal

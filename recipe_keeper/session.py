"""Signed-in state for API callers.

An :class:`AuthSession` owns the provider session (tokens + user) for the
whole process. Only its lifecycle methods change that state, and each change
is announced to subscribers as ``(event, session)``.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import httpx

from .client import RecipeClientError

logger = logging.getLogger(__name__)

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
SIGNED_OUT = "SIGNED_OUT"


class AuthSessionError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ProviderSession:
    access_token: str
    refresh_token: Optional[str] = None
    user: dict = field(default_factory=dict)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id")


Listener = Callable[[str, Optional[ProviderSession]], None]


class AuthSession:
    def __init__(self, url: str, key: str, http: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.url = url.rstrip("/")
        self.key = key
        self._owns_http = http is None
        self.http = http if http is not None else httpx.Client(timeout=timeout)
        self.session: Optional[ProviderSession] = None
        self._listeners: List[Listener] = []

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, event: str, session: Optional[ProviderSession]) -> None:
        self.session = session
        for listener in list(self._listeners):
            listener(event, session)

    @property
    def user(self) -> Optional[dict]:
        return self.session.user if self.session else None

    def access_token(self) -> str:
        if self.session is None or not self.session.access_token:
            raise RecipeClientError("No active session. Please log in.")
        return self.session.access_token

    def _call(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> dict:
        headers = {"apikey": self.key}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = self.http.request(method, f"{self.url}/auth/v1{path}", headers=headers, **kwargs)
        except httpx.TransportError as exc:
            raise AuthSessionError(f"Unable to reach authentication service: {exc}")

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if not response.is_success:
            message = (
                data.get("msg")
                or data.get("error_description")
                or data.get("message")
                or f"Authentication request failed with status {response.status_code}"
            )
            raise AuthSessionError(message, response.status_code)
        return data

    @staticmethod
    def _from_token_response(data: dict) -> ProviderSession:
        return ProviderSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            user=data.get("user") or {},
        )

    def sign_up(self, email: str, password: str) -> Optional[ProviderSession]:
        """Register a user. Returns None when the provider wants email confirmation first."""
        data = self._call("POST", "/signup", json={"email": email.strip(), "password": password})
        if not data.get("access_token"):
            logger.info("Sign-up for %s awaits email confirmation", email.strip())
            return None
        self._set(SIGNED_IN, self._from_token_response(data))
        return self.session

    def sign_in(self, email: str, password: str) -> ProviderSession:
        data = self._call(
            "POST", "/token", params={"grant_type": "password"},
            json={"email": email.strip(), "password": password},
        )
        self._set(SIGNED_IN, self._from_token_response(data))
        return self.session

    def restore(self, access_token: str, refresh_token: Optional[str] = None) -> ProviderSession:
        user = self._call("GET", "/user", token=access_token)
        self._set(INITIAL_SESSION, ProviderSession(access_token, refresh_token, user))
        return self.session

    def refresh(self) -> ProviderSession:
        if self.session is None or not self.session.refresh_token:
            raise AuthSessionError("No refresh token available")
        data = self._call(
            "POST", "/token", params={"grant_type": "refresh_token"},
            json={"refresh_token": self.session.refresh_token},
        )
        self._set(TOKEN_REFRESHED, self._from_token_response(data))
        return self.session

    def sign_out(self) -> None:
        if self.session is None:
            return
        token = self.session.access_token
        # local state is cleared even when the provider cannot be told
        try:
            self._call("POST", "/logout", token=token)
        except AuthSessionError as exc:
            logger.warning("Provider sign-out failed: %s", exc.message)
        self._set(SIGNED_OUT, None)

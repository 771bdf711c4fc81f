"""HTTP client for the recipes API.

Attaches the current session's bearer token to each call, sends and reads
JSON, and turns every failure into a :class:`RecipeClientError` whose
message can be shown to the user as is. A few cheap checks run before any
request is made; the server validates everything again.
"""
import logging
from typing import Any, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

DIFFICULTIES = ("easy", "medium", "hard")

NETWORK_ERROR_MESSAGE = "Network error: Unable to connect to the server"


class RecipeClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _require_id(recipe_id) -> None:
    if not recipe_id:
        raise RecipeClientError("Recipe ID is required")


def _check_difficulty(data: dict) -> None:
    if data.get("difficulty") and data["difficulty"] not in DIFFICULTIES:
        raise RecipeClientError("Difficulty must be: easy, medium, or hard")


def _check_new_recipe(data: dict) -> None:
    if not data.get("title"):
        raise RecipeClientError("Recipe title is required")
    if data.get("prep_time") is None:
        raise RecipeClientError("Preparation time is required")
    if data.get("cook_time") is None:
        raise RecipeClientError("Cooking time is required")
    if data.get("servings") is None:
        raise RecipeClientError("Servings is required")
    if not data.get("difficulty"):
        raise RecipeClientError("Difficulty is required")
    _check_difficulty(data)


def _error_message(data: Any, status_code: int) -> str:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if isinstance(error, str) and error:
            return error
    return f"HTTP error! status: {status_code}"


class RecipeClient:
    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        token_provider: Optional[Callable[[], str]] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self._owns_http = http is None
        self.http = http if http is not None else httpx.Client(timeout=timeout)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def _token(self) -> str:
        token = self.token_provider() if self.token_provider else None
        if not token:
            raise RecipeClientError("No active session. Please log in.")
        return token

    def _request(self, method: str, endpoint: str, body: Optional[dict] = None):
        headers = {"Authorization": f"Bearer {self._token()}"}
        try:
            response = self.http.request(method, f"{self.base_url}{endpoint}", json=body, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("%s %s could not reach the server: %s", method, endpoint, exc)
            raise RecipeClientError(NETWORK_ERROR_MESSAGE)

        text = response.text
        try:
            data = response.json()
        except ValueError:
            raise RecipeClientError(f"Invalid JSON response: {text[:100]}", response.status_code)

        if not response.is_success:
            raise RecipeClientError(_error_message(data, response.status_code), response.status_code)
        return data

    def list(self):
        return self._request("GET", "/api/recipes")

    def get(self, recipe_id: str):
        _require_id(recipe_id)
        return self._request("GET", f"/api/recipes/{recipe_id}")

    def create(self, data: dict):
        _check_new_recipe(data)
        return self._request("POST", "/api/recipes", data)

    def update(self, recipe_id: str, data: dict):
        _require_id(recipe_id)
        _check_difficulty(data)
        return self._request("PUT", f"/api/recipes/{recipe_id}", data)

    def remove(self, recipe_id: str):
        _require_id(recipe_id)
        return self._request("DELETE", f"/api/recipes/{recipe_id}")

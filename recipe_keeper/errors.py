from typing import Optional


class RecipeAPIError(Exception):
    """Base error; carries the HTTP status and renders the error envelope."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_envelope(self) -> dict:
        error = {"message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(RecipeAPIError):
    status_code = 400


class Unauthenticated(RecipeAPIError):
    status_code = 401


class Forbidden(RecipeAPIError):
    status_code = 403


class NotFound(RecipeAPIError):
    status_code = 404


class ConfigurationError(RecipeAPIError):
    status_code = 500


class StorageError(RecipeAPIError):
    status_code = 500


class IdentityProviderError(RecipeAPIError):
    status_code = 500

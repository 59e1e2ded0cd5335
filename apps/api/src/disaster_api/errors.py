from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int


class ValidationFailed(ApiError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__("VALIDATION_ERROR", f"{field}: {message}", 400)
        self.field = field


class NotFound(ApiError):
    def __init__(self, entity: str) -> None:
        super().__init__("NOT_FOUND", f"{entity} not found", 404)


class DatastoreError(ApiError):
    def __init__(self, message: str = "Datastore operation failed") -> None:
        super().__init__("DATASTORE_ERROR", message, 500)


class ProviderUnavailable(ApiError):
    def __init__(self, provider: str) -> None:
        super().__init__("PROVIDER_UNAVAILABLE", f"{provider} is not configured", 503)


class Forbidden(ApiError):
    def __init__(self, message: str = "Not enough permissions") -> None:
        super().__init__("FORBIDDEN", message, 403)


class RateLimited(ApiError):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__("RATE_LIMIT_EXCEEDED", "Too many requests", 429)
        self.retry_after_seconds = retry_after_seconds

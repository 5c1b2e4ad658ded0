"""Custom exception hierarchy."""

from typing import Any


class AppError(Exception):
    """Base application exception."""

    status_code: int = 500

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(AppError):
    """Malformed or oversized client input."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message, code="VALIDATION_ERROR")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["error"]["details"] = {"field": self.field}
        return result


class NotFoundError(AppError):
    """Unknown bot or source."""

    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource.capitalize()} not found: {resource_id}", code="NOT_FOUND")


class ConfigurationError(AppError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")


class LLMError(AppError):
    """LLM communication error."""

    def __init__(self, message: str, provider: str):
        self.provider = provider
        super().__init__(message, code="LLM_ERROR")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"provider": self.provider}
        return result


class EmbeddingUnavailable(AppError):
    """The embedding service failed or returned no vector."""

    status_code = 503

    def __init__(self, message: str, model: str | None = None):
        self.model = model
        super().__init__(message, code="EMBEDDING_UNAVAILABLE")


class RetrievalDegraded(AppError):
    """Every retrieval path failed; callers fall back to an ungrounded prompt."""

    def __init__(self, message: str):
        super().__init__(message, code="RETRIEVAL_DEGRADED")


class StorageError(AppError):
    """Backing store read/write failure."""

    def __init__(self, message: str, backend: str):
        self.backend = backend
        super().__init__(message, code="STORAGE_ERROR")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"backend": self.backend}
        return result


class IngestionTotalFailure(AppError):
    """A document produced no stored chunks."""

    status_code = 422

    def __init__(self, message: str, source_id: str, code: str = "INGESTION_FAILED"):
        self.source_id = source_id
        super().__init__(message, code=code)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"source_id": self.source_id}
        return result


class EmptyDocument(IngestionTotalFailure):
    """Extraction yielded no chunkable text."""

    def __init__(self, source_id: str):
        super().__init__("No text content found in document", source_id, code="EMPTY_DOCUMENT")


class NotificationFailure(AppError):
    """A lead notification could not be delivered."""

    def __init__(self, message: str):
        super().__init__(message, code="NOTIFICATION_FAILED")


class LeadAlreadyExists(AppError):
    """A lead for this bot and email is already recorded."""

    status_code = 409

    def __init__(self, bot_id: str, email: str):
        self.bot_id = bot_id
        self.email = email
        super().__init__(f"Lead already exists for bot {bot_id}", code="LEAD_EXISTS")

"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


# ========== Provider errors ==========

class ProviderError(LLMException):
    """
    Failure reported by the embedding/completion provider.

    Carries the provider's HTTP status code where one was available and the
    stage ("embedding" or "completion") that failed.
    """

    stage: str = "provider"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        self.status_code = status_code
        details = dict(details or {})
        details.setdefault("stage", self.stage)
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__(message, details)


class EmbeddingProviderError(ProviderError):
    """Embedding call failed."""

    stage = "embedding"


class CompletionProviderError(ProviderError):
    """Completion call failed."""

    stage = "completion"


class ProviderQuotaExceeded(ProviderError):
    """Rate or billing limit reached. Not retried: calls are billable."""


class ProviderAuthError(ProviderError):
    """Provider rejected the configured credentials."""


class ProviderBadRequest(ProviderError):
    """Provider rejected the input (e.g. empty text)."""


class EmbeddingQuotaExceeded(EmbeddingProviderError, ProviderQuotaExceeded):
    pass


class EmbeddingAuthError(EmbeddingProviderError, ProviderAuthError):
    pass


class EmbeddingBadRequest(EmbeddingProviderError, ProviderBadRequest):
    pass


class CompletionQuotaExceeded(CompletionProviderError, ProviderQuotaExceeded):
    pass


class CompletionAuthError(CompletionProviderError, ProviderAuthError):
    pass


class CompletionBadRequest(CompletionProviderError, ProviderBadRequest):
    pass


_CLASSIFIED_PROVIDER_ERRORS = {
    ("embedding", 429): EmbeddingQuotaExceeded,
    ("embedding", 401): EmbeddingAuthError,
    ("embedding", 400): EmbeddingBadRequest,
    ("completion", 429): CompletionQuotaExceeded,
    ("completion", 401): CompletionAuthError,
    ("completion", 400): CompletionBadRequest,
}

_CLASSIFIED_MESSAGES = {
    429: "Provider quota exceeded. Please check your billing and usage limits.",
    401: "Invalid provider API key. Please check your API key configuration.",
}


def provider_error_for(
    stage: str,
    status_code: Optional[int],
    message: str
) -> ProviderError:
    """
    Build the provider error matching a failed call.

    Args:
        stage: "embedding" or "completion"
        status_code: HTTP status reported by the provider, if any
        message: Raw provider error text

    Returns:
        A classified error for 429/401/400, otherwise the stage's generic error
    """
    error_cls = _CLASSIFIED_PROVIDER_ERRORS.get((stage, status_code))
    if error_cls is not None:
        if status_code == 400:
            text = f"Invalid request to provider during {stage}: {message}"
        else:
            text = _CLASSIFIED_MESSAGES[status_code]
        return error_cls(text, status_code=status_code, details={"provider_message": message})

    generic_cls = EmbeddingProviderError if stage == "embedding" else CompletionProviderError
    return generic_cls(
        f"Failed to generate {stage}: {message}",
        status_code=status_code
    )


# ========== Store errors ==========

class VectorStoreException(ExternalServiceException):
    """Exception for vector store failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Vector Store", message, details)


class SearchBackendError(VectorStoreException):
    """Chunk store lookup failed during vector or keyword search."""


class RAGGenerationError(ApplicationException):
    """
    Wrapped failure of the retrieval-answer pipeline.

    ``root_cause`` keeps the original exception so callers can still pick
    an HTTP status from it.
    """

    def __init__(self, root_cause: Exception):
        self.root_cause = root_cause
        root_message = getattr(root_cause, "message", None) or str(root_cause)
        super().__init__(
            f"Failed to generate RAG response: {root_message}",
            {"error_type": type(root_cause).__name__}
        )


class TrackingUpdateFailed(RepositoryException):
    """Assignment statistics could not be written after a successful assignment."""

"""Custom exception classes used across the service."""


class ServiceError(RuntimeError):
    """Base class for domain-specific exceptions."""


class InvalidRequestError(ServiceError):
    """Raised when request validation fails. Never retried."""


class ConfigurationError(ServiceError):
    """Raised when provider configuration is missing or invalid."""


class InsufficientCreditsError(ServiceError):
    """Raised when a user has neither credits nor an unlimited entitlement."""


class GenerationConflictError(ServiceError):
    """Raised when a generation is requested for an artifact already in flight."""


class InvalidTransitionError(ServiceError):
    """Raised when an artifact is not in a state the requested transition allows."""


class StaleRecordError(ServiceError):
    """Raised when the artifact or user a job refers to no longer exists."""


class ProviderError(ServiceError):
    """Raised when a text-generation provider call fails."""

    def __init__(self, message: str, provider: str = None):
        super().__init__(message)
        self.provider = provider


class ProviderTransientError(ProviderError):
    """Timeouts, rate limits and provider-side server errors. Safe to retry."""


class EmptyResponseError(ProviderTransientError):
    """Raised when a provider answers with no usable text."""

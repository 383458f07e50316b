"""Exceptions for LLM infrastructure components."""

from __future__ import annotations

from comprehendo_app.application.llm import (
    FormatError,
    LLMConfigurationError,
    LLMServiceProvider,
    ProviderCallError,
    SafetyBlockedError,
)


class LLMInfrastructureError(RuntimeError):
    """Base error for LLM infrastructure failures."""


class MissingApiKeyError(LLMConfigurationError, LLMInfrastructureError):
    """Raised when the selected provider has no credential configured."""


class UnknownProviderError(LLMConfigurationError, LLMInfrastructureError):
    """Raised when provider selector names an unsupported backend."""


class InvalidSettingError(LLMConfigurationError, LLMInfrastructureError):
    """Raised when a numeric setting cannot be parsed."""


class ProviderRequestError(ProviderCallError, LLMInfrastructureError):
    """Raised when provider rejects request with a client error status."""


class ProviderRateLimitError(ProviderCallError, LLMInfrastructureError):
    """Raised on HTTP 429 from provider."""


class ProviderServerError(ProviderCallError, LLMInfrastructureError):
    """Raised on provider server-side errors (HTTP 5xx)."""


class ProviderTransportError(ProviderCallError, LLMInfrastructureError):
    """Raised when the HTTP exchange itself fails."""


class ProviderTimeoutError(ProviderCallError, LLMInfrastructureError):
    """Raised when a provider call exceeds the configured timeout."""


class ProviderSafetyBlockError(SafetyBlockedError, LLMInfrastructureError):
    """Raised when provider blocks generation on content-safety grounds."""


class ProviderResponseError(ProviderCallError, FormatError, LLMInfrastructureError):
    """Raised when provider response cannot be parsed or carries no usable text."""

    def __init__(
        self,
        message: str,
        *,
        provider: LLMServiceProvider | None = None,
    ) -> None:
        FormatError.__init__(self, message, fragment="")
        self.provider = provider

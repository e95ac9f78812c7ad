"""Exception taxonomy for the TeacherMada advisor agent.

Only ``BadRequest`` (and ``ConfigurationError`` at start-up) ever reaches a
caller of the orchestrator.  Provider-side failures are retried and, once
every credential has been tried, replaced by a fallback reply.
"""

from __future__ import annotations


class AgentError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(AgentError):
    """Fatal start-up misconfiguration (e.g. no API credentials)."""


class BadRequest(AgentError):
    """The caller sent an unusable request (empty message, no session id)."""


class ProviderError(AgentError):
    """A single provider attempt failed.  Retryable via credential rotation."""

    kind = "provider"


class TransportError(ProviderError):
    """Network / HTTP / quota failure while talking to the provider."""

    kind = "transport"

    def __init__(self, message: str, status_code: int | None = None, error_type: str | None = None):
        self.status_code = status_code
        self.error_type = error_type or type(self).__name__
        super().__init__(message)


class ValidationError(ProviderError):
    """The provider answered, but its output did not match the reply schema."""

    kind = "validation"


class SummarizationError(AgentError):
    """History compaction failed.  Always recovered locally."""

"""
Failure classification for API responses.

Every user-visible failure is raised as a ``KnownError`` subclass and rendered
by the exception handlers in ``proxyforge.main`` as a JSON body carrying an
``error`` field and the matching HTTP status.

Failure classes:
- Input validation: malformed request body, 400
- Not found: unknown deck or card, 404
- Upstream: Scryfall or the model service failed after retries, 500
- Rate limited: caller exceeded its allowance, 429

Partial resolution (unknown card names), best-effort enrichment failures and
heuristic extraction misses are NOT failures and never reach this module.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"

    # Constraint violations
    RATE_LIMITED = "rate_limited"

    # Service failures
    SERVICE_UNAVAILABLE = "service_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"
    INVALID_MODEL_OUTPUT = "invalid_model_output"

    # Unknown
    UNKNOWN = "unknown"


class ErrorResponse(BaseModel):
    """JSON body returned for every failed request."""

    error: str = Field(..., description="User-appropriate explanation of what went wrong")
    kind: FailureKind = Field(default=FailureKind.UNKNOWN)
    detail: str | None = Field(default=None, description="Additional technical detail")


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to the JSON error body."""
        return ErrorResponse(error=self.message, kind=self.kind, detail=self.detail)


class UpstreamServiceError(KnownError):
    """
    Raised when an upstream service (Scryfall, the model API) fails.

    Only raised after the retry budget for transient failures is spent,
    or immediately for non-retryable client errors.
    """

    def __init__(self, service: str, status: int | None, message: str):
        self.service = service
        self.upstream_status = status
        status_text = f" {status}" if status is not None else ""
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=f"{service} error{status_text}: {message}",
            detail=message,
            status_code=500,
        )


class IdeaGenerationError(KnownError):
    """Raised when the model replies with output that is not valid batch JSON."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.INVALID_MODEL_OUTPUT,
            message="The language model returned an unusable response.",
            detail=detail,
            status_code=500,
        )


class LLMNotConfiguredError(KnownError):
    """Raised when generation is requested without an API key configured."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message="Anthropic API key not configured",
            detail="ANTHROPIC_API_KEY is empty",
            status_code=503,
        )


class RateLimitExceededError(KnownError):
    """Raised when a caller has used up its request allowance."""

    def __init__(self, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(
            kind=FailureKind.RATE_LIMITED,
            message="Rate limit exceeded",
            detail="Too many requests; try again shortly",
            status_code=429,
        )

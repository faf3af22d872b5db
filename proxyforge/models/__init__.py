from proxyforge.models.card import (
    CardFace,
    CardRecord,
    CardText,
    FaceText,
    RelatedPart,
    TokenHint,
    TokenType,
)
from proxyforge.models.failure import (
    ErrorResponse,
    FailureKind,
    IdeaGenerationError,
    KnownError,
    LLMNotConfiguredError,
    RateLimitExceededError,
    UpstreamServiceError,
)
from proxyforge.models.idea import (
    GeneratedBatch,
    GeneratedIdea,
    LlmCardInput,
    ThematicPart,
    parse_parts,
)

__all__ = [
    "CardFace",
    "CardRecord",
    "CardText",
    "ErrorResponse",
    "FaceText",
    "FailureKind",
    "GeneratedBatch",
    "GeneratedIdea",
    "IdeaGenerationError",
    "KnownError",
    "LLMNotConfiguredError",
    "LlmCardInput",
    "RateLimitExceededError",
    "RelatedPart",
    "ThematicPart",
    "TokenHint",
    "TokenType",
    "UpstreamServiceError",
    "parse_parts",
]

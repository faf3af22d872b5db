"""
Thematic idea generation through the Anthropic Messages API.

One call handles a batch of cards. The reply must be a JSON object
``{"cards": [...]}``; it is stripped of Markdown fences, parsed and validated
before use. Transient API failures are retried with backoff.
"""

import asyncio
import json
import logging
import re
from collections.abc import Awaitable, Callable, Sequence

import anthropic
from anthropic.types import Message, TextBlock
from pydantic import ValidationError

from proxyforge.config import settings
from proxyforge.models.failure import IdeaGenerationError, UpstreamServiceError
from proxyforge.models.idea import GeneratedBatch, GeneratedIdea, LlmCardInput, ThematicPart
from proxyforge.services.prompts import SYSTEM_PROMPT, build_batch_prompt, strip_markdown_fences
from proxyforge.services.retry import call_with_retry, is_transient_status

logger = logging.getLogger(__name__)

ASPECT_RATIO_PARAM = re.compile(r"--ar\s*3:5")
VERSION_PARAM = re.compile(r"--v\s*[67]")


def ensure_prompt_params(prompt: str) -> str:
    """Append ``--ar 3:5`` and ``--v 6`` to a Midjourney prompt when missing."""
    out = prompt.strip()
    if not ASPECT_RATIO_PARAM.search(out):
        out += " --ar 3:5"
    if not VERSION_PARAM.search(out):
        out += " --v 6"
    return out.strip()


def _finish_part(part: ThematicPart) -> ThematicPart:
    return part.model_copy(
        update={"midjourney_prompt": ensure_prompt_params(part.midjourney_prompt)}
    )


def finish_idea(idea: GeneratedIdea, theme: str) -> GeneratedIdea:
    """Fill a blank thematic name and complete every Midjourney prompt."""
    return idea.model_copy(
        update={
            "thematic_name": idea.thematic_name.strip() or f"Untitled {theme} Concept",
            "midjourney_prompt": ensure_prompt_params(idea.midjourney_prompt),
            "card_faces": (
                [_finish_part(p) for p in idea.card_faces] if idea.card_faces else None
            ),
            "tokens": [_finish_part(p) for p in idea.tokens] if idea.tokens else None,
        }
    )


def parse_batch(text: str, theme: str) -> list[GeneratedIdea]:
    """
    Parse a model reply into finished ideas.

    Raises:
        IdeaGenerationError: If the reply is not valid batch JSON
    """
    cleaned = strip_markdown_fences(text)
    try:
        batch = GeneratedBatch.model_validate(json.loads(cleaned or "{}"))
    except json.JSONDecodeError as e:
        raise IdeaGenerationError(f"Reply is not JSON: {e}") from e
    except ValidationError as e:
        raise IdeaGenerationError(f"Reply does not match the batch schema: {e}") from e

    return [finish_idea(idea, theme) for idea in batch.cards]


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, anthropic.APIStatusError):
        return is_transient_status(exc.status_code)
    return False


class IdeaGenerator:
    """
    Batch generator backed by Claude.

    The Anthropic client's own retries are disabled so that the shared
    backoff policy applies.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        client: anthropic.AsyncAnthropic | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.max_retries = settings.upstream_max_retries if max_retries is None else max_retries
        self._client = client or anthropic.AsyncAnthropic(
            api_key=api_key or settings.anthropic_api_key,
            timeout=timeout or settings.llm_timeout_seconds,
            max_retries=0,
        )
        self._sleep = sleep

    async def generate(
        self,
        theme: str,
        cards: Sequence[LlmCardInput],
        deck_idea: str | None = None,
    ) -> list[GeneratedIdea]:
        """
        Generate thematic ideas for a batch of cards.

        Raises:
            UpstreamServiceError: If the API call fails after retries
            IdeaGenerationError: If the reply cannot be parsed
        """
        if not cards:
            return []

        prompt = build_batch_prompt(theme, cards, deck_idea)

        async def attempt() -> Message:
            return await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )

        try:
            response = await call_with_retry(
                attempt,
                is_transient=_is_transient,
                max_retries=self.max_retries,
                label="anthropic",
                sleep=self._sleep,
            )
        except anthropic.APIStatusError as e:
            raise UpstreamServiceError("Anthropic", e.status_code, e.message) from e
        except anthropic.APIError as e:
            raise UpstreamServiceError("Anthropic", None, str(e)) from e

        text = "".join(b.text for b in response.content if isinstance(b, TextBlock))
        ideas = parse_batch(text, theme)

        logger.info(
            "Generated %d ideas for %d cards (theme=%r, model=%s)",
            len(ideas),
            len(cards),
            theme,
            self.model,
        )
        return ideas

"""
Shared FastAPI dependencies.

Upstream clients are provided through dependencies so tests can swap them
with ``app.dependency_overrides``.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from proxyforge.config import settings
from proxyforge.db.database import get_session_factory
from proxyforge.models.failure import LLMNotConfiguredError
from proxyforge.services.card_cache import CardCache
from proxyforge.services.idea_generator import IdeaGenerator
from proxyforge.services.rate_limit import caller_key, get_rate_limiter
from proxyforge.services.scryfall import ScryfallClient


async def get_scryfall_client() -> AsyncGenerator[ScryfallClient, None]:
    """Provide a Scryfall client for the duration of one request."""
    async with ScryfallClient() as client:
        yield client


def get_card_cache(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> CardCache:
    return CardCache(session_factory)


def get_idea_generator() -> IdeaGenerator:
    """
    Provide the idea generator.

    Raises:
        LLMNotConfiguredError: If no Anthropic API key is configured
    """
    if not settings.anthropic_api_key:
        raise LLMNotConfiguredError()
    return IdeaGenerator()


def enforce_rate_limit(request: Request) -> None:
    """
    Take one request from the caller's allowance.

    MUST run before any model call.

    Raises:
        RateLimitExceededError: If the caller is over its allowance
    """
    get_rate_limiter().check(caller_key(request))

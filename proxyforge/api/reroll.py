"""
Reroll endpoint.

Generates a fresh idea for one deck card and stores it as the next version.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from proxyforge.api.dependencies import enforce_rate_limit, get_idea_generator
from proxyforge.config import MAX_THEME_LENGTH, MIN_THEME_LENGTH
from proxyforge.db.database import get_session
from proxyforge.db.operations import deck_card_token_types
from proxyforge.models.db import DeckCardDB
from proxyforge.services.deck_pipeline import DeckCardNotFoundError, reroll_card
from proxyforge.services.deck_view import IdeaView, build_idea_view
from proxyforge.services.idea_generator import IdeaGenerator

router = APIRouter(tags=["reroll"])


class RerollRequest(BaseModel):
    """Request body for a reroll."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True
    )

    deck_card_id: str = Field(..., min_length=1)
    theme: str | None = Field(
        default=None, min_length=MIN_THEME_LENGTH, max_length=MAX_THEME_LENGTH
    )
    user_note: str | None = None


@router.post(
    "/reroll",
    response_model=IdeaView,
    dependencies=[Depends(enforce_rate_limit)],
)
async def reroll(
    request: RerollRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    generator: Annotated[IdeaGenerator, Depends(get_idea_generator)],
) -> IdeaView:
    """
    Reroll one card's idea.

    The new idea is stored as the next version; earlier versions are kept.
    """
    try:
        saved = await reroll_card(
            session,
            generator,
            request.deck_card_id,
            theme=request.theme,
            user_note=request.user_note,
        )
    except DeckCardNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Deck card not found",
        ) from e

    deck_card = await session.get(DeckCardDB, saved.deck_card_id)
    token_types = deck_card_token_types(deck_card) if deck_card else None
    return build_idea_view(saved, token_types)

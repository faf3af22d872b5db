"""
Deck generation endpoints.

Accepts a deck list and a theme, resolves the cards and stores a first
thematic idea for each one.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from proxyforge.api.dependencies import (
    enforce_rate_limit,
    get_card_cache,
    get_idea_generator,
    get_scryfall_client,
)
from proxyforge.config import (
    MAX_DECK_IDEA_LENGTH,
    MAX_DECK_LINES,
    MAX_LINE_QUANTITY,
    MAX_NAME_LENGTH,
    MAX_THEME_LENGTH,
    MIN_THEME_LENGTH,
)
from proxyforge.db.database import get_session
from proxyforge.parsers.deck_list import ParsedLine, parse_deck_text
from proxyforge.services.card_cache import CardCache
from proxyforge.services.deck_pipeline import generate_deck
from proxyforge.services.idea_generator import IdeaGenerator
from proxyforge.services.scryfall import ScryfallClient

router = APIRouter(tags=["generate"])

DEFAULT_DECK_NAME = "Untitled Deck"


class DeckLineModel(BaseModel):
    """One deck-list line."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True
    )

    quantity: int = Field(default=1, ge=1, le=MAX_LINE_QUANTITY)
    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    note: str | None = None
    is_commander: bool = False

    def to_parsed_line(self) -> ParsedLine:
        return ParsedLine(
            quantity=self.quantity,
            name=self.name,
            note=self.note or None,
            is_commander=self.is_commander,
        )


class GenerateRequest(BaseModel):
    """
    Request body for deck generation.

    Either ``parsed_lines`` or raw ``deck_text`` must be given; when both are,
    ``parsed_lines`` wins.
    """

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True
    )

    deck_name: str = Field(default=DEFAULT_DECK_NAME, max_length=MAX_NAME_LENGTH)
    theme: str = Field(..., min_length=MIN_THEME_LENGTH, max_length=MAX_THEME_LENGTH)
    deck_idea: str | None = Field(default=None, max_length=MAX_DECK_IDEA_LENGTH)
    parsed_lines: list[DeckLineModel] | None = Field(
        default=None, min_length=1, max_length=MAX_DECK_LINES
    )
    deck_text: str | None = None

    @model_validator(mode="after")
    def _require_lines(self) -> "GenerateRequest":
        if self.parsed_lines is not None:
            return self
        if not self.deck_text:
            raise ValueError("Either parsed_lines or deck_text is required")

        lines = parse_deck_text(self.deck_text)
        if not lines:
            raise ValueError("deck_text contains no card lines")
        if len(lines) > MAX_DECK_LINES:
            raise ValueError(f"Deck list has {len(lines)} lines; the limit is {MAX_DECK_LINES}")
        too_many = [line.name for line in lines if line.quantity > MAX_LINE_QUANTITY]
        if too_many:
            raise ValueError(f"Quantity above {MAX_LINE_QUANTITY} for: {', '.join(too_many)}")
        too_long = sum(1 for line in lines if len(line.name) > MAX_NAME_LENGTH)
        if too_long:
            raise ValueError(f"{too_long} card name(s) exceed {MAX_NAME_LENGTH} characters")
        return self

    def lines(self) -> list[ParsedLine]:
        """The deck list as parsed lines."""
        if self.parsed_lines is not None:
            return [line.to_parsed_line() for line in self.parsed_lines]
        return parse_deck_text(self.deck_text or "")


class GenerateResponse(BaseModel):
    """Response body for deck generation."""

    deck_id: str
    not_found: list[str] = Field(default_factory=list)


class ParseRequest(BaseModel):
    """Request body for deck-list parsing."""

    text: str


class ParsedLineResponse(BaseModel):
    """One line as the parser understood it."""

    quantity: int
    name: str
    note: str | None = None
    is_commander: bool = False


class ParseResponse(BaseModel):
    """Parsed deck-list lines."""

    lines: list[ParsedLineResponse]
    count: int


@router.post(
    "/generate",
    response_model=GenerateResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def generate(
    request: GenerateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    scryfall: Annotated[ScryfallClient, Depends(get_scryfall_client)],
    cache: Annotated[CardCache, Depends(get_card_cache)],
    generator: Annotated[IdeaGenerator, Depends(get_idea_generator)],
) -> GenerateResponse:
    """
    Generate a themed proxy deck.

    Cards Scryfall cannot find are listed in ``not_found`` and left out of the
    deck; they do not fail the request.
    """
    result = await generate_deck(
        session,
        scryfall,
        cache,
        generator,
        deck_name=request.deck_name.strip() or DEFAULT_DECK_NAME,
        theme=request.theme,
        lines=request.lines(),
        deck_idea=request.deck_idea or None,
    )
    return GenerateResponse(deck_id=result.deck_id, not_found=result.not_found)


@router.post("/parse", response_model=ParseResponse)
async def parse(request: ParseRequest) -> ParseResponse:
    """Parse a plaintext deck list without generating anything."""
    lines = [
        ParsedLineResponse(
            quantity=line.quantity,
            name=line.name,
            note=line.note,
            is_commander=line.is_commander,
        )
        for line in parse_deck_text(request.text)
    ]
    return ParseResponse(lines=lines, count=len(lines))

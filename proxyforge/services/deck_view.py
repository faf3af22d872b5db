"""
Deck view assembly.

Builds the enriched deck structure returned by the deck endpoint and used by
the exporters: stored faces and token types parsed back into domain types,
ideas newest first with their tokens aligned to token types, and printed
power/toughness filled in from Scryfall where available.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from proxyforge.db.operations import deck_card_faces, deck_card_token_types
from proxyforge.models.card import CardRecord, FaceText, TokenType
from proxyforge.models.db import DeckCardDB, DeckDB, ProxyIdeaDB
from proxyforge.models.failure import UpstreamServiceError
from proxyforge.models.idea import ThematicPart, parse_parts
from proxyforge.services.card_cache import CardCache, fetch_cards_with_cache
from proxyforge.services.card_text import format_power_toughness
from proxyforge.services.scryfall import ScryfallClient
from proxyforge.services.token_alignment import align_token_types

logger = logging.getLogger(__name__)


class SortKey(str, Enum):
    """Supported deck orderings."""

    TYPE = "type"
    CMC = "cmc"
    NAME = "name"
    NICKNAME = "nickname"


class IdeaView(BaseModel):
    """One stored idea version."""

    id: str
    version: int
    thematic_name: str
    thematic_flavor_text: str
    media_reference: str
    midjourney_prompt: str
    card_faces: list[ThematicPart] | None = None
    tokens: list[ThematicPart] | None = None
    aligned_token_types: list[TokenType | None] = Field(default_factory=list)
    model_used: str = ""
    created_at: datetime | None = None


class DeckCardView(BaseModel):
    """One deck card with its ideas, newest version first."""

    id: str
    position: int
    quantity: int
    input_line: str
    original_name: str
    mana_cost: str
    type_line: str
    rules_text: str
    color_identity: str
    cmc: float
    is_commander: bool
    oracle_id: str
    scryfall_id: str
    is_double_faced: bool
    card_faces: list[FaceText] | None = None
    produces_tokens: bool
    token_types: list[TokenType] | None = None
    power_toughness: str | None = None
    user_note: str | None = None
    ideas: list[IdeaView] = Field(default_factory=list)


class DeckView(BaseModel):
    """A deck and all of its cards."""

    id: str
    name: str
    theme: str
    deck_idea: str | None = None
    created_at: datetime | None = None
    cards: list[DeckCardView] = Field(default_factory=list)


def build_idea_view(idea: ProxyIdeaDB, token_types: Sequence[TokenType] | None) -> IdeaView:
    tokens = parse_parts(idea.tokens)
    return IdeaView(
        id=idea.id,
        version=idea.version,
        thematic_name=idea.thematic_name,
        thematic_flavor_text=idea.thematic_flavor_text,
        media_reference=idea.media_reference,
        midjourney_prompt=idea.midjourney_prompt,
        card_faces=parse_parts(idea.card_faces),
        tokens=tokens,
        aligned_token_types=align_token_types(tokens, token_types or []),
        model_used=idea.model_used,
        created_at=idea.created_at,
    )


def _backfill_faces(faces: list[FaceText] | None, card: CardRecord | None) -> list[FaceText] | None:
    if not faces or card is None or not card.faces:
        return faces
    filled = []
    for index, face in enumerate(faces):
        if not face.power_toughness and index < len(card.faces):
            source = card.faces[index]
            pt = format_power_toughness(source.power, source.toughness)
            if pt:
                face = replace(face, power_toughness=pt)
        filled.append(face)
    return filled


def build_card_view(
    deck_card: DeckCardDB, card: CardRecord | None = None
) -> DeckCardView:
    """
    Build the view of one deck card.

    ``card`` is the card's current Scryfall data, used to fill in printed
    power/toughness; without it the stored data is shown as-is.
    """
    token_types = deck_card_token_types(deck_card)
    ideas = sorted(deck_card.ideas, key=lambda i: i.version, reverse=True)

    power_toughness = None
    if card is not None and not deck_card.is_double_faced:
        power_toughness = format_power_toughness(card.power, card.toughness)

    return DeckCardView(
        id=deck_card.id,
        position=deck_card.position,
        quantity=deck_card.quantity,
        input_line=deck_card.input_line,
        original_name=deck_card.original_name,
        mana_cost=deck_card.mana_cost,
        type_line=deck_card.type_line,
        rules_text=deck_card.rules_text,
        color_identity=deck_card.color_identity,
        cmc=deck_card.cmc,
        is_commander=deck_card.is_commander,
        oracle_id=deck_card.oracle_id,
        scryfall_id=deck_card.scryfall_id,
        is_double_faced=deck_card.is_double_faced,
        card_faces=_backfill_faces(deck_card_faces(deck_card), card),
        produces_tokens=deck_card.produces_tokens,
        token_types=token_types,
        power_toughness=power_toughness,
        user_note=deck_card.user_note,
        ideas=[build_idea_view(i, token_types) for i in ideas],
    )


def build_deck_view(
    deck: DeckDB, cards_by_oracle_id: Mapping[str, CardRecord] | None = None
) -> DeckView:
    """Build the enriched view of a deck loaded with its cards and ideas."""
    lookup = cards_by_oracle_id or {}
    return DeckView(
        id=deck.id,
        name=deck.name,
        theme=deck.theme,
        deck_idea=deck.deck_idea,
        created_at=deck.created_at,
        cards=[
            build_card_view(dc, lookup.get(dc.oracle_id))
            for dc in sorted(deck.cards, key=lambda c: c.position)
        ],
    )


async def fetch_printed_stats(
    scryfall: ScryfallClient, cache: CardCache, deck: DeckDB
) -> dict[str, CardRecord]:
    """
    Get current Scryfall data for a deck's cards, keyed by oracle id.

    Best-effort: a failed lookup is logged and yields an empty mapping.
    """
    oracle_ids = [dc.oracle_id for dc in deck.cards if dc.oracle_id]
    if not oracle_ids:
        return {}
    try:
        return await fetch_cards_with_cache(scryfall, cache, oracle_ids)
    except UpstreamServiceError as e:
        logger.warning("Power/toughness enrichment failed for deck %s: %s", deck.id, e)
        return {}


def current_idea(card: DeckCardView, selected_version: int | None = None) -> IdeaView | None:
    """The chosen idea version if it exists, otherwise the newest."""
    if selected_version is not None:
        for idea in card.ideas:
            if idea.version == selected_version:
                return idea
    return max(card.ideas, key=lambda i: i.version, default=None)


def sort_cards(
    cards: Sequence[DeckCardView],
    key: SortKey | None,
    selected: Mapping[str, int] | None = None,
) -> list[DeckCardView]:
    """
    Order cards for display.

    ``type`` and ``cmc`` break ties by original name; ``nickname`` sorts by the
    current idea's thematic name, case-insensitively. With no key the input
    order is kept.
    """
    chosen = selected or {}

    def nickname(card: DeckCardView) -> str:
        idea = current_idea(card, chosen.get(card.id))
        return (idea.thematic_name if idea else "").lower()

    if key is SortKey.TYPE:
        return sorted(cards, key=lambda c: (c.type_line, c.original_name))
    if key is SortKey.CMC:
        return sorted(cards, key=lambda c: (c.cmc, c.original_name))
    if key is SortKey.NAME:
        return sorted(cards, key=lambda c: c.original_name)
    if key is SortKey.NICKNAME:
        return sorted(cards, key=lambda c: (nickname(c), c.original_name))
    return list(cards)


def parse_selections(values: Sequence[str]) -> dict[str, int]:
    """
    Parse ``<card_id>:<version>`` selections.

    Raises:
        ValueError: If a selection is malformed
    """
    selections: dict[str, int] = {}
    for value in values:
        card_id, sep, version = value.rpartition(":")
        if not sep or not card_id or not version.isdigit():
            msg = f"Invalid selection '{value}', expected <card_id>:<version>"
            raise ValueError(msg)
        selections[card_id] = int(version)
    return selections

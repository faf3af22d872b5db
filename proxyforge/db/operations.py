"""
Database CRUD operations.

Provides async functions for creating and reading decks, deck cards,
proxy ideas and card cache entries. Every write is a single create or
update; nothing here needs a multi-row transaction of its own.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from proxyforge.models.card import CardRecord, CardText, FaceText, TokenType
from proxyforge.models.db import CardCacheDB, DeckCardDB, DeckDB, ProxyIdeaDB
from proxyforge.models.idea import GeneratedIdea
from proxyforge.parsers.deck_list import ParsedLine

# --- Deck Operations ---


async def create_deck(
    session: AsyncSession, name: str, theme: str, deck_idea: str | None = None
) -> DeckDB:
    """Create an empty deck."""
    deck = DeckDB(name=name, theme=theme, deck_idea=deck_idea)
    session.add(deck)
    await session.flush()
    return deck


async def get_deck(session: AsyncSession, deck_id: str) -> DeckDB | None:
    """
    Get a deck with its cards and all of their ideas.

    Returns None if no deck exists with this id.
    """
    result = await session.execute(
        select(DeckDB)
        .where(DeckDB.id == deck_id)
        .options(selectinload(DeckDB.cards).selectinload(DeckCardDB.ideas))
    )
    return result.scalar_one_or_none()


# --- Deck Card Operations ---


async def add_deck_card(
    session: AsyncSession,
    deck_id: str,
    position: int,
    line: ParsedLine,
    card: CardRecord,
    text: CardText,
) -> DeckCardDB:
    """Persist one resolved deck-list line."""
    deck_card = DeckCardDB(
        deck_id=deck_id,
        position=position,
        quantity=line.quantity,
        input_line=line.name,
        original_name=card.name,
        mana_cost=text.mana_cost,
        type_line=text.type_line,
        rules_text=text.rules_text,
        color_identity="".join(card.color_identity),
        cmc=text.cmc,
        is_commander=line.is_commander,
        oracle_id=card.oracle_id,
        scryfall_id=card.id,
        is_double_faced=text.is_double_faced,
        card_faces=[f.to_dict() for f in text.faces] if text.faces else None,
        produces_tokens=text.produces_tokens,
        token_types=[t.to_dict() for t in text.token_types] if text.token_types else None,
        user_note=line.note,
    )
    session.add(deck_card)
    await session.flush()
    return deck_card


async def get_deck_card(session: AsyncSession, deck_card_id: str) -> DeckCardDB | None:
    """Get a deck card with its parent deck loaded."""
    result = await session.execute(
        select(DeckCardDB)
        .where(DeckCardDB.id == deck_card_id)
        .options(selectinload(DeckCardDB.deck))
    )
    return result.scalar_one_or_none()


def deck_card_faces(deck_card: DeckCardDB) -> list[FaceText] | None:
    """Convert stored faces to domain models."""
    if not deck_card.card_faces:
        return None
    return [FaceText.from_dict(f) for f in deck_card.card_faces]


def deck_card_token_types(deck_card: DeckCardDB) -> list[TokenType] | None:
    """Convert stored token types to domain models."""
    if not deck_card.token_types:
        return None
    return [TokenType.from_dict(t) for t in deck_card.token_types]


# --- Proxy Idea Operations ---


async def get_latest_version(session: AsyncSession, deck_card_id: str) -> int:
    """Highest existing idea version for a card, 0 if it has none."""
    result = await session.execute(
        select(func.max(ProxyIdeaDB.version)).where(ProxyIdeaDB.deck_card_id == deck_card_id)
    )
    return int(result.scalar_one_or_none() or 0)


async def create_proxy_idea(
    session: AsyncSession,
    deck_card_id: str,
    version: int,
    idea: GeneratedIdea,
    model_used: str,
) -> ProxyIdeaDB:
    """Persist one generated idea at the given version."""
    db_idea = ProxyIdeaDB(
        deck_card_id=deck_card_id,
        version=version,
        thematic_name=idea.thematic_name,
        thematic_flavor_text=idea.thematic_flavor_text,
        media_reference=idea.media_reference,
        midjourney_prompt=idea.midjourney_prompt,
        card_faces=[f.model_dump() for f in idea.card_faces] if idea.card_faces else None,
        tokens=[t.model_dump() for t in idea.tokens] if idea.tokens else None,
        model_used=model_used,
    )
    session.add(db_idea)
    await session.flush()
    return db_idea


# --- Card Cache Operations ---


async def get_cached_cards(session: AsyncSession, oracle_ids: Iterable[str]) -> list[CardCacheDB]:
    """Get cache entries for the given oracle ids, fresh or not."""
    keys = list(oracle_ids)
    if not keys:
        return []
    result = await session.execute(select(CardCacheDB).where(CardCacheDB.oracle_id.in_(keys)))
    return list(result.scalars().all())


async def upsert_cached_card(session: AsyncSession, card: CardRecord) -> CardCacheDB:
    """
    Insert or update the cache entry for a card.

    Raises ValueError if the card has no oracle id to key on.
    """
    if not card.oracle_id:
        msg = f"Card '{card.name}' has no oracle_id"
        raise ValueError(msg)

    existing = await session.get(CardCacheDB, card.oracle_id)
    if existing:
        existing.json_blob = card.raw
        existing.updated_at = datetime.now(UTC)
        await session.flush()
        return existing

    entry = CardCacheDB(oracle_id=card.oracle_id, json_blob=card.raw, updated_at=datetime.now(UTC))
    session.add(entry)
    await session.flush()
    return entry

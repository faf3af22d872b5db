"""
SQLAlchemy ORM models for persistent storage.

Decks own their cards; cards own their versioned proxy ideas. The card cache
is independent and keyed by Scryfall oracle id.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class DeckDB(Base):
    """A generated proxy deck: a name, a theme and its cards."""

    __tablename__ = "decks"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255))
    theme: Mapped[str] = mapped_column(String(255))
    deck_idea: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    cards: Mapped[list["DeckCardDB"]] = relationship(
        back_populates="deck",
        cascade="all, delete-orphan",
        order_by="DeckCardDB.position",
    )

    def __repr__(self) -> str:
        return f"<DeckDB(id={self.id}, name={self.name})>"


class DeckCardDB(Base):
    """
    One deck-list line resolved to a Scryfall card.

    Created once per generation run. Faces and token types are stored as JSON
    lists, or NULL when the card has none.
    """

    __tablename__ = "deck_cards"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    deck_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("decks.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    input_line: Mapped[str] = mapped_column(String(255))
    original_name: Mapped[str] = mapped_column(String(255), index=True)
    mana_cost: Mapped[str] = mapped_column(String(100), default="")
    type_line: Mapped[str] = mapped_column(String(255), default="")
    rules_text: Mapped[str] = mapped_column(Text, default="")
    color_identity: Mapped[str] = mapped_column(String(10), default="")
    cmc: Mapped[float] = mapped_column(Float, default=0.0)
    is_commander: Mapped[bool] = mapped_column(Boolean, default=False)
    oracle_id: Mapped[str] = mapped_column(String(64), default="")
    scryfall_id: Mapped[str] = mapped_column(String(64), default="")
    is_double_faced: Mapped[bool] = mapped_column(Boolean, default=False)
    card_faces: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    produces_tokens: Mapped[bool] = mapped_column(Boolean, default=False)
    token_types: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    user_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    deck: Mapped["DeckDB"] = relationship(back_populates="cards")
    ideas: Mapped[list["ProxyIdeaDB"]] = relationship(
        back_populates="deck_card",
        cascade="all, delete-orphan",
        order_by="ProxyIdeaDB.version.desc()",
    )

    def __repr__(self) -> str:
        return f"<DeckCardDB(name={self.original_name}, qty={self.quantity})>"


class ProxyIdeaDB(Base):
    """
    One versioned thematic reinterpretation of a deck card.

    Immutable once created; rerolls append a new version.
    """

    __tablename__ = "proxy_ideas"
    __table_args__ = (UniqueConstraint("deck_card_id", "version", name="uq_idea_card_version"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    deck_card_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("deck_cards.id", ondelete="CASCADE"), index=True
    )
    version: Mapped[int] = mapped_column(Integer)
    thematic_name: Mapped[str] = mapped_column(String(255), default="")
    thematic_flavor_text: Mapped[str] = mapped_column(Text, default="")
    media_reference: Mapped[str] = mapped_column(Text, default="")
    midjourney_prompt: Mapped[str] = mapped_column(Text, default="")
    card_faces: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    tokens: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    model_used: Mapped[str] = mapped_column(String(100), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    deck_card: Mapped["DeckCardDB"] = relationship(back_populates="ideas")

    def __repr__(self) -> str:
        return f"<ProxyIdeaDB(card={self.deck_card_id}, v={self.version})>"


class CardCacheDB(Base):
    """
    Last-fetched Scryfall JSON for a card, keyed by oracle id.

    Entries older than the configured freshness window are re-fetched.
    """

    __tablename__ = "card_cache"

    oracle_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    json_blob: Mapped[dict[str, Any]] = mapped_column(JSON)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<CardCacheDB(oracle_id={self.oracle_id})>"

"""Tests for database operations."""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from proxyforge.db.operations import (
    add_deck_card,
    create_deck,
    create_proxy_idea,
    deck_card_faces,
    deck_card_token_types,
    get_cached_cards,
    get_deck,
    get_deck_card,
    get_latest_version,
    upsert_cached_card,
)
from proxyforge.models.card import CardRecord
from proxyforge.models.idea import GeneratedIdea, ThematicPart
from proxyforge.parsers.deck_list import ParsedLine
from proxyforge.services.card_text import normalize_card

from factories import scryfall_card, token_part

DELVER = scryfall_card(
    "Delver of Secrets // Insectile Aberration",
    type_line="Creature — Human Wizard // Creature — Human Insect",
    mana_cost="",
    card_faces=[
        {
            "name": "Delver of Secrets",
            "type_line": "Creature — Human Wizard",
            "mana_cost": "{U}",
            "oracle_text": "At the beginning of your upkeep, look at the top card.",
            "power": "1",
            "toughness": "1",
        },
        {
            "name": "Insectile Aberration",
            "type_line": "Creature — Human Insect",
            "mana_cost": "",
            "oracle_text": "Flying",
            "power": "3",
            "toughness": "2",
        },
    ],
)
RAISE = scryfall_card(
    "Raise the Alarm",
    mana_cost="{1}{W}",
    color_identity=("W",),
    oracle_text="Create two 1/1 white Soldier creature tokens.",
    all_parts=[token_part("Soldier", "Token Creature — Soldier")],
)


async def add_card(session: AsyncSession, deck_id: str, data: dict, position: int = 0):
    card = CardRecord.from_scryfall(data)
    line = ParsedLine(2, card.name.lower(), note="note", is_commander=False)
    return await add_deck_card(session, deck_id, position, line, card, normalize_card(card))


class TestDeckOperations:
    async def test_create_and_get_deck(self, session: AsyncSession) -> None:
        deck = await create_deck(session, "Deck", "Marvel", deck_idea="Heroes")
        await add_card(session, deck.id, RAISE, position=1)
        await add_card(session, deck.id, DELVER, position=0)
        await session.commit()
        session.expunge_all()

        loaded = await get_deck(session, deck.id)

        assert loaded is not None
        assert loaded.deck_idea == "Heroes"
        assert [c.position for c in loaded.cards] == [0, 1]

    async def test_get_missing_deck(self, session: AsyncSession) -> None:
        assert await get_deck(session, "missing") is None


class TestDeckCardOperations:
    async def test_faces_round_trip(self, session: AsyncSession) -> None:
        deck = await create_deck(session, "Deck", "Marvel")
        deck_card = await add_card(session, deck.id, DELVER)

        faces = deck_card_faces(deck_card)

        assert deck_card.is_double_faced is True
        assert [f.name for f in faces] == ["Delver of Secrets", "Insectile Aberration"]
        assert faces[1].power_toughness == "3/2"
        assert deck_card_token_types(deck_card) is None

    async def test_token_types_round_trip(self, session: AsyncSession) -> None:
        deck = await create_deck(session, "Deck", "Marvel")
        deck_card = await add_card(session, deck.id, RAISE)

        token_types = deck_card_token_types(deck_card)

        assert deck_card.produces_tokens is True
        assert deck_card.quantity == 2
        assert deck_card.input_line == "raise the alarm"
        assert deck_card.color_identity == "W"
        assert [(t.name, t.power_toughness) for t in token_types] == [("Soldier", "1/1")]
        assert deck_card_faces(deck_card) is None

    async def test_get_deck_card_loads_deck(self, session: AsyncSession) -> None:
        deck = await create_deck(session, "Deck", "Marvel")
        deck_card = await add_card(session, deck.id, RAISE)
        await session.commit()
        session.expunge_all()

        loaded = await get_deck_card(session, deck_card.id)

        assert loaded is not None
        assert loaded.deck.theme == "Marvel"
        assert await get_deck_card(session, "missing") is None


class TestProxyIdeaOperations:
    async def test_latest_version(self, session: AsyncSession) -> None:
        deck = await create_deck(session, "Deck", "Marvel")
        deck_card = await add_card(session, deck.id, RAISE)

        assert await get_latest_version(session, deck_card.id) == 0

        for version in (1, 2):
            await create_proxy_idea(
                session,
                deck_card.id,
                version,
                GeneratedIdea(original_name="Raise the Alarm"),
                "m",
            )

        assert await get_latest_version(session, deck_card.id) == 2

    async def test_tokens_stored_snake_case(self, session: AsyncSession) -> None:
        deck = await create_deck(session, "Deck", "Marvel")
        deck_card = await add_card(session, deck.id, RAISE)
        idea = GeneratedIdea.model_validate(
            {
                "originalName": "Raise the Alarm",
                "tokens": [{"thematicName": "Agent", "midjourneyPrompt": "suit"}],
            }
        )

        saved = await create_proxy_idea(session, deck_card.id, 1, idea, "m")

        assert saved.tokens == [
            ThematicPart(thematic_name="Agent", midjourney_prompt="suit").model_dump()
        ]
        assert saved.card_faces is None

    async def test_duplicate_version_rejected(self, session: AsyncSession) -> None:
        deck = await create_deck(session, "Deck", "Marvel")
        deck_card = await add_card(session, deck.id, RAISE)
        idea = GeneratedIdea(original_name="Raise the Alarm")
        await create_proxy_idea(session, deck_card.id, 1, idea, "m")

        with pytest.raises(IntegrityError):
            await create_proxy_idea(session, deck_card.id, 1, idea, "m")


class TestCardCacheOperations:
    async def test_upsert_and_get(self, session: AsyncSession) -> None:
        card = CardRecord.from_scryfall(RAISE)

        await upsert_cached_card(session, card)
        await upsert_cached_card(session, card)

        entries = await get_cached_cards(session, [card.oracle_id, "other"])
        assert [e.oracle_id for e in entries] == [card.oracle_id]
        assert entries[0].json_blob["name"] == "Raise the Alarm"

    async def test_upsert_requires_oracle_id(self, session: AsyncSession) -> None:
        with pytest.raises(ValueError):
            await upsert_cached_card(session, CardRecord.from_scryfall({"name": "Nameless"}))

    async def test_get_with_no_keys(self, session: AsyncSession) -> None:
        assert await get_cached_cards(session, []) == []

"""
Deck Assembly Pipeline.

Turns a parsed deck list and a theme into a persisted deck with a first
thematic idea per card, and appends new idea versions on reroll.

All writes go through the caller's session. An upstream failure propagates
before the session commits, so a failed generation leaves no partial deck.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from proxyforge.config import settings
from proxyforge.db.operations import (
    add_deck_card,
    create_deck,
    create_proxy_idea,
    deck_card_faces,
    deck_card_token_types,
    get_deck_card,
    get_latest_version,
)
from proxyforge.models.card import CardRecord, TokenHint
from proxyforge.models.db import DeckCardDB, ProxyIdeaDB
from proxyforge.models.failure import IdeaGenerationError
from proxyforge.models.idea import GeneratedIdea, LlmCardInput
from proxyforge.parsers.deck_list import ParsedLine
from proxyforge.services.card_cache import CardCache
from proxyforge.services.card_text import normalize_card
from proxyforge.services.scryfall import ScryfallClient, by_name

logger = logging.getLogger(__name__)

INITIAL_VERSION = 1


class IdeaSource(Protocol):
    """Anything that can turn card inputs into generated ideas."""

    model: str

    async def generate(
        self,
        theme: str,
        cards: Sequence[LlmCardInput],
        deck_idea: str | None = None,
    ) -> list[GeneratedIdea]: ...


class DeckCardNotFoundError(LookupError):
    """Raised when a reroll names a deck card that does not exist."""

    def __init__(self, deck_card_id: str):
        self.deck_card_id = deck_card_id
        super().__init__(f"Deck card '{deck_card_id}' not found")


@dataclass
class GenerationResult:
    """Outcome of a generation run."""

    deck_id: str
    not_found: list[str] = field(default_factory=list)


def build_llm_input(
    deck_card: DeckCardDB,
    token_hints: Sequence[TokenHint] = (),
    user_note: str | None = None,
) -> LlmCardInput:
    """Describe a persisted deck card to the model."""
    faces = deck_card_faces(deck_card)
    token_types = deck_card_token_types(deck_card)
    return LlmCardInput(
        original_name=deck_card.original_name,
        type_line=deck_card.type_line,
        mana_cost=deck_card.mana_cost,
        rules_text=deck_card.rules_text,
        is_legendary="Legendary" in deck_card.type_line,
        is_commander=deck_card.is_commander,
        color_identity=list(deck_card.color_identity),
        token_hints=list(token_hints),
        user_note=user_note,
        is_double_faced=deck_card.is_double_faced,
        card_faces=faces,
        produces_tokens=deck_card.produces_tokens,
        token_types=token_types,
    )


def chunked(items: Sequence[LlmCardInput], size: int) -> list[list[LlmCardInput]]:
    """Split ``items`` into consecutive chunks of at most ``size``."""
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def generate_in_chunks(
    generator: IdeaSource,
    theme: str,
    inputs: Sequence[LlmCardInput],
    deck_idea: str | None = None,
    chunk_size: int | None = None,
    concurrency: int | None = None,
) -> list[GeneratedIdea]:
    """
    Generate ideas for every input, a few chunks at a time.

    Each round issues up to ``concurrency`` chunk calls at once and waits for
    all of them; rounds run one after another. Outputs keep chunk order.
    """
    size = chunk_size or settings.generation_chunk_size
    width = concurrency or settings.generation_concurrency
    chunks = chunked(inputs, size)

    outputs: list[GeneratedIdea] = []
    for start in range(0, len(chunks), width):
        results = await asyncio.gather(
            *(
                generator.generate(theme, chunk, deck_idea)
                for chunk in chunks[start : start + width]
            )
        )
        for ideas in results:
            outputs.extend(ideas)
    return outputs


async def resolve_names(
    scryfall: ScryfallClient,
    cache: CardCache,
    names: Sequence[str],
) -> dict[str, CardRecord]:
    """
    Resolve card names to Scryfall cards.

    Names are first looked up in one batch; names the batch did not return
    get one fuzzy lookup each. Resolved cards are cached best-effort.

    Returns:
        Mapping of lower-cased requested name to card. Unresolved names are
        absent.

    Raises:
        UpstreamServiceError: If the batch lookup fails
    """
    result = await scryfall.fetch_collection([by_name(n) for n in names])
    await cache.store(result.cards)

    by_lower_name = {card.name.lower(): card for card in result.cards}
    missing = [n for n in names if n.lower() not in by_lower_name]
    if not missing:
        return by_lower_name

    semaphore = asyncio.Semaphore(settings.fuzzy_lookup_concurrency)

    async def lookup(name: str) -> CardRecord | None:
        async with semaphore:
            return await scryfall.fetch_named_fuzzy(name)

    found = await asyncio.gather(*(lookup(n) for n in missing))
    hits = [card for card in found if card is not None]
    await cache.store(hits)

    for name, card in zip(missing, found, strict=True):
        if card is not None:
            by_lower_name[name.lower()] = card
    return by_lower_name


async def generate_deck(
    session: AsyncSession,
    scryfall: ScryfallClient,
    cache: CardCache,
    generator: IdeaSource,
    deck_name: str,
    theme: str,
    lines: Sequence[ParsedLine],
    deck_idea: str | None = None,
) -> GenerationResult:
    """
    Create a deck from a parsed deck list.

    Every line whose card resolves becomes a deck card, in input order. Each
    deck card gets at most one version-1 idea; among lines naming the same
    card, only the first receives one.

    Raises:
        UpstreamServiceError: If Scryfall or the model fails
        IdeaGenerationError: If the model reply is unusable
    """
    deck = await create_deck(session, deck_name, theme, deck_idea)

    unique_names = list(dict.fromkeys(line.name for line in lines))
    cards = await resolve_names(scryfall, cache, unique_names)
    not_found = [n for n in unique_names if n.lower() not in cards]

    deck_cards: list[DeckCardDB] = []
    inputs: list[LlmCardInput] = []
    position = 0
    for line in lines:
        card = cards.get(line.name.lower())
        if card is None:
            continue
        text = normalize_card(card)
        deck_card = await add_deck_card(session, deck.id, position, line, card, text)
        position += 1
        deck_cards.append(deck_card)
        inputs.append(build_llm_input(deck_card, text.token_hints, line.note))

    outputs = await generate_in_chunks(generator, theme, inputs, deck_idea)

    claimed: set[str] = set()
    for idea in outputs:
        target = next((dc for dc in deck_cards if dc.original_name == idea.original_name), None)
        if target is None:
            logger.warning("Model returned an idea for unknown card %r", idea.original_name)
            continue
        if target.id in claimed:
            continue
        claimed.add(target.id)
        await create_proxy_idea(session, target.id, INITIAL_VERSION, idea, generator.model)

    logger.info(
        "Generated deck %s: %d cards, %d ideas, %d not found",
        deck.id,
        len(deck_cards),
        len(claimed),
        len(not_found),
    )
    return GenerationResult(deck_id=deck.id, not_found=not_found)


async def reroll_card(
    session: AsyncSession,
    generator: IdeaSource,
    deck_card_id: str,
    theme: str | None = None,
    user_note: str | None = None,
) -> ProxyIdeaDB:
    """
    Generate and store a new idea version for one deck card.

    The theme defaults to the deck's theme and the note to the one given on
    the original deck-list line. The deck's guidance text is sent as well.

    Raises:
        DeckCardNotFoundError: If the deck card does not exist
        UpstreamServiceError: If the model fails
        IdeaGenerationError: If the model reply is unusable or empty
    """
    deck_card = await get_deck_card(session, deck_card_id)
    if deck_card is None:
        raise DeckCardNotFoundError(deck_card_id)

    reroll_theme = theme or deck_card.deck.theme
    note = user_note if user_note is not None else deck_card.user_note
    card_input = build_llm_input(deck_card, user_note=note)

    ideas = await generator.generate(reroll_theme, [card_input], deck_card.deck.deck_idea)
    if not ideas:
        raise IdeaGenerationError("Reply contained no cards")

    version = await get_latest_version(session, deck_card.id) + 1
    saved = await create_proxy_idea(session, deck_card.id, version, ideas[0], generator.model)

    logger.info("Rerolled card %s to version %d", deck_card.id, version)
    return saved

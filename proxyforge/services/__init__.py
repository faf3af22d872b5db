"""
ProxyForge services.

Card lookup, token analysis, idea generation and deck assembly.
"""

from proxyforge.services.card_cache import CardCache, fetch_cards_with_cache
from proxyforge.services.card_text import normalize_card
from proxyforge.services.deck_pipeline import (
    DeckCardNotFoundError,
    GenerationResult,
    IdeaSource,
    build_llm_input,
    generate_deck,
    generate_in_chunks,
    reroll_card,
)
from proxyforge.services.deck_view import (
    DeckCardView,
    DeckView,
    IdeaView,
    SortKey,
    build_deck_view,
    current_idea,
    fetch_printed_stats,
    parse_selections,
    sort_cards,
)
from proxyforge.services.exporter import deck_to_csv, deck_to_json, export_filename
from proxyforge.services.idea_generator import IdeaGenerator
from proxyforge.services.rate_limit import TokenBucketLimiter, get_rate_limiter
from proxyforge.services.scryfall import CollectionResult, ScryfallClient
from proxyforge.services.token_alignment import align_token_types
from proxyforge.services.token_extraction import resolve_token_types

__all__ = [
    "CardCache",
    "CollectionResult",
    "DeckCardNotFoundError",
    "DeckCardView",
    "DeckView",
    "GenerationResult",
    "IdeaGenerator",
    "IdeaSource",
    "IdeaView",
    "ScryfallClient",
    "SortKey",
    "TokenBucketLimiter",
    "align_token_types",
    "build_deck_view",
    "build_llm_input",
    "current_idea",
    "deck_to_csv",
    "deck_to_json",
    "export_filename",
    "fetch_cards_with_cache",
    "fetch_printed_stats",
    "generate_deck",
    "generate_in_chunks",
    "get_rate_limiter",
    "normalize_card",
    "parse_selections",
    "reroll_card",
    "resolve_token_types",
    "sort_cards",
]

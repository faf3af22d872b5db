"""
Deck API endpoints.

Provides the enriched deck view and CSV/JSON exports.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from proxyforge.api.dependencies import get_card_cache, get_scryfall_client
from proxyforge.db.database import get_session
from proxyforge.db.operations import get_deck
from proxyforge.models.db import DeckDB
from proxyforge.services.card_cache import CardCache
from proxyforge.services.deck_view import (
    DeckView,
    SortKey,
    build_deck_view,
    fetch_printed_stats,
    parse_selections,
    sort_cards,
)
from proxyforge.services.exporter import deck_to_csv, deck_to_json, export_filename
from proxyforge.services.scryfall import ScryfallClient

router = APIRouter(prefix="/decks", tags=["decks"])

EXPORT_FORMATS = {"csv", "json"}


async def _load_deck(session: AsyncSession, deck_id: str) -> DeckDB:
    deck = await get_deck(session, deck_id)
    if deck is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Deck not found",
        )
    return deck


@router.get("/{deck_id}", response_model=DeckView)
async def get_deck_view(
    deck_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    scryfall: Annotated[ScryfallClient, Depends(get_scryfall_client)],
    cache: Annotated[CardCache, Depends(get_card_cache)],
    sort: SortKey | None = None,
) -> DeckView:
    """
    Get a deck with its cards and every idea version.

    Printed power/toughness is filled in from Scryfall when it can be fetched.
    """
    deck = await _load_deck(session, deck_id)
    view = build_deck_view(deck, await fetch_printed_stats(scryfall, cache, deck))
    if sort is not None:
        view.cards = sort_cards(view.cards, sort)
    return view


@router.get("/{deck_id}/export")
async def export_deck(
    deck_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    scryfall: Annotated[ScryfallClient, Depends(get_scryfall_client)],
    cache: Annotated[CardCache, Depends(get_card_cache)],
    format: str = "json",
    select: Annotated[list[str] | None, Query()] = None,
) -> Response:
    """
    Download a deck as CSV or JSON.

    ``select`` picks an idea version per card as ``<card_id>:<version>`` and
    may be repeated; cards without a selection use their newest idea.
    """
    if format not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported export format '{format}'. Valid: {sorted(EXPORT_FORMATS)}",
        )
    try:
        selections = parse_selections(select or [])
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    deck = await _load_deck(session, deck_id)
    view = build_deck_view(deck, await fetch_printed_stats(scryfall, cache, deck))

    if format == "csv":
        content = deck_to_csv(view, selections)
        media_type = "text/csv; charset=utf-8"
    else:
        content = deck_to_json(view)
        media_type = "application/json"

    return Response(
        content=content,
        media_type=media_type,
        headers={
            "Content-Disposition": f"attachment; filename={export_filename(deck.name, format)}"
        },
    )

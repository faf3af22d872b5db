"""
Database-backed cache of Scryfall card data.

Entries are keyed by oracle id and considered fresh for a fixed window
(7 days by default). Writes are best-effort: ``store`` reports success or
failure, and callers are free to ignore a failure. Cache writes run in their
own short sessions so a failed write never touches the caller's transaction.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from proxyforge.config import settings
from proxyforge.db.operations import get_cached_cards, upsert_cached_card
from proxyforge.models.card import CardRecord
from proxyforge.services.scryfall import ScryfallClient, by_oracle_id

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class CardCache:
    """Card cache over a session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._session_factory = session_factory
        self.ttl = ttl if ttl is not None else timedelta(days=settings.card_cache_ttl_days)
        self._clock = clock

    async def get_fresh(self, oracle_ids: Iterable[str]) -> dict[str, CardRecord]:
        """
        Get cached cards younger than the freshness window.

        Returns an empty mapping if the cache cannot be read.
        """
        keys = [k for k in oracle_ids if k]
        if not keys:
            return {}

        now = self._clock()
        try:
            async with self._session_factory() as session:
                entries = await get_cached_cards(session, keys)
        except SQLAlchemyError as e:
            logger.warning("CARD_CACHE_READ_FAILED", extra={"error": str(e)})
            return {}

        return {
            entry.oracle_id: CardRecord.from_scryfall(entry.json_blob)
            for entry in entries
            if now - _as_utc(entry.updated_at) < self.ttl
        }

    async def store(self, cards: Iterable[CardRecord]) -> bool:
        """
        Upsert cards into the cache.

        Cards without an oracle id are skipped. Returns False if the write
        failed; the failure is logged and safe to ignore.
        """
        to_store = [c for c in cards if c.oracle_id]
        if not to_store:
            return True

        try:
            async with self._session_factory() as session:
                for card in to_store:
                    await upsert_cached_card(session, card)
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning(
                "CARD_CACHE_WRITE_FAILED",
                extra={"cards": len(to_store), "error": str(e)},
            )
            return False
        return True


async def fetch_cards_with_cache(
    scryfall: ScryfallClient,
    cache: CardCache,
    oracle_ids: Iterable[str],
) -> dict[str, CardRecord]:
    """
    Get cards by oracle id, preferring fresh cache entries.

    Stale or missing entries are fetched from Scryfall and written back to
    the cache. Returns a mapping of oracle id to card.

    Raises:
        UpstreamServiceError: If the Scryfall lookup fails
    """
    keys = list(dict.fromkeys(k for k in oracle_ids if k))
    cards = await cache.get_fresh(keys)

    missing = [k for k in keys if k not in cards]
    if missing:
        result = await scryfall.fetch_collection([by_oracle_id(k) for k in missing])
        await cache.store(result.cards)
        for card in result.cards:
            cards[card.oracle_id or card.id] = card

    return cards

"""
Scryfall API client.

Batch card lookup by identifier and single-name fuzzy lookup.
API docs: https://scryfall.com/docs/api/cards/collection
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from proxyforge.config import settings
from proxyforge.models.card import CardRecord
from proxyforge.models.failure import UpstreamServiceError
from proxyforge.services.retry import call_with_retry, is_transient_status

logger = logging.getLogger(__name__)

USER_AGENT = "ProxyForge/1.0"

# Scryfall rejects collection requests with more identifiers than this
MAX_IDENTIFIERS_PER_REQUEST = 75

# {"name": ...}, {"id": ...}, {"oracle_id": ...} or {"set": ..., "collector_number": ...}
ScryfallIdentifier = dict[str, str]


def by_name(name: str) -> ScryfallIdentifier:
    return {"name": name}


def by_id(scryfall_id: str) -> ScryfallIdentifier:
    return {"id": scryfall_id}


def by_oracle_id(oracle_id: str) -> ScryfallIdentifier:
    return {"oracle_id": oracle_id}


def by_set_number(set_code: str, collector_number: str) -> ScryfallIdentifier:
    return {"set": set_code, "collector_number": collector_number}


@dataclass
class CollectionResult:
    """Cards found by a collection lookup, plus identifiers Scryfall did not find."""

    cards: list[CardRecord] = field(default_factory=list)
    not_found: list[ScryfallIdentifier] = field(default_factory=list)


def _is_transient(exc: Exception) -> bool:
    return isinstance(exc, httpx.HTTPStatusError) and is_transient_status(
        exc.response.status_code
    )


class ScryfallClient:
    """
    Async Scryfall client.

    Usage:
        async with ScryfallClient() as scryfall:
            result = await scryfall.fetch_collection([by_name("Sol Ring")])
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_url = (base_url or settings.scryfall_api_url).rstrip("/")
        self.max_retries = settings.upstream_max_retries if max_retries is None else max_retries
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.scryfall_timeout_seconds,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        self._sleep = sleep

    async def __aenter__(self) -> "ScryfallClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async def attempt() -> httpx.Response:
            response = await self._client.request(method, f"{self.base_url}{path}", **kwargs)
            response.raise_for_status()
            return response

        return await call_with_retry(
            attempt,
            is_transient=_is_transient,
            max_retries=self.max_retries,
            label="scryfall",
            sleep=self._sleep,
        )

    async def fetch_collection(self, identifiers: list[ScryfallIdentifier]) -> CollectionResult:
        """
        Look up many cards at once.

        Identifiers are sent in chunks of 75, Scryfall's per-request limit.

        Raises:
            UpstreamServiceError: If Scryfall fails after retries
        """
        result = CollectionResult()
        for start in range(0, len(identifiers), MAX_IDENTIFIERS_PER_REQUEST):
            chunk = identifiers[start : start + MAX_IDENTIFIERS_PER_REQUEST]
            try:
                response = await self._request(
                    "POST", "/cards/collection", json={"identifiers": chunk}
                )
            except httpx.HTTPStatusError as e:
                raise UpstreamServiceError(
                    "Scryfall", e.response.status_code, e.response.text
                ) from e
            except httpx.RequestError as e:
                raise UpstreamServiceError("Scryfall", None, str(e)) from e

            try:
                data = response.json()
            except ValueError as e:
                raise UpstreamServiceError(
                    "Scryfall", response.status_code, "invalid JSON"
                ) from e
            result.cards.extend(
                CardRecord.from_scryfall(card) for card in data.get("data", []) or []
            )
            result.not_found.extend(data.get("not_found", []) or [])

        logger.info(
            "Scryfall collection lookup: %d requested, %d found",
            len(identifiers),
            len(result.cards),
        )
        return result

    async def fetch_named_fuzzy(self, name: str) -> CardRecord | None:
        """
        Look up one card by fuzzy name match.

        Returns None when Scryfall has no match or the lookup fails; a failed
        lookup never raises.
        """
        try:
            response = await self._request("GET", "/cards/named", params={"fuzzy": name})
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                logger.warning("Fuzzy lookup for %r failed: HTTP %d", name, e.response.status_code)
            return None
        except httpx.RequestError as e:
            logger.warning("Fuzzy lookup for %r failed: %s", name, e)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Fuzzy lookup for %r returned a non-JSON body", name)
            return None
        if not isinstance(data, dict) or data.get("object") == "error":
            return None
        return CardRecord.from_scryfall(data)

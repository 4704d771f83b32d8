"""Batch coordinator: resolves many location records under bounded concurrency.

Records are processed in chunks of ``max_concurrent``.  All items of a chunk
run concurrently and the next chunk starts only after the whole chunk has
finished and the inter-chunk delay has elapsed.  Inside each item every
provider call is additionally throttled by the resolver.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol, TypeVar

from loguru import logger

from ghost_api.lib.geocoder.address import compose_location_query
from ghost_api.lib.geocoder.resolver import DEFAULT_MIN_CONFIDENCE, AddressResolver, SleepFunc

DEFAULT_MAX_CONCURRENT = 3
DEFAULT_CHUNK_DELAY = 2.0


class GeocodableLocation(Protocol):
    """A caller-owned location record that resolution annotates in place."""

    address: str | None
    city: str | None
    state: str | None
    country: str | None
    latitude: float | None
    longitude: float | None
    geocode_confidence: int | None
    geocode_provider: str | None
    geocoded_at: str | None


LocationT = TypeVar("LocationT", bound=GeocodableLocation)


@dataclass
class BatchSummary:
    """Counts describing a finished batch."""

    total: int
    geocoded: int
    resolved: int

    @classmethod
    def from_records(cls, records: Sequence[GeocodableLocation]) -> "BatchSummary":
        return cls(
            total=len(records),
            geocoded=sum(1 for r in records if r.latitude is not None and r.longitude is not None),
            resolved=sum(1 for r in records if r.geocoded_at is not None),
        )


def chunked(items: Sequence[LocationT], size: int) -> list[list[LocationT]]:
    """Split a sequence into consecutive lists of at most ``size`` items."""
    if size < 1:
        msg = f"chunk size must be positive, got {size}"
        raise ValueError(msg)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def needs_geocoding(location: GeocodableLocation) -> bool:
    """Whether a record lacks coordinates but has something to resolve."""
    has_coordinates = location.latitude is not None and location.longitude is not None
    has_text = any(
        value and value.strip() for value in (location.address, location.city, location.country)
    )
    return not has_coordinates and bool(has_text)


class BatchGeocoder:
    """Drives :class:`AddressResolver` over a list of location records.

    Args:
        resolver: The resolution chain.
        chunk_delay: Seconds to wait between chunks (not after the last one).
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        resolver: AddressResolver,
        *,
        chunk_delay: float = DEFAULT_CHUNK_DELAY,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.resolver = resolver
        self._chunk_delay = chunk_delay
        self._sleep = sleep

    async def geocode_batch(
        self,
        locations: Sequence[LocationT],
        *,
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    ) -> list[LocationT]:
        """Resolve every record, annotating successes in place.

        One record failing never affects the others.  Records are returned
        in input order.

        Args:
            locations: Records to resolve.
            min_confidence: Threshold for the full/simplified tiers.
            max_concurrent: Chunk size and concurrency bound.

        Returns:
            The same record objects, in input order.
        """
        chunks = chunked(locations, max_concurrent)
        semaphore = asyncio.Semaphore(max_concurrent)
        results: list[LocationT] = []

        for index, chunk in enumerate(chunks):
            logger.debug(f"Geocoding chunk {index + 1}/{len(chunks)} ({len(chunk)} records)")
            processed = await asyncio.gather(
                *(self._geocode_one(location, min_confidence, semaphore) for location in chunk)
            )
            results.extend(processed)

            if index < len(chunks) - 1:
                await self._sleep(self._chunk_delay)

        summary = BatchSummary.from_records(results)
        logger.info(f"Batch geocoding completed: {summary.resolved} resolved of {summary.total} records")
        return results

    async def _geocode_one(
        self,
        location: LocationT,
        min_confidence: int,
        semaphore: asyncio.Semaphore,
    ) -> LocationT:
        if not compose_location_query(location):
            return location

        async with semaphore:
            try:
                result = await self.resolver.resolve_location(location, min_confidence)
            except Exception:
                logger.exception("Geocoding failed for one batch record; leaving it unresolved")
                result = None

        if result is None:
            location.geocode_confidence = 0
            location.geocode_provider = None
            location.geocoded_at = None
            return location

        location.latitude = result.latitude
        location.longitude = result.longitude
        location.geocode_confidence = result.confidence
        location.geocode_provider = result.provider
        location.geocoded_at = datetime.now(UTC).isoformat()
        return location

"""Content cache for resolved addresses.

Two interchangeable backends share one interface: a process-local dict for
tests and DB-less runs, and a database table written with the store's native
upsert-on-conflict primitive.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import UTC, datetime, timedelta

from sqlalchemy import case, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghost_api.lib.geocoder.base import CacheEntry, CacheStats
from ghost_api.models.geocoding_cache import GeocodingCache

# Columns refreshed when an existing hash is re-resolved
_MUTABLE_COLUMNS = (
    "original_address",
    "normalized_address",
    "latitude",
    "longitude",
    "confidence_score",
    "provider",
    "country_code",
    "city",
    "state",
    "postal_code",
)


class BaseGeocodeCache(ABC):
    """Abstract content cache keyed by address hash."""

    @abstractmethod
    async def get(self, address_hash: str) -> CacheEntry | None:
        """Return the entry for a hash, or None on a miss. Never calls a provider."""

    @abstractmethod
    async def upsert(self, address_hash: str, entry: CacheEntry) -> None:
        """Insert the entry, or overwrite the mutable fields of the existing one."""

    @abstractmethod
    async def stats(self) -> CacheStats:
        """Return operational counters for the cache."""


class InMemoryGeocodeCache(BaseGeocodeCache):
    """Dict-backed cache. Last write wins."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, address_hash: str) -> CacheEntry | None:
        return self._entries.get(address_hash)

    async def upsert(self, address_hash: str, entry: CacheEntry) -> None:
        now = datetime.now(UTC)
        existing = self._entries.get(address_hash)
        created_at = existing.created_at if existing is not None else now
        self._entries[address_hash] = replace(entry, hash=address_hash, created_at=created_at, updated_at=now)

    async def stats(self) -> CacheStats:
        entries = list(self._entries.values())
        if not entries:
            return CacheStats()
        cutoff = datetime.now(UTC) - timedelta(hours=24)
        return CacheStats(
            total_cached=len(entries),
            successful_geocodes=sum(1 for e in entries if e.latitude is not None),
            avg_confidence=sum(e.confidence for e in entries) / len(entries),
            cached_today=sum(1 for e in entries if e.created_at is not None and e.created_at > cutoff),
        )


class DatabaseGeocodeCache(BaseGeocodeCache):
    """Cache backed by the ``geocoding_cache`` table.

    Each operation opens its own short session, so concurrent resolutions
    never share a session.  Upserts use ``INSERT ... ON CONFLICT (address_hash)
    DO UPDATE`` (PostgreSQL or SQLite dialect), never read-then-write.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, address_hash: str) -> CacheEntry | None:
        async with self._session_factory() as session:
            result = await session.execute(select(GeocodingCache).where(GeocodingCache.address_hash == address_hash))
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return _row_to_entry(row)

    async def upsert(self, address_hash: str, entry: CacheEntry) -> None:
        now = datetime.now(UTC)
        values = {
            "address_hash": address_hash,
            "original_address": entry.original_address,
            "normalized_address": entry.normalized_address,
            "latitude": entry.latitude,
            "longitude": entry.longitude,
            "confidence_score": entry.confidence,
            "provider": entry.provider,
            "country_code": entry.country_code[:2] if entry.country_code else None,
            "city": entry.city,
            "state": entry.state,
            "postal_code": entry.postal_code,
            "created_at": now,
            "updated_at": now,
        }
        async with self._session_factory() as session:
            insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
            stmt = insert(GeocodingCache).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[GeocodingCache.address_hash],
                set_={**{col: stmt.excluded[col] for col in _MUTABLE_COLUMNS}, "updated_at": now},
            )
            await session.execute(stmt)
            await session.commit()

    async def stats(self) -> CacheStats:
        cutoff = datetime.now(UTC) - timedelta(hours=24)
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    func.count(GeocodingCache.id).label("total_cached"),
                    func.count(GeocodingCache.latitude).label("successful_geocodes"),
                    func.avg(GeocodingCache.confidence_score).label("avg_confidence"),
                    func.sum(case((GeocodingCache.created_at > cutoff, 1), else_=0)).label("cached_today"),
                )
            )
            row = result.one()
        return CacheStats(
            total_cached=row.total_cached or 0,
            successful_geocodes=row.successful_geocodes or 0,
            avg_confidence=float(row.avg_confidence) if row.avg_confidence is not None else None,
            cached_today=int(row.cached_today or 0),
        )


def _row_to_entry(row: GeocodingCache) -> CacheEntry:
    return CacheEntry(
        hash=row.address_hash,
        original_address=row.original_address,
        normalized_address=row.normalized_address,
        latitude=row.latitude,
        longitude=row.longitude,
        confidence=row.confidence_score,
        provider=row.provider,
        city=row.city,
        state=row.state,
        country_code=row.country_code,
        postal_code=row.postal_code,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )

"""GeocodingCache model: content-addressed cache of resolved coordinates."""

from sqlalchemy import Double, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ghost_api.models.base import Base, TimestampMixin


class GeocodingCache(Base, TimestampMixin):
    """Cached resolution keyed by the SHA-256 hash of the normalized address."""

    __tablename__ = "geocoding_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    original_address: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_address: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Double, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Double, nullable=True)
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    provider: Mapped[str] = mapped_column(String(50), nullable=False, default="nominatim")
    country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        UniqueConstraint("address_hash", name="uq_geocoding_cache_address_hash"),
        Index("idx_geocoding_cache_hash", "address_hash"),
        Index("idx_geocoding_cache_address", "normalized_address"),
    )

"""Pydantic v2 schemas for geocoding operations."""

from pydantic import BaseModel, ConfigDict, Field


class LocationRecord(BaseModel):
    """A caller-owned location, annotated in place by batch resolution.

    Extra keys supplied by the caller (labels, dates, notes) are preserved.
    """

    model_config = ConfigDict(extra="allow")

    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    geocode_confidence: int | None = None
    geocode_provider: str | None = None
    geocoded_at: str | None = None


# --- Single-address geocoding ---


class AddressGeocodeRequest(BaseModel):
    """Request body for POST /geocode/address."""

    address: str = Field(..., min_length=1, max_length=500, description="Freeform address to geocode")
    min_confidence: int | None = Field(default=None, ge=0, le=100, description="Exclusive threshold; server default when omitted")


class AlternativeResponse(BaseModel):
    """A lower-ranked candidate returned alongside the chosen result."""

    model_config = ConfigDict(from_attributes=True)

    latitude: float
    longitude: float
    display_name: str


class GeocodeResultResponse(BaseModel):
    """A resolved coordinate."""

    model_config = ConfigDict(from_attributes=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    confidence: int = Field(..., ge=0, le=100)
    provider: str
    display_name: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    cached: bool = False
    alternatives: list[AlternativeResponse] = Field(default_factory=list)


class AddressGeocodeResponse(BaseModel):
    """Response for POST /geocode/address."""

    success: bool
    result: GeocodeResultResponse | None = None
    cached: bool = False
    message: str | None = None


# --- Batch geocoding ---


class BatchGeocodeRequest(BaseModel):
    """Request body for POST /geocode/batch-enhanced."""

    locations: list[LocationRecord]
    min_confidence: int | None = Field(default=None, ge=0, le=100)
    max_concurrent: int | None = Field(default=None, ge=1, le=10)


class BatchSummaryResponse(BaseModel):
    """Counts for a finished batch."""

    model_config = ConfigDict(from_attributes=True)

    total: int
    geocoded: int
    resolved: int


class BatchGeocodeResponse(BaseModel):
    """Response for POST /geocode/batch-enhanced."""

    results: list[LocationRecord]
    summary: BatchSummaryResponse


# --- Suggestions ---


class SuggestionAddress(BaseModel):
    """Structured components of a suggested address."""

    model_config = ConfigDict(from_attributes=True)

    street: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None


class AddressSuggestionResponse(BaseModel):
    """A ranked autocomplete suggestion."""

    model_config = ConfigDict(from_attributes=True)

    display_name: str
    address: SuggestionAddress
    latitude: float
    longitude: float
    confidence: int


# --- Cache statistics ---


class CacheStatsResponse(BaseModel):
    """Response for GET /geocode/stats."""

    model_config = ConfigDict(from_attributes=True)

    total_cached: int
    successful_geocodes: int
    avg_confidence: float | None = None
    cached_today: int

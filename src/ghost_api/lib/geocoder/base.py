"""Provider client interface and the value types shared across the geocoder."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


def _check_coordinates(latitude: float, longitude: float) -> None:
    if not (-90 <= latitude <= 90):
        msg = f"latitude must be between -90 and 90, got {latitude}"
        raise ValueError(msg)
    if not (-180 <= longitude <= 180):
        msg = f"longitude must be between -180 and 180, got {longitude}"
        raise ValueError(msg)


@dataclass
class CandidateAddress:
    """Structured address components reported by a provider."""

    street: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    country_code: str | None = None
    postal_code: str | None = None


@dataclass
class Candidate:
    """A single ranked hit returned by a provider for one query string."""

    latitude: float
    longitude: float
    display_name: str = ""
    place_class: str | None = None
    place_type: str | None = None
    importance: float | None = None
    address: CandidateAddress = field(default_factory=CandidateAddress)

    def __post_init__(self) -> None:
        _check_coordinates(self.latitude, self.longitude)


@dataclass
class Alternative:
    """A lower-ranked candidate kept alongside the chosen result."""

    latitude: float
    longitude: float
    display_name: str


@dataclass
class GeocodeResult:
    """Resolved coordinate for one query, with its confidence and origin."""

    latitude: float
    longitude: float
    confidence: int
    provider: str
    display_name: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    cached: bool = False
    alternatives: list[Alternative] = field(default_factory=list)

    def __post_init__(self) -> None:
        _check_coordinates(self.latitude, self.longitude)
        if not (0 <= self.confidence <= 100):
            msg = f"confidence must be between 0 and 100, got {self.confidence}"
            raise ValueError(msg)


@dataclass
class CacheEntry:
    """A durable cache row keyed by address hash."""

    hash: str
    original_address: str
    normalized_address: str
    latitude: float | None
    longitude: float | None
    confidence: int
    provider: str
    city: str | None = None
    state: str | None = None
    country_code: str | None = None
    postal_code: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_result(self) -> GeocodeResult | None:
        """Convert the row back into a cached GeocodeResult.

        Returns:
            GeocodeResult flagged ``cached=True``, or None if the row carries
            no coordinates.
        """
        if self.latitude is None or self.longitude is None:
            return None
        return GeocodeResult(
            latitude=self.latitude,
            longitude=self.longitude,
            confidence=self.confidence,
            provider=self.provider,
            city=self.city,
            state=self.state,
            country=self.country_code,
            postal_code=self.postal_code,
            cached=True,
        )


@dataclass
class CacheStats:
    """Operational counters for the content cache."""

    total_cached: int = 0
    successful_geocodes: int = 0
    avg_confidence: float | None = None
    cached_today: int = 0


class GeocodingProviderError(Exception):
    """Raised when a geocoding provider experiences a transport or service error.

    Distinguishes provider failures (timeout, HTTP error, connection error)
    from a successful response with no match (which returns an empty list).

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider_name}: {message}")


class BaseGeocoder(ABC):
    """Abstract provider client. All lookup providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this geocoder provider."""

    @abstractmethod
    async def search(self, query: str, limit: int | None = None) -> list[Candidate]:
        """Look up one query string.

        Args:
            query: Free-text search term.
            limit: Maximum number of candidates to request.

        Returns:
            Candidates in provider rank order; empty when nothing matched.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """

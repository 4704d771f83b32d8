"""OpenStreetMap Nominatim geocoder provider.

Uses the Nominatim search API (https://nominatim.org/release-docs/develop/api/Search/)
for address-to-coordinate resolution. Free but rate-limited to 1 req/sec, so
callers are expected to throttle.
"""

from typing import Any

import httpx
from loguru import logger

from ghost_api.lib.geocoder.base import (
    BaseGeocoder,
    Candidate,
    CandidateAddress,
    GeocodingProviderError,
)

DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org"
DEFAULT_USER_AGENT = "GHOST-OSINT-CRM/2.0 (OSINT Investigation Tool)"
DEFAULT_LIMIT = 5


class NominatimGeocoder(BaseGeocoder):
    """OpenStreetMap Nominatim provider client.

    The HTTP client is owned by the caller, so one connection pool can be
    shared across the application and replaced with ``httpx.MockTransport``
    in tests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        email: str = "",
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self._client = client
        self._search_url = f"{base_url.rstrip('/')}/search"
        self._user_agent = user_agent
        self._email = email
        self._default_limit = default_limit

    @property
    def provider_name(self) -> str:
        return "nominatim"

    async def search(self, query: str, limit: int | None = None) -> list[Candidate]:
        """Search Nominatim for a free-text query.

        Args:
            query: Free-text search term.
            limit: Maximum candidates to request (defaults to the client's limit).

        Returns:
            Candidates in Nominatim rank order; empty list if nothing matched.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params: dict[str, str | int] = {
            "q": query,
            "format": "json",
            "limit": limit or self._default_limit,
            "addressdetails": 1,
        }
        if self._email:
            params["email"] = self._email

        headers = {"User-Agent": self._user_agent}

        try:
            response = await self._client.get(self._search_url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Nominatim geocoder timeout for query (redacted)")
            raise GeocodingProviderError("nominatim", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Nominatim geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "nominatim",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TransportError as e:
            logger.warning("Nominatim geocoder connection error")
            raise GeocodingProviderError("nominatim", "Connection to geocoding provider failed") from e
        except ValueError as e:
            logger.warning("Nominatim geocoder returned a non-JSON body")
            raise GeocodingProviderError("nominatim", f"Failed to decode response: {e}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Nominatim geocoder request failed: {type(e).__name__}")
            raise GeocodingProviderError("nominatim", f"Request failed: {e}") from e
        except Exception as e:
            logger.exception("Nominatim geocoder unexpected error")
            raise GeocodingProviderError("nominatim", f"Unexpected error: {e}") from e

        return self._parse_response(data)

    def _parse_response(self, data: Any) -> list[Candidate]:
        """Parse a Nominatim search response into candidates.

        Rows with missing or out-of-range coordinates are skipped.

        Args:
            data: Raw JSON response (list of places) from Nominatim.

        Returns:
            Parsed candidates in response order.

        Raises:
            GeocodingProviderError: If the payload is not a list.
        """
        if not data:
            return []
        if not isinstance(data, list):
            msg = f"Expected a list of places, got {type(data).__name__}"
            raise GeocodingProviderError("nominatim", msg)

        candidates: list[Candidate] = []
        for place in data:
            try:
                candidates.append(
                    Candidate(
                        latitude=float(place["lat"]),
                        longitude=float(place["lon"]),
                        display_name=place.get("display_name") or "",
                        place_class=place.get("class"),
                        place_type=place.get("type"),
                        importance=self._parse_importance(place.get("importance")),
                        address=self._parse_address(place.get("address") or {}),
                    )
                )
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping unparseable Nominatim place: {e}")
        return candidates

    @staticmethod
    def _parse_importance(value: Any) -> float | None:
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _parse_address(details: dict[str, Any]) -> CandidateAddress:
        """Map Nominatim ``addressdetails`` onto structured components."""
        road = details.get("road")
        house_number = details.get("house_number")
        street = f"{house_number} {road}" if house_number and road else road
        country_code = details.get("country_code")
        return CandidateAddress(
            street=street,
            city=details.get("city") or details.get("town") or details.get("village"),
            state=details.get("state") or details.get("region"),
            country=details.get("country"),
            country_code=country_code.upper() if country_code else None,
            postal_code=details.get("postcode"),
        )

"""Address autocomplete backed directly by the provider (no cache, no fallbacks)."""

from dataclasses import dataclass, field

from loguru import logger

from ghost_api.lib.geocoder.base import BaseGeocoder, CandidateAddress, GeocodingProviderError
from ghost_api.lib.geocoder.scoring import DEFAULT_WEIGHTS, ConfidenceWeights, calculate_confidence

MIN_QUERY_LENGTH = 3
DEFAULT_SUGGESTION_LIMIT = 5


@dataclass
class AddressSuggestion:
    """One ranked autocomplete candidate."""

    display_name: str
    latitude: float
    longitude: float
    confidence: int
    address: CandidateAddress = field(default_factory=CandidateAddress)


class SuggestionService:
    """Ranks provider candidates for a partial query by confidence."""

    def __init__(self, geocoder: BaseGeocoder, *, weights: ConfidenceWeights = DEFAULT_WEIGHTS) -> None:
        self.geocoder = geocoder
        self._weights = weights

    async def get_suggestions(self, query: str | None, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[AddressSuggestion]:
        """Return up to ``limit`` suggestions, highest confidence first.

        Queries shorter than three characters return an empty list without
        contacting the provider; provider failures also yield an empty list.
        """
        if not query or len(query.strip()) < MIN_QUERY_LENGTH:
            return []

        query = query.strip()
        try:
            candidates = await self.geocoder.search(query, limit)
        except GeocodingProviderError as e:
            logger.warning(f"Address suggestion lookup failed: {e}")
            return []

        suggestions = [
            AddressSuggestion(
                display_name=c.display_name,
                latitude=c.latitude,
                longitude=c.longitude,
                confidence=calculate_confidence(c, query, self._weights),
                address=c.address,
            )
            for c in candidates
        ]
        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        return suggestions[:limit]

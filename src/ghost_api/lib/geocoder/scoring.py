"""Heuristic confidence scoring for provider candidates.

The score estimates how well a candidate's display text covers the words of
the original query.  It is a tunable heuristic, not ground truth, but the
default weights are relied on by the resolution thresholds (30 / 25 / 20).
"""

import math
import re
from dataclasses import dataclass

from ghost_api.lib.geocoder.base import Candidate

_TOKEN_SPLIT = re.compile(r"[\s,]+")


@dataclass(frozen=True)
class ConfidenceWeights:
    """Weights for :func:`calculate_confidence`."""

    base: int = 50
    max_token_bonus: int = 40
    generic_place_penalty: int = 10
    importance_multiplier: int = 10
    min_token_length: int = 3
    fallback: int = 30
    floor: int = 0
    ceiling: int = 100


DEFAULT_WEIGHTS = ConfidenceWeights()


def tokenize(text: str, min_length: int = DEFAULT_WEIGHTS.min_token_length) -> list[str]:
    """Split on whitespace and commas, keeping tokens of at least ``min_length`` chars."""
    return [t for t in _TOKEN_SPLIT.split(text.lower()) if len(t) >= min_length]


def is_generic_place(candidate: Candidate) -> bool:
    """Whether the candidate is a village-level place."""
    return candidate.place_class == "place" and candidate.place_type == "village"


def token_overlap(query_tokens: list[str], candidate_tokens: list[str]) -> float:
    """Fraction of query tokens with a substring match in either direction."""
    if not query_tokens:
        return 0.0
    matched = sum(1 for q in query_tokens if any(q in c or c in q for c in candidate_tokens))
    return matched / len(query_tokens)


def calculate_confidence(
    candidate: Candidate,
    original_query: str,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS,
) -> int:
    """Rate how well a candidate matches the query that produced it.

    Starts at ``weights.base``, adds up to ``weights.max_token_bonus`` for
    token overlap, subtracts ``weights.generic_place_penalty`` for
    village-level places, adds ``importance * weights.importance_multiplier``,
    then rounds and clamps.

    Args:
        candidate: Provider candidate.
        original_query: The query string sent to the provider.
        weights: Scoring weights.

    Returns:
        Integer confidence in ``[weights.floor, weights.ceiling]``.
    """
    if not candidate.display_name or not original_query or not original_query.strip():
        return weights.fallback

    query_tokens = tokenize(original_query, weights.min_token_length)
    candidate_tokens = tokenize(candidate.display_name, weights.min_token_length)

    score = float(weights.base)
    score += token_overlap(query_tokens, candidate_tokens) * weights.max_token_bonus

    if is_generic_place(candidate):
        score -= weights.generic_place_penalty
    if candidate.importance:
        score += candidate.importance * weights.importance_multiplier

    # Half-up rounding, so 72.5 scores 73
    return int(min(weights.ceiling, max(weights.floor, math.floor(score + 0.5))))

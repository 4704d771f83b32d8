"""Address normalization, content hashing, and simplification.

Normalized strings are the cache identity of an address: two inputs that
normalize to the same string share one cache row.
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Protocol

# Street-type tokens pass through normalization verbatim (neither abbreviated nor expanded)
STREET_TYPES: tuple[str, ...] = (
    "street",
    "st",
    "avenue",
    "ave",
    "road",
    "rd",
    "boulevard",
    "blvd",
    "drive",
    "dr",
    "lane",
    "ln",
    "court",
    "ct",
    "place",
    "pl",
)

_DISALLOWED_CHARS = re.compile(r"[^\w\s,.-]")
_WHITESPACE = re.compile(r"\s+")

# Simplification patterns, applied in order
_UNIT_PATTERN = re.compile(r"\b(apt|apartment|unit|ste|suite|#)\s*\d+.*$", re.IGNORECASE)
_ORDINAL_PATTERN = re.compile(r"\b\d+[a-z]?\s+(st|nd|rd|th)\s+", re.IGNORECASE)
_FLOOR_PATTERN = re.compile(r"\s+floor\s*\d+.*$", re.IGNORECASE)


@dataclass(frozen=True)
class NormalizedQuery:
    """Canonical address text plus its content hash."""

    original: str
    normalized: str
    hash: str

    @property
    def is_empty(self) -> bool:
        return not self.normalized


class SupportsLocation(Protocol):
    """Anything exposing the four free-text location fields."""

    address: str | None
    city: str | None
    state: str | None
    country: str | None


def normalize_address(address: str | None) -> str:
    """Canonicalize a free-text address for cache keying.

    Lower-cases, drops characters other than word characters, whitespace,
    comma, period and hyphen, collapses whitespace, and trims.  Street-type
    tokens are kept as written.

    Args:
        address: Raw address text.

    Returns:
        Normalized string; empty for blank input.
    """
    if not address or not address.strip():
        return ""

    result = address.lower()
    result = _DISALLOWED_CHARS.sub("", result)
    result = _WHITESPACE.sub(" ", result)
    return result.strip()


def hash_normalized(normalized: str) -> str:
    """SHA-256 hex digest of an already-normalized address."""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def address_hash(address: str | None) -> str:
    """Content hash of an address after normalization."""
    return hash_normalized(normalize_address(address))


def normalize_query(address: str | None) -> NormalizedQuery:
    """Normalize an address and derive its cache key in one step."""
    normalized = normalize_address(address)
    return NormalizedQuery(original=address or "", normalized=normalized, hash=hash_normalized(normalized))


def simplify_address(address: str) -> str:
    """Strip unit numbers, ordinal street prefixes, and floor indicators.

    Examples:
        >>> simplify_address("99 Nowhere Ln, Apt 4, Faketown")
        '99 Nowhere Ln,'
        >>> simplify_address("10 Main St floor 3")
        '10 Main St'

    Args:
        address: Address text (original casing is preserved).

    Returns:
        The simplified address, trimmed.  Equal to the input when nothing
        was stripped.
    """
    result = _UNIT_PATTERN.sub("", address)
    result = _ORDINAL_PATTERN.sub("", result, count=1)
    result = _FLOOR_PATTERN.sub("", result)
    return result.strip()


def compose_location_query(location: SupportsLocation) -> str:
    """Join the non-blank address, city, state and country with ", "."""
    parts = [location.address, location.city, location.state, location.country]
    return ", ".join(p.strip() for p in parts if p and p.strip())

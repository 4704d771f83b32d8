"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from ghost_api.models.geocoding_cache import GeocodingCache

__all__ = [
    "GeocodingCache",
]

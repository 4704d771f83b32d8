"""GHOST API: investigation back end with cached, rate-limited address geocoding."""

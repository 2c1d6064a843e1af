"""Process-wide caches owned by AppState."""

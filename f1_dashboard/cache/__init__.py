"""In-memory TTL cache shared by the reconciliation layer."""
from f1_dashboard.cache.store import CacheEntry, CacheStore

__all__ = ["CacheEntry", "CacheStore"]

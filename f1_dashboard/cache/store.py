"""
In-memory key/value cache with per-entry expiry.

Expired entries are dropped lazily on access and by a periodic background
sweep. The sweep runs on its own daemon thread, so all map access goes
through a single lock that is never held across I/O.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from f1_dashboard.utils.logger import logger


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class CacheStore:
    """
    Thread-safe TTL cache.

    Args:
        default_ttl: TTL in seconds used when ``set`` is called without one.
        sweep_interval: Seconds between background sweeps. None disables the
            sweeper thread entirely.
        clock: Time source returning seconds; injectable for tests.
        autostart: Start the sweeper on construction.
    """

    def __init__(
        self,
        default_ttl: float = 300,
        sweep_interval: Optional[float] = 600,
        clock: Callable[[], float] = time.time,
        autostart: bool = True,
    ) -> None:
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        if autostart:
            self.start()

    # ── Core operations ──────────────────────────────────────────────────────

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds, replacing any entry."""
        now = self._clock()
        ttl = self.default_ttl if ttl is None else ttl
        entry = CacheEntry(key=key, payload=value, created_at=now, expires_at=now + ttl)
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str) -> Optional[Any]:
        """Return the payload if present and fresh, evicting it if expired."""
        entry = self._fresh_entry(key)
        return entry.payload if entry is not None else None

    def has(self, key: str) -> bool:
        return self._fresh_entry(key) is not None

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def stats(self) -> dict[str, int]:
        """Snapshot of total / active / expired entry counts."""
        now = self._clock()
        with self._lock:
            entries = list(self._entries.values())
        expired = sum(1 for e in entries if e.is_expired(now))
        return {
            "total": len(entries),
            "active": len(entries) - expired,
            "expired": expired,
        }

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Fresh entry with its timestamps, for diagnostics."""
        return self._fresh_entry(key)

    def _fresh_entry(self, key: str) -> Optional[CacheEntry]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                return None
            return entry

    # ── Sweeper lifecycle ────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        """Start the background sweeper (no-op if disabled or already running)."""
        if self.sweep_interval is None or self.running:
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="cache-sweeper", daemon=True)
        self._sweeper.start()
        logger.debug(f"Cache sweeper started (every {self.sweep_interval}s)")

    def stop(self) -> None:
        """Stop the background sweeper and wait for it to exit."""
        if self._sweeper is None:
            return
        self._stop_event.set()
        self._sweeper.join(timeout=5)
        self._sweeper = None
        logger.debug("Cache sweeper stopped")

    close = stop

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __enter__(self) -> "CacheStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

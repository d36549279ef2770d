"""
Query façade: the only surface the presentation layer talks to.

Validates season/round input and delegates to the reconciliation service.
Models are returned as-is; serialization is the caller's concern.
"""
from typing import Optional

from f1_dashboard.cache import CacheStore
from f1_dashboard.config import cfg
from f1_dashboard.models import Driver, Race, SeasonSummary, StandingEntry
from f1_dashboard.reconcile.service import ReconciliationService
from f1_dashboard.sources.historical import HistoricalResultsAdapter
from f1_dashboard.sources.http_client import HttpClient
from f1_dashboard.sources.live_timing import LiveTimingAdapter
from f1_dashboard.sources.schedule_scraper import ScheduleScraper
from f1_dashboard.sources.session_scraper import SessionScraper


class InvalidInputError(ValueError):
    """Raised for a non-positive or non-integer season/round, or a reversed range."""


def _require_positive_int(value, label: str) -> int:
    # bool is an int subclass; True must not pass as season 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{label} must be an integer, got {value!r}")
    if value < 1:
        raise InvalidInputError(f"{label} must be positive, got {value}")
    return value


class F1QueryFacade:
    def __init__(self, service: ReconciliationService) -> None:
        self.service = service

    async def get_season_races(self, season: int) -> list[Race]:
        return await self.service.races(_require_positive_int(season, "season"))

    async def get_driver_standings(self, season: int) -> list[StandingEntry]:
        return await self.service.driver_standings(_require_positive_int(season, "season"))

    async def get_constructor_standings(self, season: int) -> list[StandingEntry]:
        return await self.service.constructor_standings(_require_positive_int(season, "season"))

    async def get_race_results(self, season: int, round_number: int) -> Optional[Race]:
        season = _require_positive_int(season, "season")
        round_number = _require_positive_int(round_number, "round")
        return await self.service.race_results(season, round_number)

    async def get_multiple_seasons(self, start: int, end: int) -> list[SeasonSummary]:
        start = _require_positive_int(start, "start")
        end = _require_positive_int(end, "end")
        if start > end:
            raise InvalidInputError(f"start ({start}) must not be after end ({end})")
        return await self.service.multiple_seasons(start, end)

    async def get_latest_drivers(self) -> list[Driver]:
        return await self.service.latest_drivers()

    def refresh_cache(self, season: int) -> list[str]:
        return self.service.refresh(_require_positive_int(season, "season"))

    def get_cache_stats(self) -> dict[str, int]:
        return self.service.stats()

    def close(self) -> None:
        self.service.close()


def create_facade(cache: Optional[CacheStore] = None) -> F1QueryFacade:
    """Wire the default adapters, cache and service from ``cfg``."""
    if cache is None:
        cache = CacheStore(default_ttl=cfg.cache.short_ttl, sweep_interval=cfg.cache.sweep_interval)

    wikipedia = HttpClient(cfg.sources.wikipedia_base_url, accept="text/html")
    service = ReconciliationService(
        cache=cache,
        historical=HistoricalResultsAdapter(HttpClient(cfg.sources.historical_base_url)),
        live=LiveTimingAdapter(HttpClient(cfg.sources.live_base_url)),
        schedule_scraper=ScheduleScraper(wikipedia),
        session_scraper=SessionScraper(wikipedia),
    )
    return F1QueryFacade(service)

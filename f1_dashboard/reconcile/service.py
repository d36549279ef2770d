"""
Reconciliation service.

Single entry point that decides which source answers a query, how long the
answer may be cached, and how scraped calendars are merged with historical
results. It is read-through only: concurrent requests for the same cold key
may each trigger an upstream fetch.
"""
import asyncio
from typing import Optional

from f1_dashboard.cache import CacheStore
from f1_dashboard.config import cfg
from f1_dashboard.models import UNKNOWN, Driver, Race, Session, SeasonSummary, StandingEntry
from f1_dashboard.reconcile.standings import derive_constructor_standings, derive_driver_standings
from f1_dashboard.sources.historical import HistoricalResultsAdapter
from f1_dashboard.sources.live_timing import LiveTimingAdapter
from f1_dashboard.sources.schedule_scraper import ScheduleScraper
from f1_dashboard.sources.session_scraper import SessionScraper
from f1_dashboard.utils.batching import gather_in_batches
from f1_dashboard.utils.logger import logger
from f1_dashboard.utils.time_utils import current_year

# Upper bound on rounds tried when no calendar is available at all
FALLBACK_MAX_ROUNDS = 24


def races_key(season: int) -> str:
    return f"races:{season}"


def driver_standings_key(season: int) -> str:
    return f"driver-standings:{season}"


def constructor_standings_key(season: int) -> str:
    return f"constructor-standings:{season}"


def race_results_key(season: int, round_number: int) -> str:
    return f"race-results:{season}:{round_number}"


def sessions_key(season: int, round_number: int) -> str:
    return f"sessions:{season}:{round_number}"


LATEST_DRIVERS_KEY = "latest-drivers"


def placeholder_race(season: int, round_number: int, results) -> Race:
    """Calendar-less race built from results alone."""
    return Race(
        round=round_number,
        name=f"Round {round_number}",
        name_ja=f"第{round_number}戦",
        circuit=UNKNOWN,
        location=UNKNOWN,
        date_start=f"{season}-01-01",
        date_end=f"{season}-12-31",
        results=results,
    )


class ReconciliationService:
    """
    Routes season/round queries to the right adapter and caches the answers.

    Closed seasons come from the historical API and are cached for a long
    TTL; the in-progress season comes from live timing with a short TTL.
    Seasons listed in ``scraped_seasons`` (or missing from the APIs) are
    assembled from Wikipedia plus historical results, and their standings
    are derived from that race list rather than fetched.
    """

    def __init__(
        self,
        cache: CacheStore,
        historical: HistoricalResultsAdapter,
        live: LiveTimingAdapter,
        schedule_scraper: ScheduleScraper,
        session_scraper: SessionScraper,
        last_closed_season: Optional[int] = None,
        scraped_seasons: Optional[list[int]] = None,
        short_ttl: Optional[float] = None,
        long_ttl: Optional[float] = None,
        drivers_ttl: Optional[float] = None,
        season_delay: Optional[float] = None,
    ) -> None:
        self.cache = cache
        self.historical = historical
        self.live = live
        self.schedule_scraper = schedule_scraper
        self.session_scraper = session_scraper

        self._last_closed_season = (
            last_closed_season if last_closed_season is not None else cfg.reconcile.last_closed_season
        )
        self.scraped_seasons = set(cfg.reconcile.scraped_seasons if scraped_seasons is None else scraped_seasons)
        self.short_ttl = cfg.cache.short_ttl if short_ttl is None else short_ttl
        self.long_ttl = cfg.cache.long_ttl if long_ttl is None else long_ttl
        self.drivers_ttl = cfg.cache.drivers_ttl if drivers_ttl is None else drivers_ttl
        self.season_delay = cfg.reconcile.season_delay if season_delay is None else season_delay

    # ── Policy ───────────────────────────────────────────────────────────────

    @property
    def last_closed_season(self) -> int:
        if self._last_closed_season is not None:
            return self._last_closed_season
        return current_year() - 1

    def is_closed(self, season: int) -> bool:
        return season <= self.last_closed_season

    def is_scraped(self, season: int) -> bool:
        return season in self.scraped_seasons

    def ttl_for(self, season: int) -> float:
        return self.long_ttl if self.is_closed(season) else self.short_ttl

    # ── Queries ──────────────────────────────────────────────────────────────

    async def races(self, season: int) -> list[Race]:
        key = races_key(season)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        if self.is_scraped(season):
            races = await self.assemble_scraped_season(season)
        elif self.is_closed(season):
            races = await self.historical.races(season)
        else:
            races = await self.live.races(season)

        if not races and not self.is_scraped(season):
            logger.warning(f"No API calendar for {season}; assembling it from Wikipedia")
            races = await self.assemble_scraped_season(season)

        if races:
            ttl = self.ttl_for(season)
            self.cache.set(key, races, ttl)
            logger.info(f"Cached {len(races)} races for {season} (ttl={ttl}s)")
        return races

    async def driver_standings(self, season: int) -> list[StandingEntry]:
        if self.is_scraped(season):
            return derive_driver_standings(await self.races(season))

        key = driver_standings_key(season)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        standings = await self.historical.driver_standings(season)
        if standings:
            self.cache.set(key, standings, self.ttl_for(season))
            return standings

        logger.info(f"No driver standings from the API for {season}; deriving from results")
        return derive_driver_standings(await self.races(season))

    async def constructor_standings(self, season: int) -> list[StandingEntry]:
        if self.is_scraped(season):
            return derive_constructor_standings(await self.races(season))

        key = constructor_standings_key(season)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        standings = await self.historical.constructor_standings(season)
        if standings:
            self.cache.set(key, standings, self.ttl_for(season))
            return standings

        logger.info(f"No constructor standings from the API for {season}; deriving from results")
        return derive_constructor_standings(await self.races(season))

    async def race_results(self, season: int, round_number: int) -> Optional[Race]:
        key = race_results_key(season, round_number)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        race = await self.historical.race_results(season, round_number)
        if race is not None:
            # A completed round's result does not change
            self.cache.set(key, race, self.long_ttl)
        return race

    async def latest_drivers(self) -> list[Driver]:
        cached = self.cache.get(LATEST_DRIVERS_KEY)
        if cached is not None:
            return cached

        drivers = await self.live.latest_drivers()
        if drivers:
            self.cache.set(LATEST_DRIVERS_KEY, drivers, self.drivers_ttl)
        return drivers

    async def multiple_seasons(self, start: int, end: int) -> list[SeasonSummary]:
        """Race lists for an inclusive range of seasons, fetched one season at a time."""
        summaries = []
        for season in range(start, end + 1):
            was_cached = self.cache.has(races_key(season))
            races = await self.races(season)
            summaries.append(SeasonSummary(season=season, races=races, count=len(races)))

            if not was_cached and season < end and self.season_delay > 0:
                await asyncio.sleep(self.season_delay)
        return summaries

    def refresh(self, season: int) -> list[str]:
        """Invalidate the season-level keys. Returns the keys that were present."""
        keys = [races_key(season), driver_standings_key(season), constructor_standings_key(season)]
        removed = [key for key in keys if self.cache.delete(key)]
        logger.info(f"Refreshed season {season}: removed {removed or 'nothing'}")
        return removed

    def stats(self) -> dict[str, int]:
        return self.cache.stats()

    def close(self) -> None:
        """Stop the cache sweeper and release every adapter's HTTP session."""
        self.cache.stop()
        for adapter in (self.historical, self.live, self.schedule_scraper, self.session_scraper):
            adapter.close()

    # ── Scraped seasons ──────────────────────────────────────────────────────

    async def merged_sessions(self, season: int, race: Race) -> list[Session]:
        """
        Session list for one race.

        A freshly scraped non-empty list wins and replaces the cached one;
        otherwise the previously cached list is kept so a failed scrape never
        blanks out known times.
        """
        key = sessions_key(season, race.round)
        fresh = await self.session_scraper.scrape(season, race)
        if fresh:
            self.cache.set(key, fresh, self.long_ttl)
            return fresh

        previous = self.cache.get(key)
        if previous:
            logger.info(f"Keeping cached sessions for {season} round {race.round}")
            return previous
        return list(race.sessions)

    async def assemble_scraped_season(self, season: int) -> list[Race]:
        """
        Build a season from the Wikipedia calendar, per-race session pages
        and historical results joined by round.
        """
        schedule = await self.schedule_scraper.scrape(season)
        if not schedule:
            logger.warning(f"No Wikipedia calendar for {season}; falling back to results only")
            results = await self.historical.all_race_results(season, FALLBACK_MAX_ROUNDS)
            return [placeholder_race(season, rnd, results[rnd]) for rnd in sorted(results)]

        session_pairs = await gather_in_batches(schedule, lambda race: self.merged_sessions(season, race))
        results = await self.historical.all_race_results(season, max(race.round for race in schedule))

        races = []
        for race, sessions in session_pairs:
            update = {"sessions": sessions}
            if results.get(race.round):
                update["results"] = results[race.round]
            races.append(race.model_copy(update=update))

        logger.info(
            f"Assembled {len(races)} races for {season} "
            f"({sum(1 for r in races if r.sessions)} with sessions, {len(results)} with results)"
        )
        return races

"""
FastAPI backend for the F1 dashboard.
Serves season calendars, standings and results from the query façade as JSON
to the Next.js frontend.
"""
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from f1_dashboard.config import cfg
from f1_dashboard.facade import F1QueryFacade, InvalidInputError, create_facade
from f1_dashboard.models import Driver, Race, SeasonSummary, StandingEntry
from f1_dashboard.utils.logger import logger


@lru_cache(maxsize=1)
def get_facade() -> F1QueryFacade:
    return create_facade()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Only stop a façade that was actually built
    if get_facade.cache_info().currsize:
        logger.info("Closing cache sweeper and upstream sessions")
        get_facade().close()
        get_facade.cache_clear()


app = FastAPI(title="F1 Dashboard API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cfg.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _bad_request(e: InvalidInputError) -> HTTPException:
    return HTTPException(400, str(e))


# ── Seasons ──────────────────────────────────────────────────────────────────

@app.get("/api/seasons", response_model=list[SeasonSummary])
async def list_seasons(
    start: int = Query(...),
    end: int = Query(...),
    facade: F1QueryFacade = Depends(get_facade),
):
    """Race calendars for an inclusive range of seasons."""
    try:
        return await facade.get_multiple_seasons(start, end)
    except InvalidInputError as e:
        raise _bad_request(e)


@app.get("/api/seasons/{season}/races", response_model=list[Race])
async def season_races(season: int, facade: F1QueryFacade = Depends(get_facade)):
    try:
        return await facade.get_season_races(season)
    except InvalidInputError as e:
        raise _bad_request(e)


@app.get("/api/seasons/{season}/races/{round_number}/results", response_model=Optional[Race])
async def race_results(season: int, round_number: int, facade: F1QueryFacade = Depends(get_facade)):
    """One race with its classification, or null when the round has no results yet."""
    try:
        return await facade.get_race_results(season, round_number)
    except InvalidInputError as e:
        raise _bad_request(e)


@app.post("/api/seasons/{season}/refresh")
def refresh_season(season: int, facade: F1QueryFacade = Depends(get_facade)):
    try:
        removed = facade.refresh_cache(season)
    except InvalidInputError as e:
        raise _bad_request(e)
    return {"season": season, "removed": removed}


# ── Standings ────────────────────────────────────────────────────────────────

@app.get("/api/seasons/{season}/standings/drivers", response_model=list[StandingEntry])
async def driver_standings(season: int, facade: F1QueryFacade = Depends(get_facade)):
    try:
        return await facade.get_driver_standings(season)
    except InvalidInputError as e:
        raise _bad_request(e)


@app.get("/api/seasons/{season}/standings/constructors", response_model=list[StandingEntry])
async def constructor_standings(season: int, facade: F1QueryFacade = Depends(get_facade)):
    try:
        return await facade.get_constructor_standings(season)
    except InvalidInputError as e:
        raise _bad_request(e)


# ── Drivers / cache ──────────────────────────────────────────────────────────

@app.get("/api/drivers/latest", response_model=list[Driver])
async def latest_drivers(facade: F1QueryFacade = Depends(get_facade)):
    """Driver line-up of the most recent live-timing session."""
    return await facade.get_latest_drivers()


@app.get("/api/cache/stats")
def cache_stats(facade: F1QueryFacade = Depends(get_facade)):
    return facade.get_cache_stats()


@app.get("/api/health")
def health():
    return {"status": "ok"}

"""
Historical results adapter (Jolpica, the Ergast-compatible API).

Covers closed seasons and completed rounds. Every method is fail-soft:
network errors and malformed envelopes are logged and returned as empty
data, never raised.
"""
import asyncio
from typing import Any, Optional

from pydantic import ValidationError

from f1_dashboard.config import cfg
from f1_dashboard.models import UNKNOWN, Race, RaceResult, Session, SessionName, StandingEntry
from f1_dashboard.utils.batching import gather_in_batches
from f1_dashboard.sources.http_client import UPSTREAM_ERRORS, HttpClient
from f1_dashboard.sources.race_names import japanese_name
from f1_dashboard.utils.logger import logger
from f1_dashboard.utils.time_utils import parse_openf1_timestamp, utc_to_jst_clock

PAGE_LIMIT = 100

# Ergast session blocks -> shared session vocabulary
SESSION_BLOCKS: dict[str, SessionName] = {
    "FirstPractice": SessionName.FP1,
    "SecondPractice": SessionName.FP2,
    "ThirdPractice": SessionName.FP3,
    "SprintQualifying": SessionName.SPRINT_QUALIFYING,
    "SprintShootout": SessionName.SPRINT_QUALIFYING,
    "Sprint": SessionName.SPRINT,
    "Qualifying": SessionName.QUALIFYING,
}


def _dig(payload: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    node = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _session_from_block(name: SessionName, block: Any) -> Optional[Session]:
    if not isinstance(block, dict) or not block.get("date"):
        return None
    clock = (block.get("time") or "00:00:00Z").replace("Z", "")
    moment = parse_openf1_timestamp(f"{block['date']}T{clock}+00:00")
    if moment is None:
        return None
    return Session(
        name=name,
        date=moment.date().isoformat(),
        time_utc=moment.strftime("%H:%M"),
        time_jst=utc_to_jst_clock(moment),
    )


def parse_sessions(race: dict) -> list[Session]:
    """Session list from the optional per-session blocks of a race record, in time order."""
    sessions = [
        s for s in (_session_from_block(name, race.get(block)) for block, name in SESSION_BLOCKS.items())
        if s is not None
    ]
    race_session = _session_from_block(SessionName.RACE, race)
    if race_session is not None:
        sessions.append(race_session)
    return sorted(sessions, key=lambda s: (s.date, s.time_utc))


def parse_result(entry: dict) -> RaceResult:
    """Normalize one entry of ``Results``."""
    driver = _as_dict(entry.get("Driver"))
    constructor = _as_dict(entry.get("Constructor"))
    position_text = str(entry.get("positionText") or entry.get("position") or "")

    code = driver.get("code") or str(driver.get("driverId", ""))[:3].upper()
    full_name = f"{driver.get('givenName', '')} {driver.get('familyName', '')}".strip()

    return RaceResult(
        position=int(position_text) if position_text.isdigit() else None,
        position_text=position_text,
        driver=full_name or code,
        driver_code=code,
        team=constructor.get("name", UNKNOWN),
        points=_to_float(entry.get("points")),
        time=_dig(entry, "Time", "time"),
        status=entry.get("status", ""),
    )


def parse_race(race: dict) -> Race:
    """Normalize one record of ``RaceTable.Races``."""
    circuit = _as_dict(race.get("Circuit"))
    location = _as_dict(circuit.get("Location"))
    place = ", ".join(p for p in (location.get("locality"), location.get("country")) if p)

    sessions = parse_sessions(race)
    race_date = race.get("date") or (sessions[-1].date if sessions else "")
    first_practice = _dig(race, "FirstPractice", "date")

    results = []
    for entry in _as_list(race.get("Results")):
        if not isinstance(entry, dict):
            continue
        try:
            results.append(parse_result(entry))
        except ValueError as e:
            logger.warning(f"Skipping malformed result in round {race.get('round')}: {e}")

    name = str(race.get("raceName") or "")
    fields = dict(
        round=int(race["round"]),
        name=name,
        name_ja=japanese_name(name),
        circuit=circuit.get("circuitName") or UNKNOWN,
        location=place or UNKNOWN,
        date_start=first_practice or race_date,
        date_end=race_date,
        sessions=sessions,
    )
    try:
        return Race(**fields, results=results)
    except ValidationError as e:
        logger.warning(f"Dropping inconsistent results for {name} (round {race.get('round')}): {e}")
        return Race(**fields)


def parse_season_races(payload: Any) -> list[Race]:
    """``/{season}.json`` envelope -> races sorted by round. Bad records are skipped."""
    races: list[Race] = []
    for record in _as_list(_dig(payload, "MRData", "RaceTable", "Races")):
        if not isinstance(record, dict):
            logger.warning(f"Skipping non-object race record: {record!r}")
            continue
        try:
            races.append(parse_race(record))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed race record: {e}")
    return sorted(races, key=lambda r: r.round)


def parse_race_results(payload: Any) -> Optional[Race]:
    """``/{season}/{round}/results.json`` envelope -> race with results, or None."""
    races = parse_season_races(payload)
    if not races or not races[0].results:
        return None
    return races[0]


def _standings_list(payload: Any, key: str) -> list:
    lists = _as_list(_dig(payload, "MRData", "StandingsTable", "StandingsLists"))
    if not lists or not isinstance(lists[0], dict):
        return []
    return _as_list(lists[0].get(key))


def parse_driver_standings(payload: Any) -> list[StandingEntry]:
    entries: list[StandingEntry] = []
    for entry in _standings_list(payload, "DriverStandings"):
        try:
            driver = _as_dict(entry.get("Driver"))
            constructors = _as_list(entry.get("Constructors"))
            # Drivers who changed team mid-season list every team; the last is current
            team = _as_dict(constructors[-1]).get("name") if constructors else None
            code = driver.get("code") or str(driver.get("driverId", ""))[:3].upper()
            entries.append(StandingEntry(
                position=len(entries) + 1,
                name=f"{driver.get('givenName', '')} {driver.get('familyName', '')}".strip() or code,
                points=_to_float(entry.get("points")),
                team=team,
                code=code,
                wins=int(entry.get("wins", 0) or 0),
            ))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed driver standing: {e}")
    return entries


def parse_constructor_standings(payload: Any) -> list[StandingEntry]:
    entries: list[StandingEntry] = []
    for entry in _standings_list(payload, "ConstructorStandings"):
        try:
            constructor = _as_dict(entry.get("Constructor"))
            entries.append(StandingEntry(
                position=len(entries) + 1,
                name=constructor.get("name", UNKNOWN),
                points=_to_float(entry.get("points")),
                wins=int(entry.get("wins", 0) or 0),
            ))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed constructor standing: {e}")
    return entries


class HistoricalResultsAdapter:
    """Season calendars, standings and per-round results from Jolpica."""

    def __init__(self, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(cfg.sources.historical_base_url)

    def close(self) -> None:
        self.client.close()

    async def _fetch(self, path: str) -> Optional[Any]:
        try:
            return await asyncio.to_thread(self.client.get_json, path, {"limit": PAGE_LIMIT})
        except UPSTREAM_ERRORS as e:
            logger.error(f"Historical API unavailable for {path}: {e}")
            return None

    async def races(self, season: int) -> list[Race]:
        payload = await self._fetch(f"{season}.json")
        races = parse_season_races(payload)
        logger.info(f"Historical API: {len(races)} races for {season}")
        return races

    async def driver_standings(self, season: int) -> list[StandingEntry]:
        return parse_driver_standings(await self._fetch(f"{season}/driverStandings.json"))

    async def constructor_standings(self, season: int) -> list[StandingEntry]:
        return parse_constructor_standings(await self._fetch(f"{season}/constructorStandings.json"))

    async def race_results(self, season: int, round_number: int) -> Optional[Race]:
        race = parse_race_results(await self._fetch(f"{season}/{round_number}/results.json"))
        if race is None:
            logger.debug(f"No results available for {season} round {round_number}")
        return race

    async def round_results(self, season: int, round_number: int) -> list[RaceResult]:
        race = await self.race_results(season, round_number)
        return list(race.results) if race and race.results else []

    async def all_race_results(self, season: int, total_rounds: int) -> dict[int, list[RaceResult]]:
        """
        Results for every completed round of a season.

        Rounds are fetched in bounded batches; rounds without results are
        left out of the mapping.
        """
        pairs = await gather_in_batches(
            range(1, total_rounds + 1),
            lambda rnd: self.round_results(season, rnd),
        )
        results = {rnd: res for rnd, res in pairs if res}
        logger.info(f"Fetched results for {len(results)}/{total_rounds} rounds of {season}")
        return results

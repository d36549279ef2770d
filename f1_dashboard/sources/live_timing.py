"""
Live timing adapter (OpenF1).

OpenF1 exposes race weekends ("meetings") and their sessions as two flat
collections; they are joined here on ``meeting_key`` into the shared Race
shape. Used for the in-progress or upcoming season.
"""
import asyncio
from typing import Any, Optional

from pydantic import ValidationError

from f1_dashboard.config import cfg
from f1_dashboard.models import UNKNOWN, Driver, Race, Session, SessionName
from f1_dashboard.sources.http_client import UPSTREAM_ERRORS, HttpClient
from f1_dashboard.sources.race_names import japanese_name
from f1_dashboard.utils.logger import logger
from f1_dashboard.utils.time_utils import current_year, parse_openf1_timestamp, utc_now, utc_to_jst_clock

SESSION_NAMES: dict[str, SessionName] = {
    "Practice 1": SessionName.FP1,
    "Practice 2": SessionName.FP2,
    "Practice 3": SessionName.FP3,
    "Qualifying": SessionName.QUALIFYING,
    "Sprint Qualifying": SessionName.SPRINT_QUALIFYING,
    "Sprint Shootout": SessionName.SPRINT_QUALIFYING,
    "Sprint": SessionName.SPRINT,
    "Race": SessionName.RACE,
}


# ── Fetchers ──────────────────────────────────────────────────────────────────

def fetch_meetings(client: HttpClient, year: int) -> list[dict]:
    """
    Fetch all meetings (race weekends) for a given year.

    Args:
        client: HttpClient pointed at OpenF1.
        year: F1 season year (e.g. 2025).

    Returns:
        List of meeting metadata dicts.
    """
    logger.info(f"Fetching meetings for {year}...")
    records = client.get_json("/meetings", params={"year": year})
    return records if isinstance(records, list) else []


def fetch_sessions(client: HttpClient, year: int) -> list[dict]:
    """
    Fetch every session (practice, qualifying, sprint, race) for a given year.

    Args:
        client: HttpClient pointed at OpenF1.
        year: F1 season year.

    Returns:
        List of session metadata dicts.
    """
    logger.info(f"Fetching sessions for {year}...")
    records = client.get_json("/sessions", params={"year": year})
    return records if isinstance(records, list) else []


def fetch_drivers(client: HttpClient, session_key: int) -> list[dict]:
    """Fetch driver metadata for a session."""
    logger.debug(f"Fetching drivers for session {session_key}...")
    records = client.get_json("/drivers", params={"session_key": session_key})
    return records if isinstance(records, list) else []


# ── Normalization ─────────────────────────────────────────────────────────────

def parse_session(record: dict) -> Optional[Session]:
    """Map one OpenF1 session onto the shared vocabulary; None for testing days etc."""
    name = SESSION_NAMES.get(str(record.get("session_name", "")))
    start = parse_openf1_timestamp(record.get("date_start", ""))
    if name is None or start is None:
        return None
    return Session(
        name=name,
        date=start.date().isoformat(),
        time_utc=start.strftime("%H:%M"),
        time_jst=utc_to_jst_clock(start),
    )


def _is_testing(meeting: dict) -> bool:
    return "testing" in str(meeting.get("meeting_name", "")).lower()


def join_meetings(meetings: list[dict], sessions: list[dict]) -> list[Race]:
    """
    Join meetings with their sessions on ``meeting_key``.

    Testing meetings are dropped; the remaining meetings are ordered by start
    date and numbered 1..N, which becomes the round number.
    """
    by_meeting: dict[Any, list[Session]] = {}
    for record in sessions:
        if not isinstance(record, dict):
            continue
        session = parse_session(record)
        if session is not None:
            by_meeting.setdefault(record.get("meeting_key"), []).append(session)

    grand_prix = [
        m for m in meetings
        if isinstance(m, dict) and m.get("meeting_key") is not None and not _is_testing(m)
    ]
    grand_prix.sort(key=lambda m: str(m.get("date_start", "")))

    races: list[Race] = []
    for meeting in grand_prix:
        meeting_sessions = sorted(
            by_meeting.get(meeting["meeting_key"], []),
            key=lambda s: (s.date, s.time_utc),
        )
        start = parse_openf1_timestamp(meeting.get("date_start", ""))
        start_date = start.date().isoformat() if start else ""
        place = ", ".join(str(p) for p in (meeting.get("location"), meeting.get("country_name")) if p)
        name = str(meeting.get("meeting_name") or UNKNOWN)
        try:
            races.append(Race(
                round=len(races) + 1,
                name=name,
                name_ja=japanese_name(name),
                circuit=meeting.get("circuit_short_name") or UNKNOWN,
                location=place or UNKNOWN,
                date_start=meeting_sessions[0].date if meeting_sessions else start_date,
                date_end=meeting_sessions[-1].date if meeting_sessions else start_date,
                sessions=meeting_sessions,
            ))
        except ValidationError as e:
            logger.warning(f"Skipping malformed meeting {meeting.get('meeting_key')}: {e}")
    return races


def parse_driver(record: dict) -> Driver:
    return Driver(
        number=record.get("driver_number"),
        full_name=record.get("full_name") or record.get("broadcast_name") or "",
        code=record.get("name_acronym") or "",
        team=record.get("team_name"),
        team_colour=record.get("team_colour"),
        country_code=record.get("country_code"),
        headshot_url=record.get("headshot_url"),
    )


def latest_session_key(sessions: list[dict]) -> Optional[int]:
    """Most recent session that has already started, else the earliest scheduled one."""
    dated = []
    for s in sessions:
        if not isinstance(s, dict) or s.get("session_key") is None:
            continue
        ts = parse_openf1_timestamp(s.get("date_start", ""))
        if ts is not None:
            dated.append((ts, s["session_key"]))
    if not dated:
        return None
    now = utc_now()
    started = [d for d in dated if d[0] <= now]
    if started:
        return max(started)[1]
    return min(dated)[1]


# ── Adapter ───────────────────────────────────────────────────────────────────

class LiveTimingAdapter:
    """Current-season calendar and driver line-up from OpenF1."""

    def __init__(self, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(cfg.sources.live_base_url)

    def close(self) -> None:
        self.client.close()

    async def races(self, season: int) -> list[Race]:
        # Meetings first, then sessions: the join needs both and the API is rate limited
        try:
            meetings = await asyncio.to_thread(fetch_meetings, self.client, season)
            if not meetings:
                logger.warning(f"OpenF1 returned no meetings for {season}")
                return []
            sessions = await asyncio.to_thread(fetch_sessions, self.client, season)
        except UPSTREAM_ERRORS as e:
            logger.error(f"OpenF1 unavailable for {season}: {e}")
            return []

        races = join_meetings(meetings, sessions)
        logger.info(f"OpenF1: {len(races)} race weekends for {season}")
        return races

    async def latest_drivers(self) -> list[Driver]:
        year = current_year()
        try:
            sessions = await asyncio.to_thread(fetch_sessions, self.client, year)
            session_key = latest_session_key(sessions)
            if session_key is None:
                return []
            records = await asyncio.to_thread(fetch_drivers, self.client, session_key)
        except UPSTREAM_ERRORS as e:
            logger.error(f"OpenF1 drivers unavailable: {e}")
            return []

        drivers = []
        for record in records:
            if not isinstance(record, dict):
                continue
            try:
                drivers.append(parse_driver(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed driver record: {e}")
        return drivers

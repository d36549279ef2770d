"""
Session-detail scraper (Japanese Wikipedia race article).

Extracts practice / qualifying / sprint / race start times, published in
JST, for exactly one race and converts them to UTC. A failure here only
costs that race its session list.
"""
import asyncio
from datetime import date, timedelta
from typing import Optional
from urllib.parse import quote

from bs4 import BeautifulSoup

from f1_dashboard.config import cfg
from f1_dashboard.models import Race, Session, SessionName
from f1_dashboard.sources.http_client import UPSTREAM_ERRORS, HttpClient
from f1_dashboard.sources.race_names import japanese_article_title, japanese_name
from f1_dashboard.sources.schedule_scraper import clean_text
from f1_dashboard.utils.logger import logger
from f1_dashboard.utils.time_utils import jst_to_utc, parse_clock, parse_schedule_date

# Most specific keyword first: "スプリント予選" must not be read as "予選" or "スプリント"
SESSION_KEYWORDS: list[tuple[tuple[str, ...], SessionName]] = [
    (("フリー走行1", "FP1"), SessionName.FP1),
    (("フリー走行2", "FP2"), SessionName.FP2),
    (("フリー走行3", "FP3"), SessionName.FP3),
    (("スプリント予選", "スプリント・シュートアウト", "スプリントシュートアウト"), SessionName.SPRINT_QUALIFYING),
    (("スプリント",), SessionName.SPRINT),
    (("予選",), SessionName.QUALIFYING),
    (("決勝",), SessionName.RACE),
]

# Days before the race on a standard weekend (sprint qualifying on Friday)
WEEKEND_DAY_OFFSETS: dict[SessionName, int] = {
    SessionName.FP1: -2,
    SessionName.FP2: -2,
    SessionName.SPRINT_QUALIFYING: -2,
    SessionName.FP3: -1,
    SessionName.SPRINT: -1,
    SessionName.QUALIFYING: -1,
    SessionName.RACE: 0,
}


def match_session_name(text: str) -> Optional[SessionName]:
    compact = text.replace(" ", "").replace("　", "")
    for keywords, name in SESSION_KEYWORDS:
        if any(k in compact for k in keywords):
            return name
    return None


def weekend_date(race_date: str, name: SessionName) -> str:
    """JST date of a session on a standard weekend ending with the race on ``race_date``."""
    try:
        day = date.fromisoformat(race_date)
    except (TypeError, ValueError):
        return race_date
    return (day + timedelta(days=WEEKEND_DAY_OFFSETS[name])).isoformat()


def parse_session_html(html: str, season: int, race_date: str) -> list[Session]:
    """
    Extract the session timetable of one race article.

    Date cells usually span several rows, so an undated row inherits the
    date of the row above it in the same table. Rows before any dated row
    are placed on the standard weekend day for their session relative to
    ``race_date``.

    Args:
        html: Raw page HTML.
        season: Season year, used to complete ``M月D日`` dates.
        race_date: JST date of the race (Sunday).

    Returns:
        Sessions in chronological order, at most one per session name.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for sup in soup.select("sup.reference"):
        sup.decompose()

    found: dict[SessionName, Session] = {}
    for table in soup.select("table.wikitable"):
        carried_date: Optional[str] = None
        for row in table.find_all("tr"):
            cells = [clean_text(c) for c in row.find_all(["td", "th"], recursive=False)]
            if len(cells) < 2:
                continue

            name = match_session_name(" ".join(cells))
            if name is None or name in found:
                continue

            clock = next((parse_clock(c) for c in reversed(cells) if parse_clock(c)), None)
            if clock is None:
                continue

            row_date = parse_schedule_date(" ".join(cells), season)
            if row_date:
                carried_date = row_date
            jst_date = carried_date or weekend_date(race_date, name)
            converted = jst_to_utc(jst_date, f"{clock[0]}:{clock[1]:02d}")
            if converted is None:
                continue

            utc_date, utc_time, jst_time = converted
            found[name] = Session(name=name, date=utc_date, time_utc=utc_time, time_jst=jst_time)

    return sorted(found.values(), key=lambda s: (s.date, s.time_utc))


def race_article_path(season: int, race: Race) -> Optional[str]:
    name_ja = race.name_ja or japanese_name(race.name)
    if not name_ja:
        return None
    return quote(f"{season}年{japanese_article_title(name_ja)}")


class SessionScraper:
    """Per-race session times from the Japanese Wikipedia race article."""

    def __init__(self, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(cfg.sources.wikipedia_base_url, accept="text/html")

    def close(self) -> None:
        self.client.close()

    async def scrape(self, season: int, race: Race) -> list[Session]:
        path = race_article_path(season, race)
        if path is None:
            logger.debug(f"No Japanese article title for {race.name}; skipping session scrape")
            return []

        try:
            html = await asyncio.to_thread(self.client.get_text, path)
        except UPSTREAM_ERRORS as e:
            logger.warning(f"Could not fetch race details for {season} {race.name}: {e}")
            return []

        sessions = parse_session_html(html, season, race.date_end)
        logger.debug(f"Scraped {len(sessions)} sessions for {season} round {race.round}")
        return sessions

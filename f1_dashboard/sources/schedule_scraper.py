"""
Season schedule scraper (Japanese Wikipedia season article).

Recovers round, bilingual race name, circuit, location and date for every
race of a season. Table detection is heuristic: header text is matched
against small substring vocabularies in Japanese and English, so a missing
column degrades that field to ``UNKNOWN`` instead of failing the page.
"""
import asyncio
import re
from typing import Optional
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from f1_dashboard.config import cfg
from f1_dashboard.models import UNKNOWN, Race
from f1_dashboard.sources.http_client import UPSTREAM_ERRORS, HttpClient
from f1_dashboard.sources.race_names import english_name
from f1_dashboard.utils.logger import logger
from f1_dashboard.utils.time_utils import parse_schedule_date

# Column role -> header substrings. Checked in this order for each header cell.
COLUMN_VOCABULARY: dict[str, tuple[str, ...]] = {
    "round": ("ラウンド", "Round", "Rd"),
    "grand_prix": ("グランプリ", "Grand Prix", "GP"),
    "circuit": ("サーキット", "Circuit", "コース"),
    "date": ("開催日", "決勝日", "日付", "Date"),
    "location": ("開催地", "所在地", "開催国", "国", "Location", "Country"),
}
REQUIRED_COLUMNS = ("round", "grand_prix")

_FOOTNOTE_RE = re.compile(r"\[.*?\]")
_SPACE_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"\d+")


def clean_text(node: Optional[Tag]) -> str:
    """Cell text without footnote markers and with collapsed whitespace."""
    if node is None:
        return ""
    text = node.get_text(" ", strip=True)
    text = _FOOTNOTE_RE.sub("", text)
    return _SPACE_RE.sub(" ", text).strip()


def _row_cells(row: Tag) -> list[Tag]:
    return row.find_all(["td", "th"], recursive=False)


def map_columns(headers: list[str]) -> dict[str, int]:
    """
    Assign a column index to each role whose vocabulary matches a header.

    The first matching header wins for a role; a header is used for at most
    one role.
    """
    columns: dict[str, int] = {}
    for idx, header in enumerate(headers):
        for role, needles in COLUMN_VOCABULARY.items():
            if role in columns:
                continue
            if any(needle in header for needle in needles):
                columns[role] = idx
                break
    return columns


def _header_row(table: Tag) -> Optional[Tag]:
    for row in table.find_all("tr"):
        cells = _row_cells(row)
        if cells and all(c.name == "th" for c in cells):
            return row
    return None


def _cell(cells: list[Tag], columns: dict[str, int], role: str) -> Optional[Tag]:
    idx = columns.get(role)
    if idx is None or idx >= len(cells):
        return None
    return cells[idx]


def _race_name(cells: list[Tag], columns: dict[str, int]) -> tuple[str, str]:
    """(english, japanese) name for a schedule row."""
    cell = _cell(cells, columns, "grand_prix")
    name_ja = clean_text(cell)
    if not name_ja:
        # Shifted rows (rowspan) can move the name; fall back to any GP-looking cell
        for candidate in cells:
            text = clean_text(candidate)
            if "GP" in text or "グランプリ" in text:
                cell, name_ja = candidate, text
                break

    link = cell.find("a") if cell is not None else None
    title = link.get("title", "") if link is not None else ""
    name_en = english_name(name_ja) or (english_name(title) if title else None) or name_ja
    return name_en, name_ja


def _race_date(cells: list[Tag], columns: dict[str, int], season: int) -> Optional[str]:
    found = parse_schedule_date(clean_text(_cell(cells, columns, "date")), season)
    if found:
        return found
    for candidate in cells:
        found = parse_schedule_date(clean_text(candidate), season)
        if found:
            return found
    return None


def parse_schedule_row(cells: list[Tag], columns: dict[str, int], season: int) -> Optional[Race]:
    """One table row -> Race, or None if the row is not a race."""
    round_match = _DIGITS_RE.search(clean_text(_cell(cells, columns, "round")))
    if not round_match:
        return None

    name_en, name_ja = _race_name(cells, columns)
    if not name_ja:
        return None

    race_date = _race_date(cells, columns, season)
    return Race(
        round=int(round_match.group()),
        name=name_en,
        name_ja=name_ja,
        circuit=clean_text(_cell(cells, columns, "circuit")) or UNKNOWN,
        location=clean_text(_cell(cells, columns, "location")) or UNKNOWN,
        date_start=race_date or f"{season}-01-01",
        date_end=race_date or f"{season}-12-31",
    )


def parse_schedule_html(html: str, season: int) -> list[Race]:
    """
    Extract the race calendar from a season article.

    Args:
        html: Raw page HTML.
        season: Season year, used to complete ``M月D日`` dates.

    Returns:
        Races sorted by round; empty if no schedule table is recognised.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for sup in soup.select("sup.reference"):
        sup.decompose()

    races: dict[int, Race] = {}
    for table in soup.select("table.wikitable"):
        header = _header_row(table)
        if header is None:
            continue
        columns = map_columns([clean_text(th) for th in _row_cells(header)])
        if not all(role in columns for role in REQUIRED_COLUMNS):
            continue

        for row in table.find_all("tr"):
            if row is header:
                continue
            cells = _row_cells(row)
            if len(cells) < 2:
                continue
            try:
                race = parse_schedule_row(cells, columns, season)
            except (ValueError, ValidationError) as e:
                logger.warning(f"Skipping unparseable schedule row: {e}")
                continue
            # Results tables repeat the rounds; keep the first sighting
            if race is not None and race.round not in races:
                races[race.round] = race

    return [races[r] for r in sorted(races)]


def season_article_path(season: int) -> str:
    return quote(f"{season}年のF1世界選手権")


class ScheduleScraper:
    """Season calendar from the Japanese Wikipedia season article."""

    def __init__(self, client: HttpClient | None = None) -> None:
        self.client = client or HttpClient(cfg.sources.wikipedia_base_url, accept="text/html")

    def close(self) -> None:
        self.client.close()

    async def scrape(self, season: int) -> list[Race]:
        path = season_article_path(season)
        try:
            html = await asyncio.to_thread(self.client.get_text, path)
        except UPSTREAM_ERRORS as e:
            logger.error(f"Could not fetch Wikipedia schedule for {season}: {e}")
            return []

        races = parse_schedule_html(html, season)
        if races:
            logger.info(f"Scraped {len(races)} races for {season} from Wikipedia")
        else:
            logger.warning(f"No schedule table recognised in Wikipedia article for {season}")
        return races

"""
Pytest fixtures for the F1 dashboard data core tests.
"""
from typing import Optional

import pytest

from f1_dashboard.cache import CacheStore
from f1_dashboard.models import Driver, Race, RaceResult, Session, SessionName, StandingEntry
from f1_dashboard.reconcile.service import ReconciliationService


class FakeClock:
    """Manually advanced time source for the cache."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_result(position: Optional[int], driver: str, code: str, team: str, points: float) -> RaceResult:
    return RaceResult(
        position=position,
        position_text=str(position) if position is not None else "R",
        driver=driver,
        driver_code=code,
        team=team,
        points=points,
        status="Finished" if position is not None else "Accident",
    )


def make_race(round_number: int, name: str = "Test Grand Prix", results=None, sessions=None) -> Race:
    return Race(
        round=round_number,
        name=name,
        date_start=f"2023-0{min(round_number, 9)}-01",
        date_end=f"2023-0{min(round_number, 9)}-03",
        sessions=sessions or [],
        results=results,
    )


# ── Fake adapters ────────────────────────────────────────────────────────────

class FakeHistorical:
    def __init__(self) -> None:
        self.calls: dict[str, int] = {}
        self.races_by_season: dict[int, list[Race]] = {}
        self.driver_standings_by_season: dict[int, list[StandingEntry]] = {}
        self.constructor_standings_by_season: dict[int, list[StandingEntry]] = {}
        self.results_by_round: dict[tuple[int, int], list[RaceResult]] = {}
        self.closed = False

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    def close(self) -> None:
        self.closed = True

    async def races(self, season: int) -> list[Race]:
        self._count("races")
        return list(self.races_by_season.get(season, []))

    async def driver_standings(self, season: int) -> list[StandingEntry]:
        self._count("driver_standings")
        return list(self.driver_standings_by_season.get(season, []))

    async def constructor_standings(self, season: int) -> list[StandingEntry]:
        self._count("constructor_standings")
        return list(self.constructor_standings_by_season.get(season, []))

    async def race_results(self, season: int, round_number: int) -> Optional[Race]:
        self._count("race_results")
        results = self.results_by_round.get((season, round_number))
        if not results:
            return None
        return make_race(round_number, results=results)

    async def all_race_results(self, season: int, total_rounds: int) -> dict[int, list[RaceResult]]:
        self._count("all_race_results")
        return {
            rnd: res for (s, rnd), res in self.results_by_round.items()
            if s == season and rnd <= total_rounds
        }


class FakeLive:
    def __init__(self) -> None:
        self.calls: dict[str, int] = {}
        self.races_by_season: dict[int, list[Race]] = {}
        self.drivers: list[Driver] = []
        self.closed = False

    def close(self) -> None:
        self.closed = True

    async def races(self, season: int) -> list[Race]:
        self.calls["races"] = self.calls.get("races", 0) + 1
        return list(self.races_by_season.get(season, []))

    async def latest_drivers(self) -> list[Driver]:
        self.calls["latest_drivers"] = self.calls.get("latest_drivers", 0) + 1
        return list(self.drivers)


class FakeScheduleScraper:
    def __init__(self) -> None:
        self.calls = 0
        self.schedule: dict[int, list[Race]] = {}
        self.closed = False

    def close(self) -> None:
        self.closed = True

    async def scrape(self, season: int) -> list[Race]:
        self.calls += 1
        return list(self.schedule.get(season, []))


class FakeSessionScraper:
    def __init__(self) -> None:
        self.calls = 0
        self.sessions: dict[int, list[Session]] = {}
        self.closed = False

    def close(self) -> None:
        self.closed = True

    async def scrape(self, season: int, race: Race) -> list[Session]:
        self.calls += 1
        return list(self.sessions.get(race.round, []))


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> CacheStore:
    store = CacheStore(default_ttl=300, clock=clock, autostart=False)
    yield store
    store.stop()


@pytest.fixture
def fakes():
    return {
        "historical": FakeHistorical(),
        "live": FakeLive(),
        "schedule_scraper": FakeScheduleScraper(),
        "session_scraper": FakeSessionScraper(),
    }


@pytest.fixture
def service(cache, fakes) -> ReconciliationService:
    return ReconciliationService(
        cache=cache,
        last_closed_season=2023,
        scraped_seasons=[2019],
        short_ttl=300,
        long_ttl=86400,
        drivers_ttl=3600,
        season_delay=0,
        **fakes,
    )


@pytest.fixture
def sample_session() -> Session:
    return Session(name=SessionName.RACE, date="2023-03-05", time_utc="15:00", time_jst="00:00")


@pytest.fixture
def jolpica_season_payload() -> dict:
    """``/2023.json`` shaped envelope, two races out of order."""
    return {
        "MRData": {
            "RaceTable": {
                "season": "2023",
                "Races": [
                    {
                        "season": "2023",
                        "round": "2",
                        "raceName": "Saudi Arabian Grand Prix",
                        "Circuit": {
                            "circuitName": "Jeddah Corniche Circuit",
                            "Location": {"locality": "Jeddah", "country": "Saudi Arabia"},
                        },
                        "date": "2023-03-19",
                        "time": "17:00:00Z",
                    },
                    {
                        "season": "2023",
                        "round": "1",
                        "raceName": "Bahrain Grand Prix",
                        "Circuit": {
                            "circuitName": "Bahrain International Circuit",
                            "Location": {"locality": "Sakhir", "country": "Bahrain"},
                        },
                        "date": "2023-03-05",
                        "time": "15:00:00Z",
                        "FirstPractice": {"date": "2023-03-03", "time": "11:30:00Z"},
                        "Qualifying": {"date": "2023-03-04", "time": "15:00:00Z"},
                    },
                ],
            }
        }
    }


@pytest.fixture
def jolpica_results_payload() -> dict:
    """``/2023/1/results.json`` shaped envelope with a retirement."""
    return {
        "MRData": {
            "RaceTable": {
                "Races": [
                    {
                        "round": "1",
                        "raceName": "Bahrain Grand Prix",
                        "Circuit": {"circuitName": "Bahrain International Circuit", "Location": {}},
                        "date": "2023-03-05",
                        "Results": [
                            {
                                "position": "1",
                                "positionText": "1",
                                "points": "25",
                                "Driver": {"driverId": "max_verstappen", "code": "VER",
                                           "givenName": "Max", "familyName": "Verstappen"},
                                "Constructor": {"name": "Red Bull"},
                                "status": "Finished",
                                "Time": {"time": "1:33:56.736"},
                            },
                            {
                                "position": "2",
                                "positionText": "2",
                                "points": "18",
                                "Driver": {"driverId": "perez", "code": "PER",
                                           "givenName": "Sergio", "familyName": "Pérez"},
                                "Constructor": {"name": "Red Bull"},
                                "status": "Finished",
                            },
                            {
                                "position": "19",
                                "positionText": "R",
                                "points": "0",
                                "Driver": {"driverId": "leclerc", "givenName": "Charles", "familyName": "Leclerc"},
                                "Constructor": {"name": "Ferrari"},
                                "status": "Engine",
                            },
                        ],
                    }
                ]
            }
        }
    }


@pytest.fixture
def jolpica_driver_standings_payload() -> dict:
    return {
        "MRData": {
            "StandingsTable": {
                "StandingsLists": [
                    {
                        "DriverStandings": [
                            {
                                "position": "1", "points": "575", "wins": "19",
                                "Driver": {"driverId": "max_verstappen", "code": "VER",
                                           "givenName": "Max", "familyName": "Verstappen"},
                                "Constructors": [{"name": "Red Bull"}],
                            },
                            {
                                # No position field: ranks are re-derived from order
                                "points": "2", "wins": "0",
                                "Driver": {"driverId": "ricciardo", "givenName": "Daniel",
                                           "familyName": "Ricciardo"},
                                "Constructors": [{"name": "Red Bull"}, {"name": "AlphaTauri"}],
                            },
                        ]
                    }
                ]
            }
        }
    }


@pytest.fixture
def jolpica_constructor_standings_payload() -> dict:
    return {
        "MRData": {
            "StandingsTable": {
                "StandingsLists": [
                    {
                        "ConstructorStandings": [
                            {"position": "1", "points": "860", "wins": "21", "Constructor": {"name": "Red Bull"}},
                            {"position": "2", "points": "409", "wins": "0", "Constructor": {"name": "Mercedes"}},
                        ]
                    }
                ]
            }
        }
    }


@pytest.fixture
def openf1_meetings() -> list[dict]:
    return [
        {"meeting_key": 1230, "meeting_name": "Bahrain Grand Prix", "location": "Sakhir",
         "country_name": "Bahrain", "circuit_short_name": "Sakhir", "date_start": "2024-02-29T11:30:00+00:00"},
        {"meeting_key": 1229, "meeting_name": "Pre-Season Testing", "location": "Sakhir",
         "country_name": "Bahrain", "circuit_short_name": "Sakhir", "date_start": "2024-02-21T07:00:00+00:00"},
        {"meeting_key": 1231, "meeting_name": "Saudi Arabian Grand Prix", "location": "Jeddah",
         "country_name": "Saudi Arabia", "circuit_short_name": "Jeddah", "date_start": "2024-03-07T13:30:00+00:00"},
    ]


@pytest.fixture
def openf1_sessions() -> list[dict]:
    return [
        {"session_key": 9465, "meeting_key": 1230, "session_name": "Race",
         "date_start": "2024-03-02T15:00:00+00:00"},
        {"session_key": 9459, "meeting_key": 1230, "session_name": "Practice 1",
         "date_start": "2024-02-29T11:30:00+00:00"},
        {"session_key": 9464, "meeting_key": 1230, "session_name": "Qualifying",
         "date_start": "2024-03-01T16:00:00+00:00"},
        {"session_key": 9400, "meeting_key": 1229, "session_name": "Day 1",
         "date_start": "2024-02-21T07:00:00+00:00"},
        {"session_key": 9472, "meeting_key": 1231, "session_name": "Race",
         "date_start": "2024-03-09T17:00:00+00:00"},
    ]


@pytest.fixture
def season_article_html() -> str:
    """Trimmed Japanese Wikipedia season article with a calendar table."""
    return """
    <html><body>
    <table class="wikitable">
      <tr><th>チーム</th><th>ドライバー</th></tr>
      <tr><td>レッドブル</td><td>フェルスタッペン</td></tr>
    </table>
    <table class="wikitable">
      <tr><th>ラウンド</th><th>グランプリ</th><th>サーキット</th><th>開催日</th></tr>
      <tr><td>2</td><td><a href="/wiki/x" title="2019年中国グランプリ">中国GP</a></td>
          <td>上海インターナショナル・サーキット</td><td>4月14日</td></tr>
      <tr><td>1</td><td><a href="/wiki/y" title="2019年バーレーングランプリ">バーレーンGP<sup class="reference">[1]</sup></a></td>
          <td>バーレーン・インターナショナル・サーキット</td><td>3月31日</td></tr>
      <tr><td>3</td><td>架空GP</td><td>架空サーキット</td><td>日程未定</td></tr>
      <tr><td>1</td><td>バーレーンGP</td><td>重複</td><td>3月31日</td></tr>
    </table>
    </body></html>
    """


@pytest.fixture
def race_article_html() -> str:
    """Trimmed Japanese Wikipedia race article with a JST timetable."""
    return """
    <html><body>
    <table class="wikitable">
      <tr><th>セッション</th><th>日付</th><th>時間 (JST)</th></tr>
      <tr><td>フリー走行1</td><td>4月5日</td><td>11:30</td></tr>
      <tr><td>スプリント予選</td><td>4月5日</td><td>15:30</td></tr>
      <tr><td>スプリント</td><td>4月6日</td><td>11:00</td></tr>
      <tr><td>予選</td><td>4月6日</td><td>15:00</td></tr>
      <tr><td>決勝</td><td>4月7日</td><td>2:00</td></tr>
      <tr><td>決勝</td><td>4月7日</td><td>14:00</td></tr>
    </table>
    </body></html>
    """

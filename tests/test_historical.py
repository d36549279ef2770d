"""
Unit tests for the Jolpica (Ergast) adapter: payload parsing and fail-soft fetching.
"""
import asyncio

import pytest
import requests

from f1_dashboard.models import SessionName
from f1_dashboard.sources.historical import (
    HistoricalResultsAdapter,
    parse_constructor_standings,
    parse_driver_standings,
    parse_race_results,
    parse_result,
    parse_season_races,
)


class StubClient:
    """Answers get_json from a path -> payload map; raises for anything in ``errors``."""

    def __init__(self, payloads=None, errors=None) -> None:
        self.payloads = payloads or {}
        self.errors = errors or {}
        self.requested: list[tuple[str, dict]] = []

    def get_json(self, path, params=None):
        self.requested.append((path, params))
        if path in self.errors:
            raise self.errors[path]
        return self.payloads.get(path, {})


class TestParseSeasonRaces:
    def test_sorted_by_round(self, jolpica_season_payload):
        races = parse_season_races(jolpica_season_payload)
        assert [r.round for r in races] == [1, 2]

    def test_race_fields(self, jolpica_season_payload):
        bahrain = parse_season_races(jolpica_season_payload)[0]
        assert bahrain.name == "Bahrain Grand Prix"
        assert bahrain.name_ja == "バーレーンGP"
        assert bahrain.circuit == "Bahrain International Circuit"
        assert bahrain.location == "Sakhir, Bahrain"
        assert bahrain.date_start == "2023-03-03"
        assert bahrain.date_end == "2023-03-05"
        assert bahrain.results is None

    def test_sessions_from_blocks(self, jolpica_season_payload):
        bahrain = parse_season_races(jolpica_season_payload)[0]
        names = [s.name for s in bahrain.sessions]
        assert names == [SessionName.FP1, SessionName.QUALIFYING, SessionName.RACE]
        race = bahrain.sessions[-1]
        assert (race.date, race.time_utc, race.time_jst) == ("2023-03-05", "15:00", "00:00")

    def test_date_start_falls_back_to_race_date(self, jolpica_season_payload):
        jeddah = parse_season_races(jolpica_season_payload)[1]
        assert jeddah.date_start == jeddah.date_end == "2023-03-19"

    @pytest.mark.parametrize("payload", [
        None,
        {},
        {"MRData": {}},
        {"MRData": {"RaceTable": {}}},
        {"MRData": {"RaceTable": {"Races": "oops"}}},
    ])
    def test_missing_levels_give_empty_list(self, payload):
        assert parse_season_races(payload) == []

    def test_malformed_record_is_skipped(self, jolpica_season_payload):
        jolpica_season_payload["MRData"]["RaceTable"]["Races"].append({"raceName": "No round"})
        assert len(parse_season_races(jolpica_season_payload)) == 2

    def test_non_object_records_are_skipped(self, jolpica_season_payload):
        jolpica_season_payload["MRData"]["RaceTable"]["Races"] += [None, "round 3", 7]
        assert [r.round for r in parse_season_races(jolpica_season_payload)] == [1, 2]
        assert parse_season_races({"MRData": {"RaceTable": {"Races": [None]}}}) == []

    def test_non_object_circuit_and_location(self):
        races = parse_season_races({"MRData": {"RaceTable": {"Races": [
            {"round": "1", "raceName": "Bahrain Grand Prix", "date": "2023-03-05", "Circuit": "Sakhir"},
            {"round": "2", "raceName": "Saudi Arabian Grand Prix", "date": "2023-03-19",
             "Circuit": {"circuitName": "Jeddah Corniche Circuit", "Location": "Jeddah"}},
        ]}}})
        assert [(r.circuit, r.location) for r in races] == [
            ("Unknown", "Unknown"),
            ("Jeddah Corniche Circuit", "Unknown"),
        ]

    def test_null_race_name(self):
        (race,) = parse_season_races({"MRData": {"RaceTable": {"Races": [
            {"round": "1", "raceName": None, "date": "2023-03-05"},
        ]}}})
        assert race.name == ""
        assert race.name_ja is None


class TestParseResults:
    def test_race_with_results(self, jolpica_results_payload):
        race = parse_race_results(jolpica_results_payload)
        assert race is not None
        assert [r.driver_code for r in race.results] == ["VER", "PER", "LEC"]

    def test_retirement_has_no_position(self, jolpica_results_payload):
        race = parse_race_results(jolpica_results_payload)
        retired = race.results[-1]
        assert retired.position is None
        assert retired.position_text == "R"
        assert retired.classified is False

    def test_code_falls_back_to_driver_id(self):
        result = parse_result({"positionText": "3", "Driver": {"driverId": "hamilton"}, "Constructor": {}})
        assert result.driver_code == "HAM"
        assert result.team == "Unknown"
        assert result.points == 0.0

    def test_non_object_driver_and_constructor(self):
        result = parse_result({"positionText": "1", "points": "25", "Driver": "VER", "Constructor": ["Red Bull"]})
        assert result.position == 1
        assert result.driver_code == ""
        assert result.team == "Unknown"

    def test_bad_result_entries_are_skipped(self, jolpica_results_payload):
        entries = jolpica_results_payload["MRData"]["RaceTable"]["Races"][0]["Results"]
        entries.insert(0, None)
        entries.append({"positionText": "20", "Driver": {"code": "SAR"}, "Constructor": {"name": None}})
        race = parse_race_results(jolpica_results_payload)
        assert [r.driver_code for r in race.results] == ["VER", "PER", "LEC"]

    def test_result_with_string_driver_keeps_the_race(self, jolpica_results_payload):
        entries = jolpica_results_payload["MRData"]["RaceTable"]["Races"][0]["Results"]
        entries[2]["Driver"] = "LEC"
        race = parse_race_results(jolpica_results_payload)
        assert len(race.results) == 3

    def test_winner_time(self, jolpica_results_payload):
        race = parse_race_results(jolpica_results_payload)
        assert race.results[0].time == "1:33:56.736"
        assert race.results[1].time is None

    def test_no_results_yet_is_none(self, jolpica_season_payload):
        assert parse_race_results(jolpica_season_payload) is None
        assert parse_race_results({}) is None

    def test_duplicate_positions_drop_results(self, jolpica_results_payload):
        entries = jolpica_results_payload["MRData"]["RaceTable"]["Races"][0]["Results"]
        entries[1]["positionText"] = "1"
        assert parse_race_results(jolpica_results_payload) is None


class TestParseStandings:
    def test_driver_standings(self, jolpica_driver_standings_payload):
        standings = parse_driver_standings(jolpica_driver_standings_payload)
        assert [s.position for s in standings] == [1, 2]
        assert standings[0].name == "Max Verstappen"
        assert standings[0].points == 575.0
        assert standings[0].wins == 19

    def test_driver_team_is_latest_constructor(self, jolpica_driver_standings_payload):
        ricciardo = parse_driver_standings(jolpica_driver_standings_payload)[1]
        assert ricciardo.team == "AlphaTauri"
        assert ricciardo.code == "RIC"

    def test_constructor_standings(self, jolpica_constructor_standings_payload):
        standings = parse_constructor_standings(jolpica_constructor_standings_payload)
        assert [(s.position, s.name, s.points) for s in standings] == [
            (1, "Red Bull", 860.0),
            (2, "Mercedes", 409.0),
        ]
        assert standings[0].code is None

    def test_empty_standings_lists(self):
        payload = {"MRData": {"StandingsTable": {"StandingsLists": []}}}
        assert parse_driver_standings(payload) == []
        assert parse_constructor_standings(None) == []


class TestAdapter:
    def test_races_requests_full_page(self, jolpica_season_payload):
        client = StubClient({"2023.json": jolpica_season_payload})
        races = asyncio.run(HistoricalResultsAdapter(client).races(2023))
        assert len(races) == 2
        assert client.requested == [("2023.json", {"limit": 100})]

    def test_network_error_gives_empty(self):
        client = StubClient(errors={"2023.json": requests.exceptions.ConnectionError("down")})
        assert asyncio.run(HistoricalResultsAdapter(client).races(2023)) == []

    def test_decode_error_gives_empty_standings(self):
        client = StubClient(errors={"2023/driverStandings.json": ValueError("bad json")})
        assert asyncio.run(HistoricalResultsAdapter(client).driver_standings(2023)) == []

    def test_race_results_missing_round_is_none(self):
        client = StubClient()
        assert asyncio.run(HistoricalResultsAdapter(client).race_results(2023, 30)) is None

    def test_all_race_results_keeps_completed_rounds(self, jolpica_results_payload, monkeypatch):
        from f1_dashboard.config import cfg

        monkeypatch.setattr(cfg.reconcile, "batch_delay", 0)
        client = StubClient(
            {"2023/1/results.json": jolpica_results_payload},
            errors={"2023/2/results.json": requests.exceptions.Timeout("slow")},
        )
        results = asyncio.run(HistoricalResultsAdapter(client).all_race_results(2023, 3))
        assert list(results) == [1]
        assert len(results[1]) == 3
        assert len(client.requested) == 3

    def test_races_with_null_records_keep_the_valid_ones(self, jolpica_season_payload):
        jolpica_season_payload["MRData"]["RaceTable"]["Races"].insert(0, None)
        client = StubClient({"2023.json": jolpica_season_payload})
        races = asyncio.run(HistoricalResultsAdapter(client).races(2023))
        assert [r.round for r in races] == [1, 2]

    def test_driver_standings_skip_non_object_entries(self, jolpica_driver_standings_payload):
        table = jolpica_driver_standings_payload["MRData"]["StandingsTable"]["StandingsLists"][0]
        table["DriverStandings"].insert(0, None)
        table["DriverStandings"][1]["Constructors"] = ["Red Bull"]
        client = StubClient({"2023/driverStandings.json": jolpica_driver_standings_payload})
        standings = asyncio.run(HistoricalResultsAdapter(client).driver_standings(2023))
        assert [(s.position, s.code, s.team) for s in standings] == [(1, "VER", None), (2, "RIC", "AlphaTauri")]

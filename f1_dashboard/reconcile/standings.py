"""
Championship standings derived from race results.

Used for seasons that only exist as scraped calendars joined with per-round
results: the totals are a pure function of the race list and are recomputed
from it on every call.
"""
import pandas as pd

from f1_dashboard.models import Race, StandingEntry


def results_frame(races: list[Race]) -> pd.DataFrame:
    """
    Flatten every race result into one row, in round order.

    Retired / unclassified entries are kept: they still carry points.
    """
    rows = [
        {
            "round": race.round,
            "driver": result.driver,
            "code": result.driver_code,
            "team": result.team,
            "points": float(result.points),
            "win": result.position == 1,
        }
        for race in sorted(races, key=lambda r: r.round)
        for result in (race.results or [])
    ]
    return pd.DataFrame(rows, columns=["round", "driver", "code", "team", "points", "win"])


def _rank(totals: pd.DataFrame) -> pd.DataFrame:
    # Stable sort keeps first-seen order between equal totals
    ranked = totals.sort_values("points", ascending=False, kind="stable").reset_index(drop=True)
    ranked["position"] = ranked.index + 1
    return ranked


def derive_driver_standings(races: list[Race]) -> list[StandingEntry]:
    """Sum points per driver code. Name comes from the first appearance, team from the latest."""
    df = results_frame(races)
    if df.empty:
        return []

    totals = df.groupby("code", sort=False).agg(
        driver_name=("driver", "first"),
        team=("team", "last"),
        points=("points", "sum"),
        wins=("win", "sum"),
    ).reset_index()

    return [
        StandingEntry(
            position=int(row.position),
            name=row.driver_name,
            points=float(row.points),
            team=row.team,
            code=row.code,
            wins=int(row.wins),
        )
        for row in _rank(totals).itertuples(index=False)
    ]


def derive_constructor_standings(races: list[Race]) -> list[StandingEntry]:
    """Sum points per team."""
    df = results_frame(races)
    if df.empty:
        return []

    totals = df.groupby("team", sort=False).agg(
        points=("points", "sum"),
        wins=("win", "sum"),
    ).reset_index()

    return [
        StandingEntry(
            position=int(row.position),
            name=row.team,
            points=float(row.points),
            wins=int(row.wins),
        )
        for row in _rank(totals).itertuples(index=False)
    ]

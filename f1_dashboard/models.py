"""
Shared race / result / standings shapes.

Every source adapter normalizes into these models before handing data to
the reconciliation layer, so no upstream field names leak past an adapter.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

UNKNOWN = "Unknown"


class SessionName(str, Enum):
    FP1 = "Free Practice 1"
    FP2 = "Free Practice 2"
    FP3 = "Free Practice 3"
    QUALIFYING = "Qualifying"
    SPRINT_QUALIFYING = "Sprint Qualifying"
    SPRINT = "Sprint"
    RACE = "Race"


class Session(BaseModel):
    name: SessionName
    date: str  # UTC calendar date
    time_utc: str
    time_jst: str


class RaceResult(BaseModel):
    # None marks a classified non-finisher (retired, DNS, DSQ, ...)
    position: Optional[int] = Field(default=None, ge=1)
    position_text: str = ""
    driver: str
    driver_code: str
    team: str
    points: float = Field(default=0.0, ge=0)
    time: Optional[str] = None
    status: str = ""

    @property
    def classified(self) -> bool:
        return self.position is not None


class Race(BaseModel):
    round: int = Field(ge=1)
    name: str
    name_ja: Optional[str] = None
    circuit: str = UNKNOWN
    location: str = UNKNOWN
    date_start: str
    date_end: str
    sessions: list[Session] = Field(default_factory=list)
    results: Optional[list[RaceResult]] = None

    @field_validator("results")
    @classmethod
    def validate_results(cls, v: Optional[list[RaceResult]]) -> Optional[list[RaceResult]]:
        """Normalize an empty list to None and reject duplicate finishing positions."""
        if not v:
            return None
        positions = [r.position for r in v if r.position is not None]
        if len(positions) != len(set(positions)):
            raise ValueError("duplicate finishing positions in results")
        return v


class StandingEntry(BaseModel):
    position: int = Field(ge=1)
    name: str
    points: float = Field(ge=0)
    team: Optional[str] = None
    code: Optional[str] = None
    wins: Optional[int] = None


class Driver(BaseModel):
    number: Optional[int] = None
    full_name: str
    code: str
    team: Optional[str] = None
    team_colour: Optional[str] = None
    country_code: Optional[str] = None
    headshot_url: Optional[str] = None


class SeasonSummary(BaseModel):
    season: int
    races: list[Race]
    count: int

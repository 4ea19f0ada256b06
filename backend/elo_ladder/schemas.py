from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TargetStatus = Literal["confirmed", "rejected", "cancelled"]


def _strip_id(value: str, field: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValueError(f"{field} must not be empty")
    return trimmed


class PlayerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _strip_id(value, "name")


class PlayerOut(BaseModel):
    id: str
    name: str
    rating: float
    rank: int
    totalMatches: int
    wins: int
    losses: int
    currentWinStreak: int
    bestWinStreak: int
    teamRating: float
    teamRank: int
    teamTotalMatches: int
    teamWins: int
    teamLosses: int


class TeamCreate(BaseModel):
    player1Id: str
    player2Id: str
    name: Optional[str] = Field(default=None, max_length=200)

    model_config = ConfigDict(extra="forbid")


class TeamUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _strip_id(value, "name")


class TeamOut(BaseModel):
    id: str
    name: Optional[str] = None
    player1Id: str
    player2Id: str
    rating: float
    totalMatches: int
    wins: int
    losses: int


class MatchCreate(BaseModel):
    """A reported 1v1 result. Stays pending until confirmed."""

    player1Id: str
    player2Id: str
    winnerId: str

    model_config = ConfigDict(extra="forbid")

    @field_validator("player1Id", "player2Id", "winnerId", mode="before")
    @classmethod
    def _validate_ids(cls, value: str, info) -> str:
        return _strip_id(value, info.field_name)


class TeamMatchCreate(BaseModel):
    team1Id: str
    team2Id: str
    winnerTeamId: str

    model_config = ConfigDict(extra="forbid")

    @field_validator("team1Id", "team2Id", "winnerTeamId", mode="before")
    @classmethod
    def _validate_ids(cls, value: str, info) -> str:
        return _strip_id(value, info.field_name)


class MatchStatusUpdate(BaseModel):
    """Resolve a pending match and/or correct its winner."""

    status: Optional[TargetStatus] = None
    winnerId: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _require_change(self) -> "MatchStatusUpdate":
        if self.status is None and self.winnerId is None:
            raise ValueError("status or winnerId is required")
        return self


class MatchOut(BaseModel):
    id: str
    player1Id: str
    player2Id: str
    winnerId: str
    status: str
    createdAt: datetime
    confirmedAt: Optional[datetime] = None


class TeamMatchOut(BaseModel):
    id: str
    team1Id: str
    team2Id: str
    winnerTeamId: str
    status: str
    createdAt: datetime
    confirmedAt: Optional[datetime] = None


class MatchDeletedOut(BaseModel):
    id: str
    replayed: int


class RatingHistoryOut(BaseModel):
    matchId: str
    matchType: str
    ratingBefore: float
    ratingAfter: float
    ratingDelta: float
    opponentId: Optional[str] = None
    opponentTeamId: Optional[str] = None
    createdAt: datetime


class RatingHistoryListOut(BaseModel):
    playerId: str
    entries: List[RatingHistoryOut] = Field(default_factory=list)


class AutoValidationStatsOut(BaseModel):
    enabled: bool
    running: bool
    windowHours: float
    intervalSeconds: float
    pending: int
    expired: int
    lastRunAt: Optional[datetime] = None


class SweepReportOut(BaseModel):
    confirmed: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


class ActivityStatsOut(BaseModel):
    totalPlayers: int
    totalTeams: int
    totalMatches: int
    totalTeamMatches: int
    matchesLast7Days: int
    matchesPrevious7Days: int
    teamMatchesLast7Days: int
    teamMatchesPrevious7Days: int

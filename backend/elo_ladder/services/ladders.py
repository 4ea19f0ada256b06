"""Solo and team ladders.

Each ladder knows how to validate the two sides of a match and how to apply,
reverse and replay a confirmed match against its rating track. The lifecycle
engine drives both through the same interface.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..authorization import Parties
from ..exceptions import DuplicateParty, InvalidWinner, TeamNotFound
from ..models import (
    MATCH_PENDING,
    MATCH_TYPE_SOLO,
    MATCH_TYPE_TEAM,
    Match,
    Player,
    RatingHistory,
    Team,
    TeamMatch,
)
from .directory import get_player, get_team, load_players_for_update, team_roster
from .elo import solo_delta, team_average, team_delta, team_elo_change
from .ledger import delete_entries, entries_for_match, record_entry
from .tracks import (
    SOLO_TRACK,
    TEAM_TRACK,
    RatingTrack,
    rebuild_win_streaks,
    record_team_result,
    record_win_streak,
    undo_team_result,
)

logger = logging.getLogger(__name__)


@dataclass
class RatingChange:
    player: Player
    delta: float
    won: bool
    opponent_id: str | None = None
    opponent_team_id: str | None = None


class Ladder:
    label: str
    match_type: str
    model: type
    track: RatingTrack
    side_attrs: tuple[str, str]
    winner_attr: str

    def sides(self, match) -> tuple[str, str]:
        return getattr(match, self.side_attrs[0]), getattr(match, self.side_attrs[1])

    def winner(self, match) -> str:
        return getattr(match, self.winner_attr)

    def set_winner(self, match, winner_id: str) -> None:
        if winner_id not in self.sides(match):
            raise InvalidWinner(winner_id)
        setattr(match, self.winner_attr, winner_id)

    def build(self, side1: str, side2: str, winner: str, created_at: datetime):
        return self.model(
            id=uuid.uuid4().hex,
            **{
                self.side_attrs[0]: side1,
                self.side_attrs[1]: side2,
                self.winner_attr: winner,
            },
            status=MATCH_PENDING,
            created_at=created_at,
        )

    async def parties(self, session: AsyncSession, match) -> Parties:
        return await self.parties_for(session, *self.sides(match))

    def _write_ledger(
        self, session: AsyncSession, match, changes: Sequence[RatingChange]
    ) -> None:
        # rating_before is read before any rating of this match is touched
        for change in changes:
            record_entry(
                session,
                player_id=change.player.id,
                match_id=match.id,
                match_type=self.match_type,
                rating_before=self.track.rating_of(change.player),
                delta=change.delta,
                created_at=match.confirmed_at,
                opponent_id=change.opponent_id,
                opponent_team_id=change.opponent_team_id,
            )

    async def validate(
        self, session: AsyncSession, side1: str, side2: str, winner: str
    ) -> None:
        raise NotImplementedError

    async def parties_for(self, session: AsyncSession, side1: str, side2: str) -> Parties:
        raise NotImplementedError

    async def apply(self, session: AsyncSession, match) -> None:
        raise NotImplementedError

    async def reverse(self, session: AsyncSession, match) -> None:
        raise NotImplementedError

    async def unwind(self, session: AsyncSession, match) -> None:
        """Take back the rating effect of ``match`` and drop its ledger rows.

        Counters stay as they are; the match is about to be replayed.
        """

        entries = await entries_for_match(session, match.id)
        await self._unwind_sides(session, match, entries)
        players = await load_players_for_update(session, [e.player_id for e in entries])
        for entry in entries:
            self.track.adjust_rating(players[entry.player_id], -entry.rating_delta)
        await delete_entries(session, entries)

    async def _unwind_sides(
        self, session: AsyncSession, match, entries: Sequence[RatingHistory]
    ) -> None:
        pass

    async def replay(self, session: AsyncSession, match) -> None:
        """Score ``match`` again from current ratings, touching ratings only."""

        raise NotImplementedError


class SoloLadder(Ladder):
    label = "match"
    match_type = MATCH_TYPE_SOLO
    model = Match
    track = SOLO_TRACK
    side_attrs = ("player1_id", "player2_id")
    winner_attr = "winner_id"

    async def validate(self, session, side1, side2, winner):
        await get_player(session, side1)
        await get_player(session, side2)
        if side1 == side2:
            raise DuplicateParty("player1 and player2 must be different")
        if winner not in (side1, side2):
            raise InvalidWinner(winner)

    async def parties_for(self, session, side1, side2):
        return Parties(frozenset({side1}), frozenset({side2}))

    async def _score(self, session: AsyncSession, match: Match) -> list[RatingChange]:
        p1_id, p2_id = self.sides(match)
        players = await load_players_for_update(session, (p1_id, p2_id))
        p1, p2 = players[p1_id], players[p2_id]
        p1_won = match.winner_id == p1_id
        d1, d2 = solo_delta(
            self.track.rating_of(p1),
            self.track.rating_of(p2),
            p1_won,
            floor=config.RATING_FLOOR,
        )
        return [
            RatingChange(p1, d1, p1_won, opponent_id=p2_id),
            RatingChange(p2, d2, not p1_won, opponent_id=p1_id),
        ]

    async def apply(self, session, match):
        changes = await self._score(session, match)
        self._write_ledger(session, match, changes)
        for change in changes:
            self.track.record_result(change.player, change.delta, change.won)
        winner = next(c.player for c in changes if c.won)
        loser = next(c.player for c in changes if not c.won)
        record_win_streak(winner, loser)

    async def reverse(self, session, match):
        entries = await entries_for_match(session, match.id)
        by_player = {e.player_id: e for e in entries}
        players = await load_players_for_update(session, self.sides(match))
        for pid, player in players.items():
            entry = by_player.get(pid)
            if entry is None:
                logger.warning("No rating history for player %s in match %s", pid, match.id)
            delta = entry.rating_delta if entry else 0.0
            self.track.undo_result(player, delta, won=pid == match.winner_id)
        await delete_entries(session, entries)
        await rebuild_win_streaks(session, players.values())

    async def replay(self, session, match):
        changes = await self._score(session, match)
        self._write_ledger(session, match, changes)
        for change in changes:
            self.track.adjust_rating(change.player, change.delta)


def _mean_delta(entries: dict[str, RatingHistory], roster: Sequence[str]) -> float:
    deltas = [entries[pid].rating_delta if pid in entries else 0.0 for pid in roster]
    return team_elo_change(*deltas)


class TeamLadder(Ladder):
    label = "team match"
    match_type = MATCH_TYPE_TEAM
    model = TeamMatch
    track = TEAM_TRACK
    side_attrs = ("team1_id", "team2_id")
    winner_attr = "winner_team_id"

    async def validate(self, session, side1, side2, winner):
        team1 = await get_team(session, side1)
        team2 = await get_team(session, side2)
        if side1 == side2:
            raise DuplicateParty("team1 and team2 must be different")
        if winner not in (side1, side2):
            raise InvalidWinner(winner)
        shared = set(team_roster(team1)) & set(team_roster(team2))
        if shared:
            raise DuplicateParty(
                "teams cannot share players: " + ", ".join(sorted(shared))
            )

    async def parties_for(self, session, side1, side2):
        team1 = await get_team(session, side1)
        team2 = await get_team(session, side2)
        return Parties(frozenset(team_roster(team1)), frozenset(team_roster(team2)))

    async def _teams(self, session: AsyncSession, match: TeamMatch) -> tuple[Team, Team]:
        # Historic matches still replay after a team is retired.
        teams = []
        for team_id in self.sides(match):
            team = await session.get(Team, team_id)
            if team is None:
                raise TeamNotFound(team_id)
            teams.append(team)
        return teams[0], teams[1]

    async def _score(
        self, session: AsyncSession, match: TeamMatch, team1: Team, team2: Team
    ) -> list[RatingChange]:
        roster1, roster2 = team_roster(team1), team_roster(team2)
        players = await load_players_for_update(session, roster1 + roster2)

        def rating(pid: str) -> float:
            return self.track.rating_of(players[pid])

        avg1 = team_average(*(rating(pid) for pid in roster1))
        avg2 = team_average(*(rating(pid) for pid in roster2))
        team1_won = match.winner_team_id == team1.id
        floor = config.RATING_FLOOR

        changes = [
            RatingChange(
                players[pid],
                team_delta(rating(pid), avg2, team1_won, floor=floor),
                team1_won,
                opponent_team_id=team2.id,
            )
            for pid in roster1
        ]
        changes += [
            RatingChange(
                players[pid],
                team_delta(rating(pid), avg1, not team1_won, floor=floor),
                not team1_won,
                opponent_team_id=team1.id,
            )
            for pid in roster2
        ]
        return changes

    @staticmethod
    def _team_changes(
        changes: Sequence[RatingChange], team1: Team, team2: Team
    ) -> tuple[float, float]:
        by_player = {c.player.id: c.delta for c in changes}
        return (
            team_elo_change(*(by_player[pid] for pid in team_roster(team1))),
            team_elo_change(*(by_player[pid] for pid in team_roster(team2))),
        )

    async def apply(self, session, match):
        team1, team2 = await self._teams(session, match)
        changes = await self._score(session, match, team1, team2)
        self._write_ledger(session, match, changes)
        for change in changes:
            self.track.record_result(change.player, change.delta, change.won)

        change1, change2 = self._team_changes(changes, team1, team2)
        team1_won = match.winner_team_id == team1.id
        record_team_result(team1, change1, team1_won)
        record_team_result(team2, change2, not team1_won)

    async def reverse(self, session, match):
        team1, team2 = await self._teams(session, match)
        entries = {e.player_id: e for e in await entries_for_match(session, match.id)}
        roster1, roster2 = team_roster(team1), team_roster(team2)
        players = await load_players_for_update(session, roster1 + roster2)
        team1_won = match.winner_team_id == team1.id

        for pid, player in players.items():
            entry = entries.get(pid)
            if entry is None:
                logger.warning("No rating history for player %s in team match %s", pid, match.id)
            delta = entry.rating_delta if entry else 0.0
            won = team1_won if pid in roster1 else not team1_won
            self.track.undo_result(player, delta, won=won)

        undo_team_result(team1, _mean_delta(entries, roster1), team1_won)
        undo_team_result(team2, _mean_delta(entries, roster2), not team1_won)
        await delete_entries(session, list(entries.values()))

    async def _unwind_sides(self, session, match, entries):
        team1, team2 = await self._teams(session, match)
        by_player = {e.player_id: e for e in entries}
        team1.rating -= _mean_delta(by_player, team_roster(team1))
        team2.rating -= _mean_delta(by_player, team_roster(team2))

    async def replay(self, session, match):
        team1, team2 = await self._teams(session, match)
        changes = await self._score(session, match, team1, team2)
        self._write_ledger(session, match, changes)
        for change in changes:
            self.track.adjust_rating(change.player, change.delta)

        change1, change2 = self._team_changes(changes, team1, team2)
        team1.rating += change1
        team2.rating += change2


SOLO = SoloLadder()
TEAM = TeamLadder()
LADDERS = (SOLO, TEAM)

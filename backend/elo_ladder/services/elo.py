"""ELO rating math.

Pure functions only. The cascade replays history through these functions, so
for the same inputs they must always return the same numbers.
"""

from __future__ import annotations

import math

K_FACTOR = 32.0


def _round_half_away(value: float) -> float:
    """Round to the nearest integer, halves away from zero.

    ``round()`` uses banker's rounding, which would make a +0.5 and a -0.5
    delta round to different magnitudes.
    """

    return math.copysign(math.floor(abs(value) + 0.5), value)


def _clamp_to_floor(rating: float, delta: float, floor: float | None) -> float:
    if floor is not None and rating + delta < floor:
        return floor - rating
    return delta


def expected_score(rating: float, opponent_rating: float) -> float:
    """Return the expected score of ``rating`` against ``opponent_rating``."""

    return 1.0 / (1.0 + 10 ** ((opponent_rating - rating) / 400.0))


def solo_delta(
    rating_a: float,
    rating_b: float,
    winner_is_a: bool,
    *,
    floor: float | None = None,
    k: float = K_FACTOR,
) -> tuple[float, float]:
    """Return ``(delta_a, delta_b)`` for a 1v1 match.

    Both deltas are rounded independently and are not re-balanced, so they
    can differ in magnitude by one point. When ``floor`` is given, a side
    whose rating would drop below it loses only down to the floor.
    """

    expected_a = expected_score(rating_a, rating_b)
    expected_b = 1.0 - expected_a

    actual_a = 1.0 if winner_is_a else 0.0
    actual_b = 1.0 - actual_a

    delta_a = _clamp_to_floor(rating_a, k * (actual_a - expected_a), floor)
    delta_b = _clamp_to_floor(rating_b, k * (actual_b - expected_b), floor)

    return _round_half_away(delta_a), _round_half_away(delta_b)


def team_delta(
    player_rating: float,
    opponent_team_average: float,
    is_winner: bool,
    *,
    floor: float | None = None,
    k: float = K_FACTOR,
) -> float:
    """Return one player's delta against the opposing pair's average rating."""

    expected = expected_score(player_rating, opponent_team_average)
    actual = 1.0 if is_winner else 0.0
    delta = _clamp_to_floor(player_rating, k * (actual - expected), floor)
    return _round_half_away(delta)


def team_average(rating1: float, rating2: float) -> float:
    return (rating1 + rating2) / 2.0


def team_elo_change(delta1: float, delta2: float) -> float:
    """A team's own rating change: the mean of its two players' deltas."""

    return (delta1 + delta2) / 2.0

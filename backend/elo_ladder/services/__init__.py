"""Match engine services: rating math, ledger, ladders and lifecycle."""

from .elo import expected_score, solo_delta, team_delta, team_average, team_elo_change
from .stats import compute_streaks
from .ranks import competition_ranks, recalculate_ranks

__all__ = [
    "expected_score",
    "solo_delta",
    "team_delta",
    "team_average",
    "team_elo_change",
    "compute_streaks",
    "competition_ranks",
    "recalculate_ranks",
]

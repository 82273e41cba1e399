"""Weighted opponent scoring."""

from __future__ import annotations

import math
from dataclasses import dataclass

from rinkmate.models import MatchScores, NearbyTeamCandidate

DEFAULT_RATING = 50.0


@dataclass(frozen=True, slots=True)
class ScoringPolicy:
    """Match policy constants. Values are product policy; override via settings."""

    rating_weight: float = 0.4
    distance_weight: float = 0.35
    schedule_weight: float = 0.25
    rating_band: int = 3
    replay_penalty: float = 0.7
    rating_slope: float = 15.0
    schedule_compatibility: float = 80.0

    def rating_window(self, rating: float) -> tuple[float, float]:
        """Candidate rating band around ``rating`` clamped to [0, 100]."""
        return max(0.0, rating - self.rating_band), min(100.0, rating + self.rating_band)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class OpponentScorer:
    """Scores a candidate team against the requesting user's team."""

    def __init__(self, policy: ScoringPolicy | None = None) -> None:
        self.policy = policy or ScoringPolicy()

    def score(
        self,
        candidate: NearbyTeamCandidate,
        user_rating: float,
        distance_miles: float,
        max_distance: float,
        already_played: bool = False,
        exclude_recent: bool = False,
    ) -> MatchScores:
        policy = self.policy
        rating = DEFAULT_RATING if candidate.rating is None else candidate.rating

        rating_closeness = max(0.0, 100 - abs(user_rating - rating) * policy.rating_slope)
        if max_distance > 0:
            distance = max(0.0, 100 - (distance_miles / max_distance) * 100)
        else:
            distance = 0.0
        schedule = policy.schedule_compatibility

        overall = (
            rating_closeness * policy.rating_weight
            + distance * policy.distance_weight
            + schedule * policy.schedule_weight
        )
        # Already-played teams still rank, just lower.
        if already_played and exclude_recent:
            overall *= policy.replay_penalty

        return MatchScores(
            rating_closeness=round_half_up(rating_closeness),
            distance=round_half_up(distance),
            schedule_compatibility=round_half_up(schedule),
            overall=round_half_up(overall),
        )

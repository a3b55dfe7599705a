"""
FleetWatch Risk Scoring

Converts a cluster of incident points into a 0-100 risk score and maps scores
onto risk levels.

Score Formula:
    score = min(size * 5, 50)
          + sum over points of (severity + incident type + recency addends)
    clamped to [0, 100]

Addends per point:
    severity: critical +20, high +10, medium +5, anything else +1
    type:     contains "weapon" +15, otherwise contains "tamper" +8
    recency:  < 7 days +10, < 30 days +5, < 90 days +2
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Optional, Sequence, Union

from ..models import AlertPoint, RiskLevel, ensure_utc, utc_now


SIZE_POINTS_PER_ALERT = 5
SIZE_POINTS_CAP = 50

SEVERITY_POINTS = {
    "critical": 20,
    "high": 10,
    "medium": 5,
}
DEFAULT_SEVERITY_POINTS = 1

WEAPON_TYPE_POINTS = 15
TAMPER_TYPE_POINTS = 8

# (max days exclusive, points), checked in order
RECENCY_BANDS = (
    (7, 10),
    (30, 5),
    (90, 2),
)

RISK_LEVEL_FACTORS = {
    RiskLevel.CRITICAL: 10,
    RiskLevel.HIGH: 7,
    RiskLevel.MEDIUM: 4,
    RiskLevel.LOW: 1,
}

MAX_SCORE = 100


def days_since(timestamp: datetime, now: datetime) -> int:
    """Whole days between two instants, rounded up, direction ignored."""
    elapsed = abs((ensure_utc(now) - ensure_utc(timestamp)).total_seconds())
    return math.ceil(elapsed / 86400)


def risk_level_for_score(score: float) -> RiskLevel:
    """
    Map a 0-100 score onto a risk level.

    >= 80 critical, >= 60 high, >= 30 medium, otherwise low.
    """
    if score >= 80:
        return RiskLevel.CRITICAL
    if score >= 60:
        return RiskLevel.HIGH
    if score >= 30:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def risk_factor_for_level(level: Union[RiskLevel, str]) -> int:
    """Route-exposure weight of a risk level; unknown levels weigh nothing."""
    try:
        return RISK_LEVEL_FACTORS[RiskLevel(level)]
    except ValueError:
        return 0


class RiskScorer:
    """
    Scores incident clusters.

    The evaluation time for the recency addend comes from `clock` unless a
    `now` is passed explicitly, which keeps scoring reproducible in tests
    and batch re-analysis.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    @staticmethod
    def severity_points(severity: str) -> int:
        return SEVERITY_POINTS.get(severity.lower(), DEFAULT_SEVERITY_POINTS)

    @staticmethod
    def type_points(alert_type: str) -> int:
        alert_type = alert_type.lower()
        if "weapon" in alert_type:
            return WEAPON_TYPE_POINTS
        if "tamper" in alert_type:
            return TAMPER_TYPE_POINTS
        return 0

    @staticmethod
    def recency_points(timestamp: datetime, now: datetime) -> int:
        days = days_since(timestamp, now)
        for max_days, points in RECENCY_BANDS:
            if days < max_days:
                return points
        return 0

    def incident_points(self, point: AlertPoint, now: datetime) -> int:
        """Total addend contributed by a single incident."""
        return (
            self.severity_points(point.severity)
            + self.type_points(point.type)
            + self.recency_points(point.timestamp, now)
        )

    def score(
        self, cluster: Sequence[AlertPoint], now: Optional[datetime] = None
    ) -> int:
        """
        Calculate the risk score of a cluster.

        Args:
            cluster: Member incidents
            now: Evaluation time (defaults to the scorer's clock)

        Returns:
            Integer score from 0 to 100
        """
        now = now or self._clock()

        score = min(len(cluster) * SIZE_POINTS_PER_ALERT, SIZE_POINTS_CAP)
        for point in cluster:
            score += self.incident_points(point, now)

        return max(0, min(score, MAX_SCORE))

    def assess(
        self, cluster: Sequence[AlertPoint], now: Optional[datetime] = None
    ) -> tuple[int, RiskLevel]:
        """Score a cluster and categorize the score."""
        score = self.score(cluster, now)
        return score, risk_level_for_score(score)

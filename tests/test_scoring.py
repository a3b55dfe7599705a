"""
Risk Scoring Tests
==================

Cluster risk scores, score-to-level mapping and route risk factors.
"""

import pytest
from datetime import datetime, timedelta, timezone

import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from fleetwatch.core.scoring import (
    RiskScorer,
    days_since,
    risk_factor_for_level,
    risk_level_for_score,
)
from fleetwatch.models import AlertPoint, RiskLevel


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def incident(severity="info", alert_type="panic_button", age=timedelta(hours=1), point_id=1):
    return AlertPoint(
        id=point_id,
        latitude=-26.2041,
        longitude=28.0473,
        timestamp=NOW - age,
        severity=severity,
        type=alert_type,
    )


@pytest.fixture
def scorer():
    return RiskScorer(clock=lambda: NOW)


# =============================================================================
# SCORE
# =============================================================================

class TestRiskScorer:
    """Tests for the cluster score formula."""

    def test_three_recent_critical_alerts(self, scorer):
        """Three critical alerts from the last day max out the score."""
        cluster = [incident("critical", point_id=i) for i in range(3)]

        score, level = scorer.assess(cluster)

        assert score == 100
        assert level == RiskLevel.CRITICAL

    def test_single_old_info_alert(self, scorer):
        """size 5 + severity 1 + no recency."""
        cluster = [incident("info", age=timedelta(days=100))]
        assert scorer.score(cluster) == 6

    def test_weapon_alert(self, scorer):
        """size 5 + severity 1 + weapon 15 + recency 5."""
        cluster = [incident("warning", "weapon_detected", age=timedelta(days=10))]
        assert scorer.score(cluster) == 26

    def test_tamper_alert(self, scorer):
        """size 5 + critical 20 + tamper 8 + recency 2."""
        cluster = [incident("critical", "door_tamper", age=timedelta(days=40))]

        score, level = scorer.assess(cluster)

        assert score == 35
        assert level == RiskLevel.MEDIUM

    def test_weapon_takes_precedence_over_tamper(self):
        assert RiskScorer.type_points("weapon_tamper") == 15
        assert RiskScorer.type_points("TAMPER_ALERT") == 8
        assert RiskScorer.type_points("geofence_breach") == 0

    def test_size_points_are_capped(self, scorer):
        """Twelve old info alerts: size capped at 50, plus 12 x 1."""
        cluster = [incident("info", age=timedelta(days=200), point_id=i) for i in range(12)]

        score, level = scorer.assess(cluster)

        assert score == 62
        assert level == RiskLevel.HIGH

    def test_score_never_exceeds_100(self, scorer):
        cluster = [incident("critical", "weapon", point_id=i) for i in range(20)]
        assert scorer.score(cluster) == 100

    def test_adding_severe_recent_alert_raises_score(self, scorer):
        """Adding an alert never lowers a score below the cap."""
        base = [incident("warning", age=timedelta(days=20), point_id=i) for i in range(3)]
        augmented = base + [incident("critical", age=timedelta(days=1), point_id=9)]

        assert scorer.score(base) == 33
        assert scorer.score(augmented) == 68
        assert scorer.score(augmented) >= scorer.score(base)

    def test_severity_is_case_insensitive(self, scorer):
        upper = [incident("CRITICAL")]
        lower = [incident("critical")]
        assert scorer.score(upper) == scorer.score(lower)

    @pytest.mark.parametrize("severity,points", [
        ("critical", 20),
        ("high", 10),
        ("medium", 5),
        ("warning", 1),
        ("info", 1),
        ("", 1),
    ])
    def test_severity_points(self, severity, points):
        assert RiskScorer.severity_points(severity) == points

    def test_explicit_now_overrides_clock(self, scorer):
        cluster = [incident("info", age=timedelta(hours=1))]
        later = NOW + timedelta(days=365)

        assert scorer.score(cluster) == 16
        assert scorer.score(cluster, now=later) == 6


# =============================================================================
# RECENCY
# =============================================================================

class TestRecency:
    """Tests for the day count behind the recency addend."""

    def test_partial_days_round_up(self):
        assert days_since(NOW - timedelta(hours=1), NOW) == 1
        assert days_since(NOW - timedelta(days=6, hours=1), NOW) == 7
        assert days_since(NOW, NOW) == 0

    def test_direction_is_ignored(self):
        assert days_since(NOW + timedelta(days=2), NOW) == 2

    @pytest.mark.parametrize("age,points", [
        (timedelta(days=6), 10),
        (timedelta(days=6, hours=1), 5),
        (timedelta(days=29), 5),
        (timedelta(days=30), 2),
        (timedelta(days=89), 2),
        (timedelta(days=90), 0),
    ])
    def test_recency_bands(self, age, points):
        assert RiskScorer.recency_points(NOW - age, NOW) == points


# =============================================================================
# LEVELS
# =============================================================================

class TestRiskLevels:
    """Tests for score to level mapping and route factors."""

    @pytest.mark.parametrize("score,level", [
        (0, RiskLevel.LOW),
        (29, RiskLevel.LOW),
        (30, RiskLevel.MEDIUM),
        (59, RiskLevel.MEDIUM),
        (60, RiskLevel.HIGH),
        (79, RiskLevel.HIGH),
        (80, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ])
    def test_level_thresholds(self, score, level):
        assert risk_level_for_score(score) == level

    @pytest.mark.parametrize("level,factor", [
        (RiskLevel.CRITICAL, 10),
        (RiskLevel.HIGH, 7),
        (RiskLevel.MEDIUM, 4),
        (RiskLevel.LOW, 1),
        ("high", 7),
    ])
    def test_risk_factors(self, level, factor):
        assert risk_factor_for_level(level) == factor

    def test_unknown_level_has_no_weight(self):
        assert risk_factor_for_level("extreme") == 0

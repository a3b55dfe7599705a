"""
FleetWatch Hotspot Analyzer

Finds incident hotspots in a batch of alerts:

    alerts -> located AlertPoints -> DensityClusterer -> RiskScorer
           -> AlertCluster summaries

The analyzer is a pure function of its inputs and its clock: no state is
kept between calls, so independent batches (for example one per region) can
be analyzed in parallel.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Union

from ..config import AnalyticsConfig
from ..core.clustering import DensityClusterer
from ..core.geodesy import distance_km
from ..core.scoring import RiskScorer
from ..models import (
    AlertCluster,
    AlertPoint,
    AlertRecord,
    Coordinate,
    HotspotAnalysisResult,
    RiskLevel,
    utc_now,
)


logger = logging.getLogger(__name__)


HIGH_RISK_LEVELS = (RiskLevel.HIGH, RiskLevel.CRITICAL)


def centroid_of(points: Sequence[AlertPoint]) -> Coordinate:
    """
    Arithmetic mean of latitudes and longitudes.

    Good enough at city scale; not meant for clusters spanning the
    antimeridian.
    """
    return Coordinate(
        latitude=sum(p.latitude for p in points) / len(points),
        longitude=sum(p.longitude for p in points) / len(points),
    )


def radius_km_of(points: Sequence[AlertPoint], centroid: Coordinate) -> float:
    """Largest distance from the centroid to any member, in kilometres."""
    return max((distance_km(centroid, p.coordinate) for p in points), default=0.0)


class HotspotAnalyzer:
    """
    Orchestrates clustering and scoring over an alert batch.

    Example:
        analyzer = HotspotAnalyzer()
        result = analyzer.analyze(alerts)
        for hotspot in result.clusters:
            print(hotspot.centroid, hotspot.risk_score, hotspot.severity)
    """

    def __init__(
        self,
        clusterer: Optional[DensityClusterer] = None,
        scorer: Optional[RiskScorer] = None,
        config: Optional[AnalyticsConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the analyzer.

        Args:
            clusterer: Clusterer to use (built from config if not provided)
            scorer: Risk scorer to use (built on `clock` if not provided)
            config: Analytics configuration (uses defaults if not provided)
            clock: Source of the analysis time
        """
        config = config or AnalyticsConfig()
        self._clusterer = clusterer or DensityClusterer(
            epsilon_km=config.epsilon_km,
            min_points=config.min_points,
        )
        self._scorer = scorer or RiskScorer(clock=clock)
        self._clock = clock

    @staticmethod
    def extract_points(
        alerts: Iterable[Union[AlertRecord, AlertPoint]]
    ) -> List[AlertPoint]:
        """
        Convert alerts to clustering points, keeping input order.

        Raises:
            TypeError: If an item is neither an AlertRecord nor an AlertPoint
        """
        points = []
        for alert in alerts:
            if isinstance(alert, AlertRecord):
                points.append(alert.to_point())
            elif isinstance(alert, AlertPoint):
                points.append(alert)
            else:
                raise TypeError(
                    f"Expected AlertRecord or AlertPoint, got {type(alert).__name__}"
                )
        return points

    def summarize(self, cluster: Sequence[AlertPoint], now: datetime) -> AlertCluster:
        """Build the AlertCluster summary for one group of points."""
        centroid = centroid_of(cluster)
        score, level = self._scorer.assess(cluster, now)

        return AlertCluster(
            centroid=centroid,
            radius_km=radius_km_of(cluster, centroid),
            alert_count=len(cluster),
            alert_ids=[p.id for p in cluster],
            risk_score=score,
            severity=level,
            last_incident=max(p.timestamp for p in cluster),
        )

    def analyze(
        self, alerts: Iterable[Union[AlertRecord, AlertPoint]]
    ) -> HotspotAnalysisResult:
        """
        Run hotspot analysis over an alert batch.

        Alerts located exactly at (0, 0) carry no usable location and are
        left out, including from `total_alerts_analyzed`.

        Args:
            alerts: Alert records or pre-extracted points

        Returns:
            HotspotAnalysisResult with one AlertCluster per hotspot
        """
        now = self._clock()
        points = self.extract_points(alerts)
        located = [p for p in points if p.has_location]

        if len(located) < len(points):
            logger.debug(f"Skipped {len(points) - len(located)} alerts without location")

        clusters = [
            self.summarize([located[i] for i in members], now)
            for members in self._clusterer.cluster(located)
        ]
        high_risk = sum(1 for c in clusters if c.severity in HIGH_RISK_LEVELS)

        logger.info(
            f"Hotspot analysis: {len(located)} located alerts, "
            f"{len(clusters)} clusters, {high_risk} high risk"
        )

        return HotspotAnalysisResult(
            clusters=clusters,
            analysis_timestamp=now,
            total_alerts_analyzed=len(located),
            high_risk_clusters=high_risk,
        )

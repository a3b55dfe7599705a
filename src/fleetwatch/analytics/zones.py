"""
FleetWatch Risk Zone Generator

Turns significant hotspots into risk zone records ready for the risk zone
store. Zone ids are assigned by the store, so generated zones carry
`id=None` and come back in the same order as the hotspots they derive from.
"""

from __future__ import annotations

import logging
from typing import List

from ..config import AnalyticsConfig
from ..models import (
    AlertCluster,
    HotspotAnalysisResult,
    MIN_RISK_ZONE_RADIUS_METERS,
    RiskZone,
)


logger = logging.getLogger(__name__)


class RiskZoneGenerator:
    """
    Maps hotspots onto persistable risk zones.

    Rules:
        - Only hotspots with at least `min_alert_count` alerts become zones
        - Zone radius is the hotspot radius in meters, never below
          `min_radius_meters` (itself never below 500 m)
    """

    def __init__(
        self,
        min_alert_count: int = 2,
        min_radius_meters: float = MIN_RISK_ZONE_RADIUS_METERS,
    ):
        if min_radius_meters < MIN_RISK_ZONE_RADIUS_METERS:
            raise ValueError(
                f"min_radius_meters must be at least {MIN_RISK_ZONE_RADIUS_METERS}, "
                f"got {min_radius_meters}"
            )
        self._min_alert_count = min_alert_count
        self._min_radius_meters = min_radius_meters

    @classmethod
    def from_config(cls, config: AnalyticsConfig) -> "RiskZoneGenerator":
        return cls(
            min_alert_count=config.min_zone_alert_count,
            min_radius_meters=config.min_zone_radius_meters,
        )

    @staticmethod
    def describe(cluster: AlertCluster) -> str:
        return (
            f"Auto-generated risk zone based on {cluster.alert_count} incidents. "
            f"Last incident: {cluster.last_incident.date().isoformat()}"
        )

    def from_hotspots(self, result: HotspotAnalysisResult) -> List[RiskZone]:
        """
        Generate risk zones from a hotspot analysis.

        Args:
            result: Output of HotspotAnalyzer.analyze

        Returns:
            Risk zones in hotspot order, named "Risk Zone 1", "Risk Zone 2", ...
        """
        significant = [
            c for c in result.clusters if c.alert_count >= self._min_alert_count
        ]

        zones = []
        for number, cluster in enumerate(significant, start=1):
            zones.append(
                RiskZone(
                    name=f"Risk Zone {number}",
                    centroid=cluster.centroid,
                    radius_meters=max(cluster.radius_km * 1000, self._min_radius_meters),
                    risk_level=cluster.severity,
                    description=self.describe(cluster),
                    metadata={
                        "incidents": cluster.alert_count,
                        "riskScore": cluster.risk_score,
                        "relatedAlerts": list(cluster.alert_ids),
                        "lastUpdated": result.analysis_timestamp.isoformat(),
                    },
                )
            )

        logger.info(
            f"Generated {len(zones)} risk zones from {len(result.clusters)} hotspots"
        )
        return zones

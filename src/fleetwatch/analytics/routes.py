"""
FleetWatch Route Risk Evaluator

Scores how much a candidate route is exposed to known risk zones.

For every route point inside a zone, the zone contributes

    risk_factor(level) * (1 - distance / radius)

so a point at the zone center counts fully and a point on the boundary
counts nothing. The total is averaged over the route points, scaled by 10
and capped at 100.
"""

from __future__ import annotations

import math
from typing import Sequence

from ..core.geodesy import distance_km
from ..core.scoring import risk_factor_for_level
from ..models import Coordinate, RiskZone


MAX_ROUTE_SCORE = 100
ROUTE_SCORE_SCALE = 10


class RouteRiskEvaluator:
    """Read-side query over risk zones. Stateless."""

    @staticmethod
    def exposure(point: Coordinate, zone: RiskZone) -> float:
        """Contribution of one zone to one route point (0 outside the zone)."""
        radius_km = zone.radius_km
        distance = distance_km(point, zone.centroid)
        if distance > radius_km:
            return 0.0
        return risk_factor_for_level(zone.risk_level) * (1 - distance / radius_km)

    def score(
        self, route_points: Sequence[Coordinate], zones: Sequence[RiskZone]
    ) -> int:
        """
        Calculate the route risk score.

        Args:
            route_points: Ordered points along the route
            zones: Risk zones to check against

        Returns:
            Integer score from 0 to 100; 0 for an empty route
        """
        if not route_points:
            return 0

        total = sum(
            self.exposure(point, zone) for point in route_points for zone in zones
        )
        scaled = min(total / len(route_points) * ROUTE_SCORE_SCALE, MAX_ROUTE_SCORE)
        # Halves round up
        return int(math.floor(scaled + 0.5))

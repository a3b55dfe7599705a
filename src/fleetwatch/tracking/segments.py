"""
FleetWatch Route Segment Generator

Candidate egress directions for a vehicle: straight segments from its latest
known position toward the eight compass points (N, NE, E, SE, S, SW, W, NW).
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from ..core.geodesy import destination_point
from ..models import Coordinate, RouteSegment


# Compass bearings in degrees, clockwise from north
COMPASS_BEARINGS = tuple(range(0, 360, 45))


class PositionSource(Protocol):
    """Anything that knows the latest position of a vehicle."""

    def latest_coordinate(self, vehicle_id: str) -> Optional[Coordinate]:
        ...


class RouteSegmentGenerator:
    """
    Read-side query over tracked vehicle positions.

    Works with a ProximityTracker or a ShardedProximityTracker.
    """

    def __init__(self, positions: PositionSource, default_distance_meters: float = 100.0):
        self._positions = positions
        self._default_distance_meters = default_distance_meters

    def segments(
        self, vehicle_id: str, max_distance_meters: Optional[float] = None
    ) -> List[RouteSegment]:
        """
        Egress segments around a vehicle.

        Args:
            vehicle_id: Vehicle to start from
            max_distance_meters: Segment length (defaults to the generator's)

        Returns:
            Eight segments in bearing order 0, 45, ..., 315, or an empty list
            if the vehicle has no known position
        """
        start = self._positions.latest_coordinate(vehicle_id)
        if start is None:
            return []

        if max_distance_meters is None:
            max_distance_meters = self._default_distance_meters

        return [
            RouteSegment(
                start=start,
                end=destination_point(start, max_distance_meters, bearing),
                distance_meters=max_distance_meters,
            )
            for bearing in COMPASS_BEARINGS
        ]

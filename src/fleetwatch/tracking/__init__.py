"""
FleetWatch Tracking Package

Stationary-vehicle proximity tracking and egress route segments.
"""

from .proximity import ProximityTracker, VehicleLedger
from .sharding import ShardedProximityTracker
from .segments import RouteSegmentGenerator, COMPASS_BEARINGS

__all__ = [
    "ProximityTracker",
    "VehicleLedger",
    "ShardedProximityTracker",
    "RouteSegmentGenerator",
    "COMPASS_BEARINGS",
]

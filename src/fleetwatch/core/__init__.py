"""
FleetWatch Core Package

Geodesy primitives, density-based clustering and risk scoring.
"""

from .clustering import DensityClusterer, ClusteringResult, NOISE
from .scoring import RiskScorer, risk_level_for_score, risk_factor_for_level
from .geodesy import distance_meters, distance_km, destination_point

__all__ = [
    "DensityClusterer",
    "ClusteringResult",
    "NOISE",
    "RiskScorer",
    "risk_level_for_score",
    "risk_factor_for_level",
    "distance_meters",
    "distance_km",
    "destination_point",
]

"""
FleetWatch Analytics Package

Incident hotspot analysis, risk zone generation and route risk scoring.
"""

from .hotspots import HotspotAnalyzer
from .zones import RiskZoneGenerator
from .routes import RouteRiskEvaluator

__all__ = [
    "HotspotAnalyzer",
    "RiskZoneGenerator",
    "RouteRiskEvaluator",
]

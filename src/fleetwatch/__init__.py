"""
FleetWatch - Geospatial Analytics Engine for Fleet Security Monitoring

This package provides the analytics core behind the fleet-security dashboard:
incident hotspot detection over alert batches, and stateful stationary-vehicle
proximity tracking over the live telemetry stream.

Modules:
    - core: Geodesy primitives, density-based clustering, risk scoring
    - analytics: Hotspot analysis, risk zone generation, route risk
    - tracking: Proximity tracker, sharded ownership, egress route segments
    - engine: FleetWatch facade wiring everything together
    - config: Environment-driven configuration
"""

__version__ = "1.0.0"
__author__ = "FleetWatch Security Team"
__license__ = "MIT"

"""
FleetWatch - Main Analytics Engine

This module ties the analytics and tracking layers together behind a single
facade consumed by the API / persistence layer:

    - Alert batches: hotspot analysis followed by risk zone generation
    - Route queries: exposure of a candidate route to known risk zones
    - Telemetry stream: sharded stationary-vehicle proximity tracking
    - Vehicle queries: nearby vehicles, stationary vehicles, egress segments

Raw records from the alert and telemetry sources are validated here, at the
boundary. Malformed input raises pydantic.ValidationError before it reaches
any algorithm.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .analytics.hotspots import HotspotAnalyzer
from .analytics.routes import RouteRiskEvaluator
from .analytics.zones import RiskZoneGenerator
from .config import FleetWatchConfig, get_config
from .models import (
    AlertPoint,
    AlertRecord,
    Coordinate,
    HotspotAnalysisResult,
    ProximityScan,
    RiskZone,
    RouteSegment,
    StationaryVehicle,
    TelemetrySample,
    utc_now,
)
from .tracking.segments import RouteSegmentGenerator
from .tracking.sharding import ShardedProximityTracker


logger = logging.getLogger(__name__)


AlertInput = Union[AlertRecord, AlertPoint, Mapping[str, Any]]
TelemetryInput = Union[TelemetrySample, Mapping[str, Any]]
CoordinateInput = Union[Coordinate, Mapping[str, Any]]


def parse_alert(raw: AlertInput) -> Union[AlertRecord, AlertPoint]:
    """Validate one alert from the alert source."""
    if isinstance(raw, (AlertRecord, AlertPoint)):
        return raw
    return AlertRecord.model_validate(raw)


def parse_telemetry(raw: TelemetryInput) -> TelemetrySample:
    """Validate one position report from the telemetry source."""
    if isinstance(raw, TelemetrySample):
        return raw
    return TelemetrySample.model_validate(raw)


def parse_coordinate(raw: CoordinateInput) -> Coordinate:
    if isinstance(raw, Coordinate):
        return raw
    return Coordinate.model_validate(raw)


class FleetWatch:
    """
    The FleetWatch engine - unified entry point for analytics and tracking.

    Usage:
        async with FleetWatch() as engine:
            result, zones = engine.analyze_alerts(alerts)
            store.save_risk_zones([z.to_record() for z in zones])

            for update in telemetry_stream:
                await engine.process_telemetry(update, current_positions)

            scan = await engine.nearby_vehicles("V1", radius_meters=50)
    """

    def __init__(
        self,
        config: Optional[FleetWatchConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (global configuration if not provided)
            clock: Wall clock shared by analytics and tracking
        """
        self._config = config or get_config()

        self.analyzer = HotspotAnalyzer(config=self._config.analytics, clock=clock)
        self.zone_generator = RiskZoneGenerator.from_config(self._config.analytics)
        self.route_evaluator = RouteRiskEvaluator()

        self.tracker = ShardedProximityTracker(config=self._config.proximity, clock=clock)
        self.segment_generator = RouteSegmentGenerator(
            self.tracker,
            default_distance_meters=self._config.proximity.segment_distance_meters,
        )

    @property
    def config(self) -> FleetWatchConfig:
        return self._config

    async def initialize(self) -> None:
        """Start the tracker shards. Call before processing telemetry."""
        await self.tracker.start()
        logger.info(
            f"FleetWatch initialized ({self._config.environment.value}, "
            f"{self.tracker.shard_count} tracker shards)"
        )

    async def close(self) -> None:
        """Apply queued telemetry and stop the tracker shards."""
        await self.tracker.stop()
        logger.info("FleetWatch closed")

    async def __aenter__(self) -> "FleetWatch":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Alert analytics
    # -------------------------------------------------------------------------

    def analyze_alerts(
        self, alerts: Iterable[AlertInput]
    ) -> Tuple[HotspotAnalysisResult, List[RiskZone]]:
        """
        Find hotspots in an alert batch and derive risk zones from them.

        Args:
            alerts: Raw alert dicts, AlertRecords or AlertPoints

        Returns:
            Tuple of (hotspot analysis, risk zones to persist)
        """
        parsed = [parse_alert(raw) for raw in alerts]
        result = self.analyzer.analyze(parsed)
        zones = self.zone_generator.from_hotspots(result)
        return result, zones

    async def analyze_regions(
        self, batches: Mapping[str, Iterable[AlertInput]]
    ) -> Dict[str, Tuple[HotspotAnalysisResult, List[RiskZone]]]:
        """
        Analyze independent alert batches in parallel worker threads.

        Args:
            batches: Alert batch per region name

        Returns:
            Analysis and risk zones per region name
        """
        regions = list(batches)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.analyze_alerts, list(batches[r])) for r in regions)
        )
        return dict(zip(regions, results))

    def route_risk(
        self, route_points: Iterable[CoordinateInput], zones: Iterable[RiskZone]
    ) -> int:
        """Exposure score (0-100) of a route to the given risk zones."""
        return self.route_evaluator.score(
            [parse_coordinate(p) for p in route_points], list(zones)
        )

    # -------------------------------------------------------------------------
    # Telemetry tracking
    # -------------------------------------------------------------------------

    async def process_telemetry(
        self,
        sample: TelemetryInput,
        all_current_samples: Iterable[TelemetryInput] = (),
    ) -> Optional[ProximityScan]:
        """
        Feed one telemetry update to the tracker and wait for it to apply.

        Args:
            sample: The vehicle's new position report
            all_current_samples: Latest position of every known vehicle

        Returns:
            ProximityScan recorded for the update, if any
        """
        return await self.tracker.ingest(
            parse_telemetry(sample),
            [parse_telemetry(s) for s in all_current_samples],
        )

    async def nearby_vehicles(
        self, vehicle_id: str, radius_meters: Optional[float] = None
    ) -> Optional[ProximityScan]:
        await self.tracker.drain()
        return self.tracker.nearby_vehicles(vehicle_id, radius_meters)

    async def stationary_vehicles(self) -> List[StationaryVehicle]:
        await self.tracker.drain()
        return self.tracker.stationary_vehicles()

    async def route_segments(
        self, vehicle_id: str, max_distance_meters: Optional[float] = None
    ) -> List[RouteSegment]:
        await self.tracker.drain()
        return self.segment_generator.segments(vehicle_id, max_distance_meters)

    async def cleanup(self, max_age_hours: Optional[float] = None) -> int:
        """Apply history retention; meant to be called from a scheduler."""
        return await self.tracker.cleanup(max_age_hours)

    def get_status(self) -> Dict[str, Any]:
        """Get current engine status."""
        return {
            "environment": self._config.environment.value,
            "tracker_running": self.tracker.is_running,
            "tracker_shards": self.tracker.shard_count,
            "tracked_vehicles": len(self.tracker.vehicle_ids),
            "commands_processed": self.tracker.processed_count,
        }


def analyze_alert_batch(
    alerts: Iterable[AlertInput],
    config: Optional[FleetWatchConfig] = None,
) -> Tuple[HotspotAnalysisResult, List[RiskZone]]:
    """
    Convenience function for one-off hotspot analysis.

    Example:
        result, zones = analyze_alert_batch(alerts)
        print(f"{result.high_risk_clusters} high risk hotspots")
    """
    config = config or get_config()
    analyzer = HotspotAnalyzer(config=config.analytics)
    result = analyzer.analyze([parse_alert(raw) for raw in alerts])
    return result, RiskZoneGenerator.from_config(config.analytics).from_hotspots(result)

"""
FleetWatch Proximity Tracker

Stateful tracking of vehicle movement over the telemetry stream.

For every telemetry sample the tracker:
    1. Decides whether the vehicle is moving (reported speed, then
       displacement from its previous position)
    2. Appends a VehicleStatusEntry to the vehicle's history
    3. If the vehicle is stationary, measures for how long
    4. Once stationary for at least the threshold, scans the current
       positions of all other vehicles and records the vehicles found
       within the proximity radius

State Ownership:
    All history lives in a per-tracker map of VehicleLedger objects keyed by
    vehicle id. Nothing is module-global; `reset()` tears the state down.
    A tracker instance is not safe for concurrent writers. Use
    ShardedProximityTracker to spread vehicles over exclusive owners.

Memory:
    History grows without bound until `cleanup()` is called. The tracker never
    expires entries on its own; an external scheduler owns retention.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from ..config import ProximityConfig
from ..core.geodesy import distance_meters
from ..models import (
    Coordinate,
    NearbyVehicle,
    ProximityScan,
    StationaryVehicle,
    TelemetrySample,
    VehicleStatusEntry,
    utc_now,
)


logger = logging.getLogger(__name__)


@dataclass
class VehicleLedger:
    """
    Everything the tracker knows about one vehicle.

    Both lists are append-only between cleanups and ordered by arrival,
    not by timestamp.
    """
    statuses: List[VehicleStatusEntry] = field(default_factory=list)
    scans: List[ProximityScan] = field(default_factory=list)

    @property
    def latest_status(self) -> Optional[VehicleStatusEntry]:
        return self.statuses[-1] if self.statuses else None

    @property
    def latest_scan(self) -> Optional[ProximityScan]:
        return self.scans[-1] if self.scans else None

    @property
    def is_empty(self) -> bool:
        return not self.statuses and not self.scans


class ProximityTracker:
    """
    Tracks stationary vehicles and who is parked next to them.

    Usage:
        tracker = ProximityTracker()

        # For every telemetry update
        tracker.ingest(sample, current_positions)

        # Read side
        scan = tracker.nearby_vehicles("V1", radius_meters=50)
        parked = tracker.stationary_vehicles()

        # From a scheduler
        tracker.cleanup(max_age_hours=24)
    """

    def __init__(
        self,
        config: Optional[ProximityConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the tracker.

        Args:
            config: Thresholds (uses defaults if not provided)
            clock: Wall clock used for stationary durations and cleanup
        """
        self._config = config or ProximityConfig()
        self._clock = clock
        self._ledgers: Dict[str, VehicleLedger] = {}

    @property
    def config(self) -> ProximityConfig:
        return self._config

    @property
    def vehicle_ids(self) -> List[str]:
        return list(self._ledgers)

    def __contains__(self, vehicle_id: str) -> bool:
        return vehicle_id in self._ledgers

    def __len__(self) -> int:
        return len(self._ledgers)

    def _ledger(self, vehicle_id: str) -> VehicleLedger:
        ledger = self._ledgers.get(vehicle_id)
        if ledger is None:
            ledger = VehicleLedger()
            self._ledgers[vehicle_id] = ledger
        return ledger

    # -------------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------------

    def is_moving(self, sample: TelemetrySample) -> bool:
        """
        Decide whether the vehicle reporting `sample` is moving.

        Reported speed above the threshold wins. Otherwise compare with the
        last recorded position; a vehicle with no history is not moving.
        """
        if (
            sample.speed_kmh is not None
            and sample.speed_kmh > self._config.movement_speed_threshold_kmh
        ):
            return True

        ledger = self._ledgers.get(sample.vehicle_id)
        previous = ledger.latest_status if ledger else None
        if previous is None:
            return False

        displacement = distance_meters(previous.coordinate, sample.coordinate)
        return displacement > self._config.movement_displacement_threshold_meters

    def stationary_duration(self, vehicle_id: str) -> int:
        """
        Whole seconds since the vehicle was last seen moving.

        If the history holds no moving entry, the duration runs from the
        first entry. Unknown vehicles have a duration of 0.
        """
        ledger = self._ledgers.get(vehicle_id)
        if ledger is None or not ledger.statuses:
            return 0

        since = ledger.statuses[0].timestamp
        for entry in reversed(ledger.statuses):
            if entry.is_moving:
                since = entry.timestamp
                break

        return math.floor((self._clock() - since).total_seconds())

    def ingest(
        self,
        sample: TelemetrySample,
        all_current_samples: Iterable[TelemetrySample] = (),
    ) -> Optional[ProximityScan]:
        """
        Process one telemetry update.

        Args:
            sample: The vehicle's new position report
            all_current_samples: Latest known position of every vehicle

        Returns:
            The ProximityScan recorded for this update, or None if the vehicle
            is moving or has not been stationary long enough
        """
        moving = self.is_moving(sample)
        ledger = self._ledger(sample.vehicle_id)
        ledger.statuses.append(
            VehicleStatusEntry(
                timestamp=sample.timestamp,
                coordinate=sample.coordinate,
                is_moving=moving,
            )
        )

        if moving:
            logger.debug(f"Vehicle {sample.vehicle_id} moving at {sample.coordinate}")
            return None

        duration = self.stationary_duration(sample.vehicle_id)
        if duration < self._config.stationary_threshold_seconds:
            logger.debug(
                f"Vehicle {sample.vehicle_id} stationary for {duration}s "
                f"(threshold {self._config.stationary_threshold_seconds}s)"
            )
            return None

        scan = self._scan(sample, duration, all_current_samples)
        ledger.scans.append(scan)
        return scan

    def _scan(
        self,
        sample: TelemetrySample,
        duration: int,
        all_current_samples: Iterable[TelemetrySample],
    ) -> ProximityScan:
        """Find every other vehicle within the proximity radius of `sample`."""
        center = sample.coordinate
        radius = self._config.proximity_radius_meters

        nearby = []
        for other in all_current_samples:
            if other.vehicle_id == sample.vehicle_id:
                continue
            distance = distance_meters(center, other.coordinate)
            if distance <= radius:
                nearby.append(
                    NearbyVehicle(
                        id=other.vehicle_id,
                        distance_meters=distance,
                        coordinate=other.coordinate,
                        detected_at=other.timestamp,
                    )
                )

        if nearby:
            logger.info(
                f"Vehicle {sample.vehicle_id} stationary for {duration}s with "
                f"{len(nearby)} vehicles within {radius:.0f}m: "
                f"{', '.join(v.id for v in nearby)}"
            )

        return ProximityScan(
            center_vehicle_id=sample.vehicle_id,
            center_coordinate=center,
            timestamp=sample.timestamp,
            nearby_vehicles=nearby,
            is_stationary=True,
            stationary_duration_seconds=duration,
        )

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def nearby_vehicles(
        self, vehicle_id: str, radius_meters: Optional[float] = None
    ) -> Optional[ProximityScan]:
        """
        Latest proximity scan of a vehicle, narrowed to `radius_meters`.

        A radius larger than the scan radius cannot reveal more vehicles
        than the scan found.

        Returns:
            The filtered scan, or None if the vehicle was never scanned
        """
        ledger = self._ledgers.get(vehicle_id)
        scan = ledger.latest_scan if ledger else None
        if scan is None:
            return None

        if radius_meters is None:
            radius_meters = self._config.proximity_radius_meters
        return scan.within(radius_meters)

    def stationary_vehicles(self) -> List[StationaryVehicle]:
        """Vehicles whose latest status is stationary for at least the threshold."""
        result = []
        for vehicle_id, ledger in self._ledgers.items():
            latest = ledger.latest_status
            if latest is None or latest.is_moving:
                continue

            duration = self.stationary_duration(vehicle_id)
            if duration >= self._config.stationary_threshold_seconds:
                result.append(
                    StationaryVehicle(
                        vehicle_id=vehicle_id,
                        coordinate=latest.coordinate,
                        duration_seconds=duration,
                    )
                )
        return result

    def latest_coordinate(self, vehicle_id: str) -> Optional[Coordinate]:
        ledger = self._ledgers.get(vehicle_id)
        latest = ledger.latest_status if ledger else None
        return latest.coordinate if latest else None

    def status_history(self, vehicle_id: str) -> List[VehicleStatusEntry]:
        ledger = self._ledgers.get(vehicle_id)
        return list(ledger.statuses) if ledger else []

    def scan_history(self, vehicle_id: str) -> List[ProximityScan]:
        ledger = self._ledgers.get(vehicle_id)
        return list(ledger.scans) if ledger else []

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def cleanup(self, max_age_hours: Optional[float] = None) -> int:
        """
        Drop history older than `max_age_hours`.

        Vehicles left with no status and no scan are forgotten entirely.
        A retention of zero (or less) drops everything.

        Args:
            max_age_hours: Retention window (defaults to the configured one)

        Returns:
            Number of status and scan entries removed
        """
        if max_age_hours is None:
            max_age_hours = self._config.retention_hours

        if max_age_hours <= 0:
            removed = sum(
                len(ledger.statuses) + len(ledger.scans)
                for ledger in self._ledgers.values()
            )
            self._ledgers.clear()
            logger.info(f"Tracker cleanup: zero retention, removed {removed} entries")
            return removed

        cutoff = self._clock() - timedelta(hours=max_age_hours)
        removed = 0

        for vehicle_id in list(self._ledgers):
            ledger = self._ledgers[vehicle_id]
            statuses = [s for s in ledger.statuses if s.timestamp >= cutoff]
            scans = [s for s in ledger.scans if s.timestamp >= cutoff]
            removed += len(ledger.statuses) - len(statuses)
            removed += len(ledger.scans) - len(scans)
            ledger.statuses = statuses
            ledger.scans = scans

            if ledger.is_empty:
                del self._ledgers[vehicle_id]

        logger.info(
            f"Tracker cleanup: removed {removed} entries older than {cutoff.isoformat()}, "
            f"{len(self._ledgers)} vehicles remain"
        )
        return removed

    def reset(self) -> None:
        """Discard all tracked state."""
        self._ledgers.clear()

"""
FleetWatch Sharded Proximity Tracking

Concurrent ingestion with exclusive per-vehicle ownership.

Architecture:
    - N shards, each owning one ProximityTracker, one asyncio.Queue and one
      worker task
    - A vehicle always maps to the same shard (SHA-256 of its id), so exactly
      one worker ever writes a given vehicle's history, and samples for that
      vehicle are applied in submission order
    - Different vehicles have no ordering relationship across shards
    - Cleanup is queued through every shard like any other write, so it never
      interleaves with an ingest

Queries read the owning shard's tracker directly. Workers apply commands
synchronously on the event loop, so a query never observes a half-applied
update; call `drain()` first to read your own writes.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..config import ProximityConfig
from ..models import (
    Coordinate,
    ProximityScan,
    StationaryVehicle,
    TelemetrySample,
    VehicleStatusEntry,
    utc_now,
)
from .proximity import ProximityTracker


logger = logging.getLogger(__name__)


Command = Tuple[Callable[[ProximityTracker], Any], "asyncio.Future[Any]"]


@dataclass
class TrackerShard:
    """One exclusive owner of a subset of vehicles."""
    index: int
    tracker: ProximityTracker
    queue: Optional["asyncio.Queue[Command]"] = None
    worker: Optional["asyncio.Task[None]"] = None
    processed: int = 0


class ShardedProximityTracker:
    """
    Proximity tracker safe for concurrent producers.

    Usage:
        async with ShardedProximityTracker(shard_count=8) as tracker:
            # Fire and forget from many producers
            tracker.submit(sample, current_positions)

            # Or wait for the update to be applied
            scan = await tracker.ingest(sample, current_positions)

            await tracker.drain()
            parked = tracker.stationary_vehicles()

            # From a scheduler
            await tracker.cleanup(max_age_hours=24)
    """

    def __init__(
        self,
        config: Optional[ProximityConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        shard_count: Optional[int] = None,
    ):
        """
        Initialize the sharded tracker.

        Args:
            config: Tracker thresholds (uses defaults if not provided)
            clock: Wall clock shared by every shard
            shard_count: Number of shards (defaults to config.shard_count)
        """
        self._config = config or ProximityConfig()
        count = shard_count if shard_count is not None else self._config.shard_count
        if count < 1:
            raise ValueError(f"shard_count must be at least 1, got {count}")

        self._shards = [
            TrackerShard(index=i, tracker=ProximityTracker(self._config, clock))
            for i in range(count)
        ]
        self._running = False

    @property
    def shard_count(self) -> int:
        return len(self._shards)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def processed_count(self) -> int:
        return sum(shard.processed for shard in self._shards)

    @staticmethod
    def shard_index(vehicle_id: str, shard_count: int) -> int:
        """Stable shard of a vehicle, independent of process hash seeds."""
        digest = hashlib.sha256(vehicle_id.encode("utf-8")).digest()
        return int.from_bytes(digest[:8], "big") % shard_count

    def _shard(self, vehicle_id: str) -> TrackerShard:
        return self._shards[self.shard_index(vehicle_id, len(self._shards))]

    def shard_for(self, vehicle_id: str) -> ProximityTracker:
        """The tracker that owns `vehicle_id`."""
        return self._shard(vehicle_id).tracker

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Spawn one worker per shard."""
        if self._running:
            return

        for shard in self._shards:
            shard.queue = asyncio.Queue()
            shard.worker = asyncio.create_task(
                self._run(shard, shard.queue), name=f"proximity-shard-{shard.index}"
            )
        self._running = True
        logger.info(f"Sharded proximity tracker started with {len(self._shards)} shards")

    async def stop(self) -> None:
        """Stop accepting work, apply everything queued, then stop the workers."""
        if not self._running:
            return

        self._running = False
        await self.drain()

        workers = [shard.worker for shard in self._shards if shard.worker]
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

        for shard in self._shards:
            shard.worker = None
            shard.queue = None

        logger.info(
            f"Sharded proximity tracker stopped. Processed {self.processed_count} commands."
        )

    async def __aenter__(self) -> "ShardedProximityTracker":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _run(self, shard: TrackerShard, queue: "asyncio.Queue[Command]") -> None:
        """Apply the shard's commands one at a time, in queue order."""
        while True:
            action, future = await queue.get()
            try:
                result = action(shard.tracker)
            except Exception as e:
                logger.error(f"Shard {shard.index} command failed: {e}")
                if not future.done():
                    future.set_exception(e)
            else:
                shard.processed += 1
                if not future.done():
                    future.set_result(result)
            finally:
                queue.task_done()

    @staticmethod
    def _retrieve_exception(future: "asyncio.Future[Any]") -> None:
        # Failures are already logged by the shard worker
        if not future.cancelled():
            future.exception()

    def _enqueue(
        self, shard: TrackerShard, action: Callable[[ProximityTracker], Any]
    ) -> "asyncio.Future[Any]":
        if not self._running or shard.queue is None:
            raise RuntimeError("Sharded proximity tracker not running")

        future = asyncio.get_running_loop().create_future()
        future.add_done_callback(self._retrieve_exception)
        shard.queue.put_nowait((action, future))
        return future

    async def drain(self) -> None:
        """Wait until every queued command has been applied."""
        await asyncio.gather(
            *(shard.queue.join() for shard in self._shards if shard.queue is not None)
        )

    # -------------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------------

    def submit(
        self,
        sample: TelemetrySample,
        all_current_samples: Iterable[TelemetrySample] = (),
    ) -> "asyncio.Future[Optional[ProximityScan]]":
        """
        Queue a telemetry update on the owning shard.

        The position snapshot is copied at submission time. A failed
        update is logged by the shard and raised only when the future
        is awaited, so the future may be dropped.

        Returns:
            Future resolved with the update's ProximityScan (or None)

        Raises:
            RuntimeError: If the tracker is not running
        """
        snapshot = list(all_current_samples)
        return self._enqueue(
            self._shard(sample.vehicle_id),
            lambda tracker: tracker.ingest(sample, snapshot),
        )

    async def ingest(
        self,
        sample: TelemetrySample,
        all_current_samples: Iterable[TelemetrySample] = (),
    ) -> Optional[ProximityScan]:
        """Queue a telemetry update and wait until it is applied."""
        return await self.submit(sample, all_current_samples)

    async def cleanup(self, max_age_hours: Optional[float] = None) -> int:
        """
        Apply retention on every shard.

        Returns:
            Total number of entries removed
        """
        futures = [
            self._enqueue(shard, lambda tracker: tracker.cleanup(max_age_hours))
            for shard in self._shards
        ]
        return sum(await asyncio.gather(*futures))

    def reset(self) -> None:
        """Discard all tracked state on every shard."""
        for shard in self._shards:
            shard.tracker.reset()

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def nearby_vehicles(
        self, vehicle_id: str, radius_meters: Optional[float] = None
    ) -> Optional[ProximityScan]:
        return self.shard_for(vehicle_id).nearby_vehicles(vehicle_id, radius_meters)

    def stationary_vehicles(self) -> List[StationaryVehicle]:
        result = []
        for shard in self._shards:
            result.extend(shard.tracker.stationary_vehicles())
        return result

    def latest_coordinate(self, vehicle_id: str) -> Optional[Coordinate]:
        return self.shard_for(vehicle_id).latest_coordinate(vehicle_id)

    def status_history(self, vehicle_id: str) -> List[VehicleStatusEntry]:
        return self.shard_for(vehicle_id).status_history(vehicle_id)

    def scan_history(self, vehicle_id: str) -> List[ProximityScan]:
        return self.shard_for(vehicle_id).scan_history(vehicle_id)

    @property
    def vehicle_ids(self) -> List[str]:
        ids = []
        for shard in self._shards:
            ids.extend(shard.tracker.vehicle_ids)
        return ids

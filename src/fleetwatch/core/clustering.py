"""
FleetWatch Clustering Module

This module implements density-based spatial clustering (DBSCAN family) used
to find incident hotspots in alert batches.

Semantics:
    - A point's neighborhood is every *other* point within epsilon_km
      (Haversine distance).
    - A point with at least min_points neighbors is a core point and seeds
      a cluster; the cluster grows through core points only.
    - Points reached from a core point join the cluster as border points,
      unless an earlier cluster already owns them.
    - Everything else is noise and is not part of any cluster.

Each neighborhood is one vectorised row of Haversine distances, computed at
most once per point, so memory stays linear in the batch size. Cluster
membership is tracked with a per-point label array so that ownership checks
are O(1).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from ..models import AlertPoint
from .geodesy import distances_from_km


logger = logging.getLogger(__name__)


# Label of a point that belongs to no cluster.
NOISE = -1

DEFAULT_EPSILON_KM = 0.01
DEFAULT_MIN_POINTS = 3


@dataclass
class ClusteringResult:
    """
    Outcome of one clustering pass.

    Attributes:
        labels: Cluster index per input point, NOISE if unclustered
        clusters: Input indices per cluster, in discovery order
    """
    labels: List[int] = field(default_factory=list)
    clusters: List[List[int]] = field(default_factory=list)

    @property
    def noise(self) -> List[int]:
        """Indices of the points that ended up in no cluster."""
        return [i for i, label in enumerate(self.labels) if label == NOISE]

    @property
    def cluster_count(self) -> int:
        return len(self.clusters)


class DensityClusterer:
    """
    Density-based clusterer over geographic points.

    Any object with `latitude` and `longitude` attributes can be clustered
    (AlertPoint, Coordinate, TelemetrySample). Input order is the iteration
    order, so the result is deterministic for a given input sequence.

    Example:
        clusterer = DensityClusterer(epsilon_km=0.5, min_points=3)
        for members in clusterer.cluster(points):
            hotspot = [points[i] for i in members]
    """

    def __init__(
        self,
        epsilon_km: float = DEFAULT_EPSILON_KM,
        min_points: int = DEFAULT_MIN_POINTS,
    ):
        """
        Initialize the clusterer.

        Args:
            epsilon_km: Neighborhood radius in kilometres
            min_points: Neighbors (excluding the point itself) a core point needs

        Raises:
            ValueError: If a parameter is out of range
        """
        if epsilon_km <= 0:
            raise ValueError(f"epsilon_km must be positive, got {epsilon_km}")
        if min_points < 1:
            raise ValueError(f"min_points must be at least 1, got {min_points}")

        self._epsilon_km = epsilon_km
        self._min_points = min_points

    @property
    def epsilon_km(self) -> float:
        return self._epsilon_km

    @property
    def min_points(self) -> int:
        return self._min_points

    def _region_query(
        self, latitudes: np.ndarray, longitudes: np.ndarray, index: int
    ) -> List[int]:
        """Indices within epsilon of `index`, excluding itself, in input order."""
        distances = distances_from_km(latitudes, longitudes, index)
        within = np.flatnonzero(distances <= self._epsilon_km)
        return [int(i) for i in within if i != index]

    def fit(self, points: Sequence[AlertPoint]) -> ClusteringResult:
        """
        Cluster the points and keep the per-point labels.

        Use this instead of `cluster()` when the noise points are needed.

        Args:
            points: Points to cluster

        Returns:
            ClusteringResult with labels and clusters
        """
        n = len(points)
        labels = [NOISE] * n
        clusters: List[List[int]] = []

        if n == 0:
            return ClusteringResult(labels=labels, clusters=clusters)

        latitudes = np.radians(np.array([p.latitude for p in points], dtype=np.float64))
        longitudes = np.radians(np.array([p.longitude for p in points], dtype=np.float64))
        visited = [False] * n

        for index in range(n):
            if visited[index]:
                continue
            visited[index] = True

            neighbors = self._region_query(latitudes, longitudes, index)
            if len(neighbors) < self._min_points:
                continue

            cluster_id = len(clusters)
            labels[index] = cluster_id
            members = [index]

            queue = list(neighbors)
            queued = set(queue)
            position = 0
            while position < len(queue):
                neighbor = queue[position]
                position += 1

                if not visited[neighbor]:
                    visited[neighbor] = True
                    neighbor_neighbors = self._region_query(latitudes, longitudes, neighbor)
                    if len(neighbor_neighbors) >= self._min_points:
                        for candidate in neighbor_neighbors:
                            if candidate not in queued:
                                queued.add(candidate)
                                queue.append(candidate)

                if labels[neighbor] == NOISE:
                    labels[neighbor] = cluster_id
                    members.append(neighbor)

            if len(members) < self._min_points:
                # Too many border points already owned by earlier clusters
                for member in members:
                    labels[member] = NOISE
                logger.debug(
                    f"Dropped undersized cluster seeded at point {index} "
                    f"({len(members)} < {self._min_points})"
                )
                continue

            clusters.append(members)

        logger.debug(
            f"Clustered {n} points into {len(clusters)} clusters "
            f"(epsilon={self._epsilon_km}km, min_points={self._min_points})"
        )
        return ClusteringResult(labels=labels, clusters=clusters)

    def cluster(self, points: Sequence[AlertPoint]) -> List[List[int]]:
        """
        Cluster the points, dropping noise.

        Returns:
            Disjoint lists of input indices, one per cluster
        """
        return self.fit(points).clusters

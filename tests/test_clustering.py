"""
Density Clustering Tests
========================

DBSCAN behaviour over geographic points: core/border/noise classification,
disjoint membership and determinism.
"""

import pytest
import tracemalloc
from datetime import datetime, timezone

import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from fleetwatch.core.clustering import NOISE, DensityClusterer
from fleetwatch.core.geodesy import destination_point
from fleetwatch.models import AlertPoint, Coordinate


ORIGIN = Coordinate(latitude=40.0, longitude=-74.0)
TIMESTAMP = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def point_at(meters_north: float, meters_east: float = 0.0, point_id: int = 0) -> AlertPoint:
    """AlertPoint offset from ORIGIN along a meridian, then a parallel."""
    position = destination_point(ORIGIN, meters_north, 0) if meters_north else ORIGIN
    if meters_east:
        position = destination_point(position, meters_east, 90)
    return AlertPoint(
        id=point_id,
        latitude=position.latitude,
        longitude=position.longitude,
        timestamp=TIMESTAMP,
    )


def line(*offsets: float):
    """Points along the meridian through ORIGIN, ids in input order."""
    return [point_at(m, point_id=i) for i, m in enumerate(offsets)]


@pytest.fixture
def clusterer():
    """10 m neighborhood, 3 neighbors for a core point."""
    return DensityClusterer(epsilon_km=0.01, min_points=3)


# =============================================================================
# PARAMETERS
# =============================================================================

class TestClustererParameters:
    """Tests for constructor validation."""

    def test_defaults(self):
        clusterer = DensityClusterer()
        assert clusterer.epsilon_km == 0.01
        assert clusterer.min_points == 3

    @pytest.mark.parametrize("epsilon", [0, -0.5])
    def test_rejects_non_positive_epsilon(self, epsilon):
        with pytest.raises(ValueError):
            DensityClusterer(epsilon_km=epsilon)

    def test_rejects_zero_min_points(self):
        with pytest.raises(ValueError):
            DensityClusterer(min_points=0)


# =============================================================================
# CLUSTERING
# =============================================================================

class TestDensityClusterer:
    """Tests for cluster discovery."""

    def test_empty_input(self, clusterer):
        assert clusterer.cluster([]) == []
        result = clusterer.fit([])
        assert result.labels == []
        assert result.noise == []

    def test_dense_group_with_outlier(self, clusterer):
        """Four mutually close points form one cluster; a far point is noise."""
        points = [
            point_at(0, 0, point_id=0),
            point_at(2, 0, point_id=1),
            point_at(0, 2, point_id=2),
            point_at(2, 2, point_id=3),
            point_at(1000, 0, point_id=4),  # 100 x epsilon away
        ]

        clusters = clusterer.cluster(points)

        assert len(clusters) == 1
        assert sorted(clusters[0]) == [0, 1, 2, 3]

        result = clusterer.fit(points)
        assert result.noise == [4]
        assert result.labels[4] == NOISE

    def test_neighbor_count_excludes_self(self, clusterer):
        """Three close points only have two neighbors each: all noise."""
        points = line(0, 1, 2)
        assert clusterer.cluster(points) == []
        assert clusterer.fit(points).noise == [0, 1, 2]

    def test_seed_point_comes_first(self, clusterer):
        """A cluster lists its seed before the points reached from it."""
        points = line(0, 1, 2, 3)
        clusters = clusterer.cluster(points)
        assert clusters == [[0, 1, 2, 3]]

    def test_early_noise_point_becomes_border(self, clusterer):
        """
        A point visited first and marked noise still joins the cluster
        later reached through a core point.
        """
        # Index 0 sits 9.5 m from the 3 m point and 10.5 m from the 2 m one
        points = line(12.5, 0, 1, 2, 3)

        result = clusterer.fit(points)

        assert result.cluster_count == 1
        assert sorted(result.clusters[0]) == [0, 1, 2, 3, 4]
        assert result.noise == []

    def test_members_in_discovery_order(self, clusterer):
        """Members come seed first, then in expansion order, not input order."""
        points = line(12.5, 0, 1, 2, 3)
        assert clusterer.cluster(points) == [[1, 2, 3, 4, 0]]

    def test_border_point_belongs_to_first_cluster_only(self, clusterer):
        """A border point reachable from two clusters is owned by the first."""
        points = line(
            0, 1, 2, 3,          # group A
            12.5,                # shared border point
            22, 23, 24, 25,      # group B
        )

        clusters = clusterer.cluster(points)

        assert len(clusters) == 2
        assert sorted(clusters[0]) == [0, 1, 2, 3, 4]
        assert sorted(clusters[1]) == [5, 6, 7, 8]

        all_members = [i for members in clusters for i in members]
        assert len(all_members) == len(set(all_members))

    def test_separate_groups(self, clusterer):
        """Two far apart dense groups become two clusters in input order."""
        points = [point_at(m, point_id=i) for i, m in enumerate([0, 1, 2, 3])]
        points += [point_at(5000 + m, point_id=4 + i) for i, m in enumerate([0, 1, 2, 3])]

        clusters = clusterer.cluster(points)

        assert [sorted(c) for c in clusters] == [[0, 1, 2, 3], [4, 5, 6, 7]]

    def test_every_cluster_meets_minimum_size(self, clusterer):
        points = line(0, 1, 2, 3, 12.5, 22, 23, 24, 25, 500, 501)
        for members in clusterer.cluster(points):
            assert len(members) >= clusterer.min_points

    def test_labels_agree_with_clusters(self, clusterer):
        points = line(0, 1, 2, 3, 12.5, 22, 23, 24, 25, 500)
        result = clusterer.fit(points)

        for cluster_id, members in enumerate(result.clusters):
            for index in members:
                assert result.labels[index] == cluster_id
        assert result.noise == [9]

    def test_deterministic(self, clusterer):
        points = line(0, 1, 2, 3, 12.5, 22, 23, 24, 25, 500)
        assert clusterer.cluster(points) == clusterer.cluster(points)

    def test_accepts_coordinates(self, clusterer):
        """Any object with latitude/longitude can be clustered."""
        coordinates = [destination_point(ORIGIN, m, 0) for m in (0.5, 1, 2, 3)]
        assert len(clusterer.cluster(coordinates)) == 1

    def test_larger_epsilon_merges_groups(self):
        points = [point_at(m, point_id=i) for i, m in enumerate([0, 1, 2, 3, 40, 41, 42, 43])]

        assert len(DensityClusterer(epsilon_km=0.01, min_points=3).cluster(points)) == 2
        assert len(DensityClusterer(epsilon_km=0.05, min_points=3).cluster(points)) == 1


# =============================================================================
# LARGE BATCHES
# =============================================================================

class TestLargeBatch:
    """Tests for clustering historical-size alert batches."""

    GROUPS = 500
    GROUP_SIZE = 10

    @pytest.fixture
    def grid_points(self):
        """500 tight groups of 10 points, groups about 1 km apart."""
        points = []
        for group in range(self.GROUPS):
            base_lat = -26.0 + (group // 25) * 0.01
            base_lon = 28.0 + (group % 25) * 0.01
            for k in range(self.GROUP_SIZE):
                # 0.000005 degrees of latitude is about 0.56 m
                points.append(Coordinate(latitude=base_lat + k * 0.000005, longitude=base_lon))
        return points

    @pytest.mark.slow
    def test_memory_stays_linear(self, clusterer, grid_points):
        """A 5000 point batch clusters without an n x n distance matrix."""
        tracemalloc.start()
        try:
            clusters = clusterer.cluster(grid_points)
            _, peak = tracemalloc.get_traced_memory()
        finally:
            tracemalloc.stop()

        # A float64 matrix for 5000 points alone would take 200 MB
        assert peak < 20 * 1024 * 1024
        assert len(clusters) == self.GROUPS
        assert clusters[0] == list(range(self.GROUP_SIZE))
        assert clusters[-1] == list(range(len(grid_points) - self.GROUP_SIZE, len(grid_points)))

"""
FleetWatch - pytest Configuration

Shared fixtures and configuration for all tests.
"""

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires external services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection based on markers."""
    # Skip integration tests by default unless explicitly requested
    if not config.getoption("--run-integration", default=False):
        skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="run integration tests that require external services"
    )


# =============================================================================
# CLOCK FIXTURES
# =============================================================================

class ManualClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def reference_time():
    """Fixed instant all time-dependent tests are anchored to."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(reference_time):
    """Create a manually advanced clock starting at the reference time."""
    return ManualClock(reference_time)


# =============================================================================
# LOCATION FIXTURES
# =============================================================================

@pytest.fixture
def depot_location():
    """Create a sample Coordinate (Johannesburg cash depot)."""
    from fleetwatch.models import Coordinate
    return Coordinate(
        latitude=-26.2041,
        longitude=28.0473,
    )


@pytest.fixture
def remote_location():
    """Create a location far from the depot."""
    from fleetwatch.models import Coordinate
    return Coordinate(
        latitude=-25.7479,
        longitude=28.2293,
    )


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================

@pytest.fixture
def test_config():
    """Create a test configuration."""
    from fleetwatch.config import FleetWatchConfig, Environment, ProximityConfig

    return FleetWatchConfig(
        environment=Environment.DEVELOPMENT,
        proximity=ProximityConfig(shard_count=2),
    )


@pytest.fixture(autouse=True)
def reset_config_fixture():
    """Reset global configuration before each test."""
    from fleetwatch.config import reset_config
    reset_config()
    yield
    reset_config()

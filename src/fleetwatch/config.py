"""
FleetWatch Configuration Module

Central configuration management with environment variable support.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from enum import Enum


class Environment(Enum):
    """Deployment environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class AnalyticsConfig:
    """Hotspot clustering and risk zone configuration."""
    # Density clustering (Haversine kilometres)
    epsilon_km: float = 0.01
    min_points: int = 3

    # Risk zone generation
    min_zone_radius_meters: float = 500.0
    min_zone_alert_count: int = 2

    @classmethod
    def from_env(cls) -> "AnalyticsConfig":
        """Load configuration from environment variables."""
        return cls(
            epsilon_km=float(os.getenv("ANALYTICS_EPSILON_KM", "0.01")),
            min_points=int(os.getenv("ANALYTICS_MIN_POINTS", "3")),
            min_zone_radius_meters=float(os.getenv("ANALYTICS_MIN_ZONE_RADIUS_METERS", "500")),
            min_zone_alert_count=int(os.getenv("ANALYTICS_MIN_ZONE_ALERT_COUNT", "2")),
        )


@dataclass
class ProximityConfig:
    """Stationary-vehicle proximity tracking configuration."""
    # Stationarity detection
    stationary_threshold_seconds: int = 60
    movement_speed_threshold_kmh: float = 3.0
    movement_displacement_threshold_meters: float = 5.0

    # Proximity scanning
    proximity_radius_meters: float = 100.0

    # History retention applied by the scheduled cleanup
    retention_hours: float = 24.0

    # Concurrency
    shard_count: int = 4

    # Egress route segments
    segment_distance_meters: float = 100.0

    @classmethod
    def from_env(cls) -> "ProximityConfig":
        """Load configuration from environment variables."""
        return cls(
            stationary_threshold_seconds=int(os.getenv("PROXIMITY_STATIONARY_THRESHOLD_SECONDS", "60")),
            movement_speed_threshold_kmh=float(os.getenv("PROXIMITY_SPEED_THRESHOLD_KMH", "3")),
            movement_displacement_threshold_meters=float(
                os.getenv("PROXIMITY_DISPLACEMENT_THRESHOLD_METERS", "5")
            ),
            proximity_radius_meters=float(os.getenv("PROXIMITY_RADIUS_METERS", "100")),
            retention_hours=float(os.getenv("PROXIMITY_RETENTION_HOURS", "24")),
            shard_count=int(os.getenv("PROXIMITY_SHARD_COUNT", "4")),
            segment_distance_meters=float(os.getenv("PROXIMITY_SEGMENT_DISTANCE_METERS", "100")),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Log destinations
    console: bool = True
    file_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Load configuration from environment variables."""
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            console=os.getenv("LOG_CONSOLE", "true").lower() == "true",
            file_path=os.getenv("LOG_FILE_PATH"),
        )


@dataclass
class FleetWatchConfig:
    """Master configuration for FleetWatch."""
    environment: Environment = Environment.DEVELOPMENT

    # Sub-configurations
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    proximity: ProximityConfig = field(default_factory=ProximityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "FleetWatchConfig":
        """Load all configuration from environment variables."""
        env_str = os.getenv("ENVIRONMENT", "development").lower()
        try:
            environment = Environment(env_str)
        except ValueError:
            environment = Environment.DEVELOPMENT

        return cls(
            environment=environment,
            analytics=AnalyticsConfig.from_env(),
            proximity=ProximityConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    def validate(self) -> Dict[str, Any]:
        """
        Validate configuration and return any warnings/errors.

        Returns:
            Dictionary with 'valid' boolean and 'messages' list
        """
        messages = []
        valid = True

        # Clustering parameters
        if self.analytics.epsilon_km <= 0:
            messages.append("ERROR: Clustering epsilon must be positive")
            valid = False
        if self.analytics.min_points < 1:
            messages.append("ERROR: Clustering min_points must be at least 1")
            valid = False
        if self.analytics.min_zone_radius_meters < 500:
            messages.append("ERROR: Risk zone radius floor cannot be below 500m")
            valid = False

        # Tracker parameters
        if self.proximity.shard_count < 1:
            messages.append("ERROR: Proximity shard count must be at least 1")
            valid = False
        if self.proximity.proximity_radius_meters <= 0:
            messages.append("ERROR: Proximity radius must be positive")
            valid = False

        # Unbounded history in production
        if self.environment == Environment.PRODUCTION:
            if self.proximity.retention_hours <= 0:
                messages.append("WARNING: Zero retention discards all tracker history on cleanup")
            if self.logging.level.upper() == "DEBUG":
                messages.append("WARNING: DEBUG logging enabled in production")

        return {"valid": valid, "messages": messages}


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install root handlers according to the logging configuration."""
    config = config or LoggingConfig()
    handlers = []
    if config.console:
        handlers.append(logging.StreamHandler())
    if config.file_path:
        handlers.append(logging.FileHandler(config.file_path))

    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=config.format,
        handlers=handlers or [logging.NullHandler()],
        force=True,
    )


# Global configuration instance
_config: Optional[FleetWatchConfig] = None


def get_config() -> FleetWatchConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = FleetWatchConfig.from_env()
    return _config


def set_config(config: FleetWatchConfig) -> None:
    """Set the global configuration instance (for testing)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None

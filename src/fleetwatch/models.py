"""
FleetWatch Core Data Models

This module defines the data records exchanged between the analytics engine,
the proximity tracker and their external collaborators (alert source,
telemetry source, persistence layer).

Using Pydantic for validation at the boundary: malformed alert or telemetry
records fail fast when parsed, so the algorithms behind them can stay total
over well-typed input.

Design Philosophy:
    - Immutability for every derived record (frozen models)
    - Wire names of the consumed contracts accepted as aliases
    - All timestamps normalised to timezone-aware UTC
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional, List, Dict, Any

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, field_validator


# Smallest radius a persisted risk zone may have.
MIN_RISK_ZONE_RADIUS_METERS = 500.0


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


# =============================================================================
# ENUMS
# =============================================================================

class RiskLevel(str, Enum):
    """
    Categorical risk derived from a 0-100 score.

    Mapping:
        LOW: 0 - 29
        MEDIUM: 30 - 59
        HIGH: 60 - 79
        CRITICAL: 80 - 100
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# =============================================================================
# GEOMETRY
# =============================================================================

class Coordinate(BaseModel):
    """
    Geographic coordinates in decimal degrees (WGS-84, no altitude).

    Attributes:
        latitude: WGS84 latitude (-90 to 90)
        longitude: WGS84 longitude (-180 to 180)
    """
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="WGS84 latitude")
    longitude: float = Field(..., ge=-180, le=180, description="WGS84 longitude")

    @property
    def as_tuple(self) -> tuple[float, float]:
        """Return (latitude, longitude)."""
        return (self.latitude, self.longitude)

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


# =============================================================================
# ALERT ANALYTICS MODELS
# =============================================================================

class AlertMetadata(BaseModel):
    """Free-form alert metadata; only the location keys are interpreted."""
    model_config = ConfigDict(extra="allow")

    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AlertRecord(BaseModel):
    """
    Alert as produced by the alert source (detection services, sensors).

    Only `{type, severity, timestamp, metadata.latitude, metadata.longitude}`
    matter to the analytics engine; everything else rides along.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    vehicle_id: Optional[str] = Field(default=None, alias="vehicleId")
    type: str
    severity: str = "info"
    message: Optional[str] = None
    timestamp: UtcDatetime
    metadata: AlertMetadata = Field(default_factory=AlertMetadata)

    @field_validator("metadata", mode="before")
    @classmethod
    def _empty_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_point(self) -> AlertPoint:
        """Project the alert onto the clustering domain. Missing coordinates become 0."""
        latitude = self.metadata.latitude if self.metadata.latitude is not None else 0.0
        longitude = self.metadata.longitude if self.metadata.longitude is not None else 0.0
        return AlertPoint(
            id=self.id,
            latitude=latitude,
            longitude=longitude,
            timestamp=self.timestamp,
            severity=self.severity,
            type=self.type,
        )


class AlertPoint(BaseModel):
    """
    A located incident, the unit of hotspot clustering.

    The exact coordinate (0, 0) is the "no location" marker: such points are
    excluded from clustering even though it is a valid place on Earth.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: UtcDatetime
    severity: str = "info"
    type: str = ""

    @field_validator("severity")
    @classmethod
    def _normalise_severity(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def has_location(self) -> bool:
        return not (self.latitude == 0 and self.longitude == 0)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class AlertCluster(BaseModel):
    """
    Summary of one incident hotspot.

    Attributes:
        centroid: Mean latitude/longitude of the member alerts
        radius_km: Largest member distance to the centroid
        alert_ids: Ids of the member alerts in cluster discovery order: the
            seed alert first, then alerts as density expansion reaches them
        risk_score: 0-100 score from the RiskScorer
        severity: Category of risk_score
        last_incident: Most recent member timestamp
    """
    model_config = ConfigDict(frozen=True)

    centroid: Coordinate
    radius_km: float = Field(default=0.0, ge=0.0)
    alert_count: int = Field(default=0, ge=0)
    alert_ids: List[int] = Field(default_factory=list)
    risk_score: int = Field(default=0, ge=0, le=100)
    severity: RiskLevel = RiskLevel.LOW
    last_incident: UtcDatetime


class HotspotAnalysisResult(BaseModel):
    """Output of one hotspot analysis pass over an alert batch."""
    model_config = ConfigDict(frozen=True)

    clusters: List[AlertCluster] = Field(default_factory=list)
    analysis_timestamp: UtcDatetime = Field(default_factory=utc_now)
    total_alerts_analyzed: int = Field(default=0, ge=0)
    high_risk_clusters: int = Field(default=0, ge=0)


class RiskZone(BaseModel):
    """
    Radius-bounded area of elevated risk, derived from a hotspot.

    `id` stays None until the persistence layer assigns one.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str
    centroid: Coordinate
    radius_meters: float = Field(..., ge=MIN_RISK_ZONE_RADIUS_METERS)
    risk_level: RiskLevel
    description: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def radius_km(self) -> float:
        return self.radius_meters / 1000

    def to_record(self) -> Dict[str, Any]:
        """Render the insert shape expected by the risk zone store."""
        return {
            "name": self.name,
            "latitude": self.centroid.latitude,
            "longitude": self.centroid.longitude,
            "radius": int(round(self.radius_meters)),
            "riskLevel": self.risk_level.value,
            "description": self.description,
            "metadata": dict(self.metadata),
        }


# =============================================================================
# VEHICLE TRACKING MODELS
# =============================================================================

class TelemetrySample(BaseModel):
    """
    One position report from a vehicle's telematics unit.

    Speed is optional; when absent the tracker falls back to displacement
    between consecutive reports to decide whether the vehicle moves.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vehicle_id: str = Field(..., alias="vehicleId", min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    speed_kmh: Optional[float] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("speedKmh", "speed_kmh", "speed"),
        serialization_alias="speedKmh",
    )
    timestamp: UtcDatetime

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class VehicleStatusEntry(BaseModel):
    """A single movement observation in a vehicle's status history."""
    model_config = ConfigDict(frozen=True)

    timestamp: UtcDatetime
    coordinate: Coordinate
    is_moving: bool


class NearbyVehicle(BaseModel):
    """Another vehicle found inside a proximity scan radius."""
    model_config = ConfigDict(frozen=True)

    id: str
    distance_meters: float = Field(..., ge=0.0)
    coordinate: Coordinate
    detected_at: UtcDatetime


class ProximityScan(BaseModel):
    """
    Snapshot of the vehicles surrounding a stationary vehicle.

    Recorded once per qualifying telemetry sample; the per-vehicle scan
    history is append-only.
    """
    model_config = ConfigDict(frozen=True)

    center_vehicle_id: str
    center_coordinate: Coordinate
    timestamp: UtcDatetime
    nearby_vehicles: List[NearbyVehicle] = Field(default_factory=list)
    is_stationary: bool = True
    stationary_duration_seconds: int = 0

    def within(self, radius_meters: float) -> ProximityScan:
        """Copy of this scan keeping only vehicles within `radius_meters`."""
        return self.model_copy(
            update={
                "nearby_vehicles": [
                    v for v in self.nearby_vehicles if v.distance_meters <= radius_meters
                ]
            }
        )


class StationaryVehicle(BaseModel):
    """A vehicle that has been stationary for at least the configured threshold."""
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    coordinate: Coordinate
    duration_seconds: int


class RouteSegment(BaseModel):
    """Straight egress candidate from a vehicle's position."""
    model_config = ConfigDict(frozen=True)

    start: Coordinate
    end: Coordinate
    distance_meters: float = Field(..., ge=0.0)

"""
Domain models for the Left Behind integration.

This module contains pure data classes: coordinates, location samples,
tracked items, alarm verdicts and alarm records.
These classes have no dependencies on HTTP, API logic, or Home Assistant internals.
"""
from __future__ import annotations

import dataclasses
import enum
from datetime import datetime


@dataclasses.dataclass(frozen=True)
class Coordinate:
    """A WGS84 position in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")


@dataclasses.dataclass(frozen=True)
class LocationSample:
    """
    A single position fix of the user.

    Superseded by later samples, never mutated.
    """

    coords: Coordinate
    timestamp: datetime
    accuracy: float | None = None
    speed: float | None = None    # metres per second


@dataclasses.dataclass(frozen=True)
class Tracker:
    """
    A tracked physical item.

    Always replaced as a whole record — never mutate in place.
    """

    id: str
    name: str
    is_essential: bool
    is_at_home: bool
    last_position: Coordinate
    battery_level: int | None = None


class MotionState(enum.Enum):
    """Motion classification derived from instantaneous speed."""

    STATIONARY = "stationary"
    DRIVING = "driving"


class Severity(str, enum.Enum):
    """Severity of an alarm record."""

    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


# ---------------------------------------------------------------------------
# Verdicts — exactly one holds at any evaluation instant
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Danger:
    """The user is away and essential items were left at home."""

    forgotten_tracker_ids: frozenset[str]
    distance_meters: float

    kind = "danger"


@dataclasses.dataclass(frozen=True)
class Safe:
    """The user is away and nothing essential was forgotten."""

    distance_meters: float

    kind = "safe"


@dataclasses.dataclass(frozen=True)
class AtHome:
    """The user is within the home radius."""

    kind = "at_home"


@dataclasses.dataclass(frozen=True)
class DrivingSuppressed:
    """Alarms are suppressed while the user is driving."""

    kind = "driving"


AlarmVerdict = Danger | Safe | AtHome | DrivingSuppressed


@dataclasses.dataclass(frozen=True)
class AlarmRecord:
    """
    An immutable alarm history entry.

    Dismissal is the only permitted change and happens in the store, not here.
    """

    id: str
    type: str
    message: str
    severity: Severity
    tracker_ids: tuple[str, ...]
    user_coordinate: Coordinate
    created_at: datetime
    was_dismissed: bool = False

    def as_row(self, user_id: str) -> dict:
        """Render the record in the alarm_history table schema."""
        return {
            "id": self.id,
            "user_id": user_id,
            "type": self.type,
            "message": self.message,
            "severity": self.severity.value,
            "tracker_ids": list(self.tracker_ids),
            "user_lat": self.user_coordinate.latitude,
            "user_lng": self.user_coordinate.longitude,
            "created_at": self.created_at.isoformat(),
            "was_dismissed": self.was_dismissed,
        }

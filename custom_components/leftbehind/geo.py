"""
Distance and motion helpers.

No HA imports — these functions are pure data primitives.
"""
from __future__ import annotations

import math

from .const import DRIVING_SPEED_THRESHOLD, EARTH_RADIUS
from .models import Coordinate, MotionState


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Return the great-circle (haversine) distance between two coordinates in metres."""
    if a == b:
        return 0.0

    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def classify_motion(speed: float | None) -> MotionState:
    """
    Classify a speed in m/s as DRIVING or STATIONARY.

    Missing speed never counts as driving, so alarms stay armed without data.
    """
    if speed is not None and speed > DRIVING_SPEED_THRESHOLD:
        return MotionState.DRIVING
    return MotionState.STATIONARY


def format_distance(meters: float) -> str:
    """Format a distance for user-facing messages."""
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"

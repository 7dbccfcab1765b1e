"""
Alarm evaluator — turns the latest sample and tracker snapshot into a verdict.

Pure function: no history, no hidden state, no HA imports.
"""
from __future__ import annotations

from collections.abc import Iterable

from .const import HOME_RADIUS
from .geo import classify_motion, distance_meters
from .models import (
    AlarmVerdict,
    AtHome,
    Coordinate,
    Danger,
    DrivingSuppressed,
    LocationSample,
    MotionState,
    Safe,
    Tracker,
)


def forgotten_trackers(trackers: Iterable[Tracker]) -> list[Tracker]:
    """Return the essential trackers currently marked as at home."""
    return [t for t in trackers if t.is_essential and t.is_at_home]


def evaluate(
    sample: LocationSample | None,
    trackers: Iterable[Tracker],
    home: Coordinate,
    home_radius: float = HOME_RADIUS,
) -> AlarmVerdict | None:
    """
    Compute the presence verdict for one sample.

    Returns None when no sample has been received yet; callers treat that as
    a non-alerting "no data" state distinct from AtHome and Safe.

    Driving is checked before the distance so it always overrides a danger
    verdict.
    """
    if sample is None:
        return None

    distance = distance_meters(sample.coords, home)

    if classify_motion(sample.speed) is MotionState.DRIVING:
        return DrivingSuppressed()

    if distance <= home_radius:
        return AtHome()

    forgotten = forgotten_trackers(trackers)
    if forgotten:
        return Danger(
            forgotten_tracker_ids=frozenset(t.id for t in forgotten),
            distance_meters=distance,
        )

    return Safe(distance_meters=distance)

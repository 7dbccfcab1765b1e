"""
TrackerRepository — in-memory view of the user's tracked items.

Records arrive as whole-row replacements from the store; readers always get
an immutable snapshot so a refresh can never change the list mid-evaluation.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from .exceptions import MalformedTrackerError
from .models import Coordinate, Tracker

_LOGGER = logging.getLogger(__name__)


def tracker_from_row(row: dict) -> Tracker:
    """
    Build a Tracker from a `trackers` table row.

    Raises MalformedTrackerError when the id or coordinates are missing or
    invalid; such records must never reach the evaluator.
    """
    tracker_id = row.get("id")
    if tracker_id is None or tracker_id == "":
        raise MalformedTrackerError(f"Tracker row without id: {row}")

    lat = row.get("last_reported_lat")
    lng = row.get("last_reported_lng")
    if lat is None or lng is None:
        raise MalformedTrackerError(f"Tracker {tracker_id} has no reported position")

    try:
        position = Coordinate(float(lat), float(lng))
    except (TypeError, ValueError) as exc:
        raise MalformedTrackerError(f"Tracker {tracker_id} has an invalid position: {exc}") from exc

    battery = row.get("battery_level")
    return Tracker(
        id=str(tracker_id),
        name=row.get("name") or f"Tracker {tracker_id}",
        is_essential=bool(row.get("is_essential", False)),
        is_at_home=bool(row.get("is_at_home", False)),
        last_position=position,
        battery_level=int(battery) if battery is not None else None,
    )


class TrackerRepository:
    """Holds the latest known record of every tracker, keyed by id."""

    def __init__(self) -> None:
        self._trackers: dict[str, Tracker] = {}

    def replace(self, tracker: Tracker) -> None:
        """Insert or replace a single tracker record."""
        self._trackers[tracker.id] = tracker

    def replace_all(self, rows: Iterable[dict]) -> list[Tracker]:
        """
        Replace the whole repository with parsed store rows.

        Malformed rows are excluded and logged so they can neither raise a
        false alarm nor hide a real one behind a bogus position.
        """
        parsed: dict[str, Tracker] = {}
        for row in rows:
            try:
                tracker = tracker_from_row(row)
            except MalformedTrackerError as exc:
                _LOGGER.warning("Ignoring tracker record: %s", exc)
                continue
            parsed[tracker.id] = tracker
        self._trackers = parsed
        return list(parsed.values())

    def snapshot(self) -> tuple[Tracker, ...]:
        """Return a consistent, immutable copy of all trackers."""
        return tuple(self._trackers.values())

"""
CoordinatorData — immutable snapshot of one user session shared with entities.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses

from .const import STATUS_NO_DATA
from .models import AlarmRecord, AlarmVerdict, LocationSample, Tracker


@dataclasses.dataclass(frozen=True)
class CoordinatorData:
    """
    Typed, copy-on-write snapshot of the session state.

    Always replace via dataclasses.replace() — never mutate in place.
    """

    # Tracker snapshot the last verdict was computed from
    trackers: tuple[Tracker, ...] = ()

    # Last applied location sample (None until the first fix, or after the position is lost)
    sample: LocationSample | None = None

    # Verdict for `sample`; None means "no data yet"
    verdict: AlarmVerdict | None = None

    # Distance from home of `sample`, in metres
    distance_meters: float | None = None

    # Most recently dispatched alarm of this session
    last_alarm: AlarmRecord | None = None

    # User-facing location advisory (permission denied, no fix, ...)
    advisory: str | None = None

    @property
    def status(self) -> str:
        """Verdict kind, or "no_data" when there is no verdict."""
        if self.verdict is None:
            return STATUS_NO_DATA
        return self.verdict.kind

    def get_tracker(self, tracker_id: str) -> Tracker | None:
        for tracker in self.trackers:
            if tracker.id == tracker_id:
                return tracker
        return None

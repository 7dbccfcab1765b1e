"""
AlarmDispatcher — turns danger verdicts into notifications and history rows.

Owns the only mutable alarm state of a session: the forgotten-set of the
last dispatched alarm. Re-evaluating every incoming sample while the user
stays away with the same items missing must not re-notify.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable
from typing import Protocol

from homeassistant.core import HomeAssistant
from homeassistant.util import dt as dt_util

from .const import ALARM_TYPE_FORGOTTEN
from .geo import format_distance
from .models import (
    AlarmRecord,
    AlarmVerdict,
    AtHome,
    Danger,
    LocationSample,
    Safe,
    Severity,
    Tracker,
)
from .notifier import NotificationGateway

_LOGGER = logging.getLogger(__name__)


class HistorySink(Protocol):
    async def async_append_alarm(self, record: AlarmRecord) -> None: ...


def build_alarm_message(verdict: Danger, trackers: Iterable[Tracker]) -> str:
    """Human readable alarm text naming the forgotten items."""
    names_by_id = {t.id: t.name for t in trackers}
    names = sorted(
        names_by_id.get(tracker_id, tracker_id) for tracker_id in verdict.forgotten_tracker_ids
    )
    return (
        f"You left behind: {', '.join(names)} "
        f"({format_distance(verdict.distance_meters)} from home)"
    )


class AlarmDispatcher:
    """
    Decides whether a verdict warrants a new alarm and performs it.

    One instance per user session; only the session's evaluation worker may
    call async_dispatch.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        gateway: NotificationGateway,
        history: HistorySink,
    ) -> None:
        self.hass = hass
        self._gateway = gateway
        self._history = history
        self._last_kind: str | None = None
        self._last_forgotten: frozenset[str] | None = None
        self._history_tasks: set[asyncio.Task] = set()

    @property
    def last_dispatched_kind(self) -> str | None:
        return self._last_kind

    @property
    def last_dispatched_forgotten(self) -> frozenset[str] | None:
        return self._last_forgotten

    def reset(self) -> None:
        """Forget the last dispatched alarm."""
        self._last_kind = None
        self._last_forgotten = None

    def should_dispatch(self, verdict: AlarmVerdict | None) -> bool:
        """True for a danger verdict whose forgotten-set has not been alarmed yet."""
        if not isinstance(verdict, Danger):
            return False
        return self._last_forgotten != verdict.forgotten_tracker_ids

    async def async_dispatch(
        self,
        verdict: AlarmVerdict | None,
        sample: LocationSample | None,
        trackers: Iterable[Tracker],
    ) -> AlarmRecord | None:
        """
        Notify and append a history record for a new danger verdict.

        Returns the dispatched record, or None when nothing was dispatched.
        """
        if verdict is None or sample is None:
            return None

        if isinstance(verdict, (AtHome, Safe)):
            # Items are back with the user (or the user is home): re-arm.
            if self._last_forgotten is not None:
                _LOGGER.debug("Alarm state cleared by %s verdict", verdict.kind)
            self.reset()
            return None

        if not self.should_dispatch(verdict):
            return None

        record = AlarmRecord(
            id=uuid.uuid4().hex,
            type=ALARM_TYPE_FORGOTTEN,
            message=build_alarm_message(verdict, trackers),
            severity=Severity.DANGER,
            tracker_ids=tuple(sorted(verdict.forgotten_tracker_ids)),
            user_coordinate=sample.coords,
            created_at=dt_util.utcnow(),
        )

        # Record the dispatch before any side effect: missed notifications are not retried.
        self._last_kind = verdict.kind
        self._last_forgotten = verdict.forgotten_tracker_ids
        _LOGGER.info("Dispatching alarm %s: %s", record.id, record.message)

        try:
            await self._gateway.async_send_alarm_notification(record.message, record.severity)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Alarm notification failed: %s", exc)

        task = self.hass.async_create_task(self._async_append_history(record))
        self._history_tasks.add(task)
        task.add_done_callback(self._history_tasks.discard)
        return record

    async def _async_append_history(self, record: AlarmRecord) -> None:
        """Fire-and-forget history write; failures are logged only."""
        try:
            await self._history.async_append_alarm(record)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to append alarm %s to history: %s", record.id, exc)

    async def async_shutdown(self) -> None:
        """Cancel history writes that are still in flight."""
        for task in list(self._history_tasks):
            task.cancel()
        if self._history_tasks:
            await asyncio.gather(*self._history_tasks, return_exceptions=True)
        self._history_tasks.clear()

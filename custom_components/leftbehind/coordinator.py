"""
DataUpdateCoordinator for the Left Behind integration.

One coordinator per config entry, i.e. per user session.

Responsibilities:
- Own the store client, tracker repository, location sampler and dispatcher.
- Refresh the tracker snapshot every TRACKERS_INTERVAL seconds.
- Feed location samples (and location errors) through a single SampleQueue so
  evaluation and dispatch never run concurrently for the session.
- Drop samples older than the last applied one.
- Push CoordinatorData snapshots to entities after every applied sample.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .const import (
    CONF_API_KEY,
    CONF_HOME_LATITUDE,
    CONF_HOME_LONGITUDE,
    CONF_NOTIFY_TARGET,
    CONF_PERSON_ENTITY,
    CONF_STORE_URL,
    CONF_USER_ID,
    DOMAIN,
    TRACKERS_INTERVAL,
    VERSION,
)
from .coordinator_data import CoordinatorData
from .dispatcher import AlarmDispatcher
from .evaluator import evaluate
from .exceptions import (
    ApiResponseError,
    LocationError,
    PermissionDenied,
    PositionTimeout,
)
from .geo import distance_meters
from .location import EntityPositionSource, LocationSampler
from .models import Coordinate, LocationSample, Severity
from .notifier import NotificationGateway
from .session_queue import SampleQueue
from .store import StoreClient
from .trackers import TrackerRepository

__all__ = ["CoordinatorData", "LeftBehindCoordinator"]

_LOGGER = logging.getLogger(__name__)


def advisory_for(error: LocationError) -> str:
    """User-facing advisory text for a location failure."""
    if isinstance(error, PermissionDenied):
        return f"Location access denied: {error}"
    if isinstance(error, PositionTimeout):
        return "Could not get your current location in time."
    return f"Your current location is unavailable: {error}"


class LeftBehindCoordinator(DataUpdateCoordinator[CoordinatorData]):
    """
    Coordinator for one user's forgotten-item alarms.

    The HA poll refreshes trackers; location samples arrive push-style from
    the sampler and are evaluated one at a time.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_data: dict,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        """Initialize the coordinator from config-entry data."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=TRACKERS_INTERVAL),
        )

        self._entry_data = entry_data
        self.home = Coordinate(
            float(entry_data[CONF_HOME_LATITUDE]),
            float(entry_data[CONF_HOME_LONGITUDE]),
        )
        self.store = StoreClient(
            entry_data[CONF_STORE_URL],
            entry_data[CONF_API_KEY],
            entry_data[CONF_USER_ID],
        )
        self.repository = TrackerRepository()
        self.sampler = LocationSampler(
            EntityPositionSource(hass, entry_data[CONF_PERSON_ENTITY])
        )
        self.gateway = NotificationGateway(hass, entry_data.get(CONF_NOTIFY_TARGET))
        self.dispatcher = AlarmDispatcher(hass, self.gateway, self.store)

        self._queue = SampleQueue(self._async_process_item)
        self._last_applied: datetime | None = None
        self._unsub_location = None
        self._first_fix: asyncio.Task | None = None
        self._stopped = False
        self.notifications_available: bool | None = None

        # Snapshot starts empty; entities must handle "no data" until the first sample
        self.data = CoordinatorData()

    # ------------------------------------------------------------------
    # HA entry point — tracker snapshot refresh
    # ------------------------------------------------------------------

    async def _async_update_data(self) -> CoordinatorData:
        """Fetch tracker rows and replace the repository contents."""
        try:
            rows = await self.store.async_fetch_trackers()
        except ApiResponseError as exc:
            raise UpdateFailed(f"Store rejected the tracker query: {exc}") from exc
        except Exception as exc:  # noqa: BLE001
            raise UpdateFailed(f"Store connection error: {exc}") from exc

        self.repository.replace_all(rows)
        trackers = self.repository.snapshot()
        _LOGGER.debug("Tracker snapshot refreshed: %s trackers", len(trackers))

        # Re-evaluate the current position against the new snapshot.
        if self.data.sample is not None:
            self._queue.put(self.data.sample)

        return dataclasses.replace(self.data, trackers=trackers)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def async_start(self) -> None:
        """Check capabilities, start the location watch and request a first fix."""
        self.notifications_available = self.gateway.is_available()
        if not self.notifications_available:
            _LOGGER.warning(
                "Notification target %s is not available; alarms fall back to persistent notifications",
                self.gateway.target,
            )

        try:
            self._unsub_location = self.sampler.subscribe(
                self._on_sample, self._on_location_error
            )
        except LocationError as exc:
            self._on_location_error(exc)
            return

        if self.sampler.last_sample is None:
            self._first_fix = self.hass.async_create_task(self.async_request_location())

    async def async_request_location(self) -> LocationSample | None:
        """Request a one-shot fix and queue it for evaluation."""
        try:
            sample = await self.sampler.async_get_current_position()
        except LocationError as exc:
            self._on_location_error(exc)
            return None
        self._on_sample(sample)
        return sample

    async def async_dismiss_alarm(self, alarm_id: str) -> None:
        """Mark a history entry as dismissed on behalf of the user."""
        try:
            await self.store.async_dismiss_alarm(alarm_id)
        except Exception as exc:  # noqa: BLE001
            raise HomeAssistantError(f"Could not dismiss alarm {alarm_id}: {exc}") from exc

    async def async_get_alarm_history(self, severity: Severity | None = None) -> list[dict]:
        """Newest alarm history rows of this user, optionally of one severity."""
        try:
            return await self.store.async_fetch_alarm_history(severity=severity)
        except Exception as exc:  # noqa: BLE001
            raise HomeAssistantError(f"Could not load alarm history: {exc}") from exc

    # ------------------------------------------------------------------
    # Sample pipeline
    # ------------------------------------------------------------------

    def _on_sample(self, sample: LocationSample) -> None:
        if self._stopped:
            _LOGGER.debug("Session stopped, ignoring sample from %s", sample.timestamp)
            return
        self._queue.put(sample)

    def _on_location_error(self, error: LocationError) -> None:
        if self._stopped:
            _LOGGER.debug("Session stopped, ignoring location error: %s", error)
            return
        self._queue.put(error)

    async def _async_process_item(self, item: LocationSample | LocationError) -> None:
        if isinstance(item, LocationError):
            self._apply_location_error(item)
        else:
            await self._async_apply_sample(item)

    async def _async_apply_sample(self, sample: LocationSample) -> None:
        """Evaluate one sample, dispatch if warranted and publish the snapshot."""
        if self._last_applied is not None and sample.timestamp < self._last_applied:
            _LOGGER.debug(
                "Dropping stale sample from %s (last applied %s)",
                sample.timestamp, self._last_applied,
            )
            return
        self._last_applied = sample.timestamp

        trackers = self.repository.snapshot()
        verdict = evaluate(sample, trackers, self.home)
        record = await self.dispatcher.async_dispatch(verdict, sample, trackers)

        if self.data.advisory is not None:
            self.gateway.clear_advisory()

        self.async_set_updated_data(
            dataclasses.replace(
                self.data,
                trackers=trackers,
                sample=sample,
                verdict=verdict,
                distance_meters=distance_meters(sample.coords, self.home),
                last_alarm=record or self.data.last_alarm,
                advisory=None,
            )
        )

    def _apply_location_error(self, error: LocationError) -> None:
        """Fall back to "no verdict" and surface an advisory; alarm state is kept."""
        advisory = advisory_for(error)
        _LOGGER.warning("Location unavailable: %s", error)
        if advisory != self.data.advisory:
            self.gateway.send_advisory(advisory)
        self.async_set_updated_data(
            dataclasses.replace(
                self.data,
                sample=None,
                verdict=None,
                distance_meters=None,
                advisory=advisory,
            )
        )

    # ------------------------------------------------------------------
    # Entity helper — device info dict
    # ------------------------------------------------------------------

    def get_device_info(self, tracker_id: str) -> dict | None:
        """Return the HA DeviceInfo dict for the given tracker id."""
        tracker = self.data.get_tracker(tracker_id)
        if tracker is None:
            return None
        return {
            "identifiers": {(DOMAIN, f"{self._entry_data['guid']}_{tracker_id}")},
            "name": tracker.name,
            "manufacturer": "Left Behind",
            "model": "Essential item" if tracker.is_essential else "Item",
            "sw_version": VERSION,
        }

    def get_session_device_info(self) -> dict:
        """DeviceInfo for the per-user session device holding the alarm entities."""
        return {
            "identifiers": {(DOMAIN, self._entry_data["guid"])},
            "name": self._entry_data.get("entry_name", "Left Behind"),
            "manufacturer": "Left Behind",
            "model": "Alarm engine",
            "sw_version": VERSION,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Stop the watch and clean up all resources owned by this coordinator."""
        # Samples arriving from here on belong to a session that no longer exists
        self._stopped = True
        if self._unsub_location is not None:
            self._unsub_location()
            self._unsub_location = None
        if self._first_fix is not None and not self._first_fix.done():
            self._first_fix.cancel()
            await asyncio.gather(self._first_fix, return_exceptions=True)
        self._first_fix = None
        await self._queue.shutdown()
        await self.dispatcher.async_shutdown()
        await super().async_shutdown()

    @property
    def entry_data(self):
        return self._entry_data

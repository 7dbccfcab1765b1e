"""
Location sampling for the Left Behind integration.

Responsibilities:
- Wrap a platform position source behind one-shot and continuous-watch modes.
- Fan a single underlying watch out to any number of subscribers.
- Provide the Home Assistant position source, backed by the state of the
  user's person / device_tracker entity.

Samples are passed through exactly as the source produced them; ordering
and deduplication are handled by the coordinator and the dispatcher.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable

from homeassistant.const import ATTR_GPS_ACCURACY, ATTR_LATITUDE, ATTR_LONGITUDE
from homeassistant.core import Event, HomeAssistant, State, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.event import async_track_state_change_event
from homeassistant.util import dt as dt_util

from .const import ONE_SHOT_MAX_AGE, ONE_SHOT_TIMEOUT, POSITION_DOMAINS, WATCH_MAX_AGE
from .exceptions import LocationError, PermissionDenied, PositionTimeout, PositionUnavailable
from .models import Coordinate, LocationSample

_LOGGER = logging.getLogger(__name__)

ATTR_SPEED = "speed"

SampleCallback = Callable[[LocationSample], None]
ErrorCallback = Callable[[LocationError], None]


# ---------------------------------------------------------------------------
# Platform position sources
# ---------------------------------------------------------------------------

class PositionSource(ABC):
    """A platform facility that can produce position fixes."""

    @abstractmethod
    async def async_request_fix(self, timeout: float, max_age: float) -> LocationSample:
        """
        Resolve with a single fix no older than max_age seconds.

        Raises PositionUnavailable, PermissionDenied or PositionTimeout.
        """

    @abstractmethod
    def start_watch(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        max_age: float,
    ) -> Callable[[], None]:
        """Start delivering fixes to on_sample and return a callable that stops the watch."""


def sample_from_state(state: State | None) -> LocationSample:
    """
    Convert an entity state with GPS attributes into a LocationSample.

    Raises PositionUnavailable when the state is missing or carries no valid
    coordinates (e.g. the entity is "unavailable").
    """
    if state is None:
        raise PositionUnavailable("Position entity does not exist")

    lat = state.attributes.get(ATTR_LATITUDE)
    lng = state.attributes.get(ATTR_LONGITUDE)
    if lat is None or lng is None:
        raise PositionUnavailable(
            f"{state.entity_id} has no coordinates (state: {state.state})"
        )

    try:
        coords = Coordinate(float(lat), float(lng))
    except (TypeError, ValueError) as exc:
        raise PositionUnavailable(f"{state.entity_id} has invalid coordinates: {exc}") from exc

    accuracy = state.attributes.get(ATTR_GPS_ACCURACY)
    speed = state.attributes.get(ATTR_SPEED)
    return LocationSample(
        coords=coords,
        timestamp=state.last_updated,
        accuracy=float(accuracy) if accuracy is not None else None,
        speed=float(speed) if speed is not None else None,
    )


def _is_fresh(state: State, now: datetime, max_age: float) -> bool:
    return max_age > 0 and now - state.last_updated <= timedelta(seconds=max_age)


class EntityPositionSource(PositionSource):
    """Position source reading the GPS attributes of a Home Assistant entity."""

    def __init__(self, hass: HomeAssistant, entity_id: str) -> None:
        self.hass = hass
        self.entity_id = entity_id

    def _check_permission(self) -> None:
        domain = self.entity_id.split(".", 1)[0]
        if domain not in POSITION_DOMAINS:
            raise PermissionDenied(
                f"{self.entity_id} is not a person or device_tracker entity"
            )

    async def async_request_fix(self, timeout: float, max_age: float) -> LocationSample:
        """
        Ask HA to refresh the entity and wait for a state newer than the request.

        With max_age == 0 the current state is never reused.
        """
        self._check_permission()
        requested_at = dt_util.utcnow()

        current = self.hass.states.get(self.entity_id)
        if current is None:
            raise PositionUnavailable(f"{self.entity_id} does not exist")
        if _is_fresh(current, requested_at, max_age):
            return sample_from_state(current)

        oldest_allowed = requested_at - timedelta(seconds=max_age)
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        @callback
        def _state_changed(event: Event) -> None:
            new_state = event.data.get("new_state")
            if future.done() or new_state is None:
                return
            if new_state.last_updated <= oldest_allowed:
                return
            try:
                future.set_result(sample_from_state(new_state))
            except PositionUnavailable as exc:
                future.set_exception(exc)

        unsub = async_track_state_change_event(self.hass, [self.entity_id], _state_changed)
        try:
            try:
                await self.hass.services.async_call(
                    "homeassistant",
                    "update_entity",
                    {"entity_id": self.entity_id},
                    blocking=False,
                )
            except HomeAssistantError as exc:
                # Not every tracker can be polled; keep waiting for a push update.
                _LOGGER.debug("Could not request update of %s: %s", self.entity_id, exc)

            try:
                async with asyncio.timeout(timeout):
                    return await future
            except TimeoutError as exc:
                raise PositionTimeout(
                    f"No fresh position from {self.entity_id} within {timeout}s"
                ) from exc
        finally:
            unsub()

    def start_watch(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        max_age: float,
    ) -> Callable[[], None]:
        """Follow state changes of the entity; a recent current state is emitted first."""
        self._check_permission()

        current = self.hass.states.get(self.entity_id)
        if current is not None and _is_fresh(current, dt_util.utcnow(), max_age):
            try:
                on_sample(sample_from_state(current))
            except PositionUnavailable as exc:
                on_error(exc)

        @callback
        def _state_changed(event: Event) -> None:
            try:
                sample = sample_from_state(event.data.get("new_state"))
            except PositionUnavailable as exc:
                on_error(exc)
                return
            on_sample(sample)

        return async_track_state_change_event(self.hass, [self.entity_id], _state_changed)


# ---------------------------------------------------------------------------
# LocationSampler — one-shot + shared continuous watch
# ---------------------------------------------------------------------------

class LocationSampler:
    """
    Produces location samples from a PositionSource.

    One underlying watch is shared by all subscribers: it starts with the
    first subscriber and stops when the last one unsubscribes.
    """

    def __init__(
        self,
        source: PositionSource,
        one_shot_timeout: float = ONE_SHOT_TIMEOUT,
        watch_max_age: float = WATCH_MAX_AGE,
    ) -> None:
        self._source = source
        self._one_shot_timeout = one_shot_timeout
        self._watch_max_age = watch_max_age
        # registration token -> (callback, optional error callback), in registration order
        self._subscribers: dict[object, tuple[SampleCallback, ErrorCallback | None]] = {}
        self._stop_watch: Callable[[], None] | None = None
        self._last_sample: LocationSample | None = None

    @property
    def last_sample(self) -> LocationSample | None:
        return self._last_sample

    @property
    def watching(self) -> bool:
        return self._stop_watch is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def async_get_current_position(self) -> LocationSample:
        """
        Request a single high-accuracy fix with no cached result.

        Not cancellable: resolves or fails on its own timeout.
        """
        sample = await self._source.async_request_fix(self._one_shot_timeout, ONE_SHOT_MAX_AGE)
        self._last_sample = sample
        return sample

    def subscribe(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback | None = None,
    ) -> Callable[[], None]:
        """
        Register a subscriber and return its unsubscribe handle.

        Raises LocationError when the underlying watch cannot be started; the
        subscriber is not kept in that case.
        """
        token = object()
        self._subscribers[token] = (on_sample, on_error)
        if self._stop_watch is None:
            try:
                self._stop_watch = self._source.start_watch(
                    self._handle_sample, self._handle_error, self._watch_max_age
                )
            except LocationError:
                self._subscribers.pop(token, None)
                raise
            _LOGGER.debug("Location watch started")

        return lambda: self._remove(token)

    def unsubscribe(self, on_sample: SampleCallback | None = None) -> None:
        """Remove every registration of on_sample, or all of them when on_sample is None."""
        if on_sample is None:
            self._subscribers.clear()
        else:
            for token, (callback, _) in list(self._subscribers.items()):
                if callback == on_sample:
                    del self._subscribers[token]
        self._stop_watch_if_idle()

    def _remove(self, token: object) -> None:
        self._subscribers.pop(token, None)
        self._stop_watch_if_idle()

    def _stop_watch_if_idle(self) -> None:
        if not self._subscribers and self._stop_watch is not None:
            self._stop_watch()
            self._stop_watch = None
            _LOGGER.debug("Location watch stopped")

    def _handle_sample(self, sample: LocationSample) -> None:
        self._last_sample = sample
        for on_sample, _ in list(self._subscribers.values()):
            try:
                on_sample(sample)
            except Exception as exc:  # noqa: BLE001
                _LOGGER.error(
                    "Error in location subscriber %s: %s",
                    getattr(on_sample, "__name__", on_sample), exc,
                    exc_info=True,
                )

    def _handle_error(self, error: LocationError) -> None:
        handlers = [h for _, h in self._subscribers.values() if h is not None]
        if not handlers:
            _LOGGER.warning("Location watch error: %s", error)
            return
        for on_error in handlers:
            try:
                on_error(error)
            except Exception as exc:  # noqa: BLE001
                _LOGGER.error("Error in location error handler: %s", exc, exc_info=True)

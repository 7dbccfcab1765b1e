"""
Platform for presence sensors.
This module is responsible for setting up the presence status and distance
from home sensors of a user session.
"""
from __future__ import annotations

from homeassistant.components.sensor import SensorEntity, SensorDeviceClass, SensorStateClass
from homeassistant.const import UnitOfLength
from homeassistant.core import HomeAssistant
from homeassistant import config_entries
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import STATUS_OPTIONS
from .coordinator import LeftBehindCoordinator
import logging

_LOGGER = logging.getLogger(__name__)

STATUS_ICONS = {
    "danger":  "mdi:alert",
    "safe":    "mdi:check-circle",
    "at_home": "mdi:home",
    "driving": "mdi:car",
    "no_data": "mdi:map-marker-question",
}


class LeftBehindSensor(CoordinatorEntity[LeftBehindCoordinator], SensorEntity):
    """Common base for the session sensors."""

    def __init__(self, coordinator: LeftBehindCoordinator, key: str, name: str) -> None:
        super().__init__(coordinator)
        guid = coordinator.entry_data["guid"]
        self._attr_unique_id = f"leftbehind_{guid}_{key}"
        self._attr_name = name

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return self.coordinator.get_session_device_info()


class PresenceStatusSensor(LeftBehindSensor):
    """
    Current verdict: danger, safe, at_home, driving or no_data.
    The location advisory, when present, is exposed as an attribute.
    """

    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = STATUS_OPTIONS

    def __init__(self, coordinator: LeftBehindCoordinator) -> None:
        super().__init__(coordinator, "presence_status", "Presence status")

    @property
    def native_value(self) -> str:
        return self.coordinator.data.status

    @property
    def icon(self) -> str | None:
        return STATUS_ICONS.get(self.coordinator.data.status, "mdi:map-marker")

    @property
    def extra_state_attributes(self) -> dict:
        data = self.coordinator.data
        attributes = {"advisory": data.advisory}
        if data.sample is not None:
            attributes["sampled_at"] = data.sample.timestamp.isoformat()
            attributes["speed"] = data.sample.speed
            attributes["gps_accuracy"] = data.sample.accuracy
        if data.last_alarm is not None:
            attributes["last_alarm"] = data.last_alarm.message
            attributes["last_alarm_at"] = data.last_alarm.created_at.isoformat()
        return attributes


class DistanceFromHomeSensor(LeftBehindSensor):
    """Distance between the last applied sample and home."""

    _attr_device_class = SensorDeviceClass.DISTANCE
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = UnitOfLength.METERS
    _attr_icon = "mdi:home-export-outline"

    def __init__(self, coordinator: LeftBehindCoordinator) -> None:
        super().__init__(coordinator, "distance_from_home", "Distance from home")

    @property
    def native_value(self) -> int | None:
        distance = self.coordinator.data.distance_meters
        if distance is None:
            return None
        return round(distance)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add sensors for passed config_entry in HA."""
    coordinator: LeftBehindCoordinator = config_entry.runtime_data
    _LOGGER.debug("Adding presence sensors for %s", config_entry.title)
    async_add_entities([
        PresenceStatusSensor(coordinator),
        DistanceFromHomeSensor(coordinator),
    ])

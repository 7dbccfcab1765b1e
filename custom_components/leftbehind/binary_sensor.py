"""
Platform for the forgotten-items alarm.
This module sets up the binary sensor that is on while essential items are
left at home and the user is away.
"""
from __future__ import annotations

from homeassistant.components.binary_sensor import BinarySensorEntity, BinarySensorDeviceClass
from homeassistant.core import HomeAssistant
from homeassistant import config_entries
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import LeftBehindCoordinator
from .models import Danger
import logging

_LOGGER = logging.getLogger(__name__)


class ForgottenItemsSensor(CoordinatorEntity[LeftBehindCoordinator], BinarySensorEntity):
    """
    Representation of the forgotten-items alarm.
    Reads the verdict from the coordinator snapshot.
    """

    _attr_device_class = BinarySensorDeviceClass.PROBLEM

    def __init__(self, coordinator: LeftBehindCoordinator) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        guid = coordinator.entry_data["guid"]
        self._attr_unique_id = f"leftbehind_{guid}_forgotten_items"
        self._attr_name = "Forgotten items"

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return self.coordinator.get_session_device_info()

    @property
    def is_on(self) -> bool:
        """Return True while the verdict is danger."""
        return isinstance(self.coordinator.data.verdict, Danger)

    @property
    def icon(self) -> str | None:
        if self.is_on:
            return "mdi:bag-personal-off"
        return "mdi:bag-personal"

    @property
    def extra_state_attributes(self) -> dict:
        verdict = self.coordinator.data.verdict
        if not isinstance(verdict, Danger):
            return {"forgotten_ids": [], "forgotten_names": []}
        ids = sorted(verdict.forgotten_tracker_ids)
        names = []
        for tracker_id in ids:
            tracker = self.coordinator.data.get_tracker(tracker_id)
            names.append(tracker.name if tracker is not None else tracker_id)
        return {"forgotten_ids": ids, "forgotten_names": names}


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add the alarm binary sensor for passed config_entry in HA."""
    coordinator: LeftBehindCoordinator = config_entry.runtime_data
    _LOGGER.debug("Adding forgotten-items sensor for %s", config_entry.title)
    async_add_entities([ForgottenItemsSensor(coordinator)])

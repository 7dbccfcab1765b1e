"""
Platform for tracked items.
One GPS tracker entity per item, positioned at its last reported location.
"""
from __future__ import annotations

from homeassistant.components.device_tracker import SourceType
from homeassistant.components.device_tracker.config_entry import TrackerEntity
from homeassistant.core import HomeAssistant, callback
from homeassistant import config_entries
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import LeftBehindCoordinator
from .models import Tracker
import logging

_LOGGER = logging.getLogger(__name__)


class ItemTrackerEntity(CoordinatorEntity[LeftBehindCoordinator], TrackerEntity):
    """
    Representation of a tracked item.
    Takes the data from the coordinator's tracker snapshot.
    """

    def __init__(self, coordinator: LeftBehindCoordinator, tracker_id: str) -> None:
        """Initialize the tracker."""
        super().__init__(coordinator)
        self._tracker_id = tracker_id
        tracker = coordinator.data.get_tracker(tracker_id)
        guid = coordinator.entry_data["guid"]
        self._attr_unique_id = f"leftbehind_{guid}_{tracker_id}_item"
        self._attr_name = tracker.name if tracker is not None else f"Item {tracker_id}"

    @property
    def _tracker(self) -> Tracker | None:
        return self.coordinator.data.get_tracker(self._tracker_id)

    @property
    def available(self) -> bool:
        return super().available and self._tracker is not None

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return self.coordinator.get_device_info(self._tracker_id)

    @property
    def latitude(self) -> float | None:
        """Return latitude value of the item."""
        tracker = self._tracker
        return tracker.last_position.latitude if tracker is not None else None

    @property
    def longitude(self) -> float | None:
        """Return longitude value of the item."""
        tracker = self._tracker
        return tracker.last_position.longitude if tracker is not None else None

    @property
    def battery_level(self) -> int | None:
        tracker = self._tracker
        return tracker.battery_level if tracker is not None else None

    @property
    def source_type(self) -> SourceType:
        """Return the source type of the item."""
        return SourceType.GPS

    @property
    def icon(self) -> str | None:
        tracker = self._tracker
        if tracker is not None and tracker.is_essential:
            return "mdi:key-variant"
        return "mdi:tag"

    @property
    def extra_state_attributes(self) -> dict:
        tracker = self._tracker
        if tracker is None:
            return {}
        return {"is_essential": tracker.is_essential, "is_at_home": tracker.is_at_home}


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add item trackers for passed config_entry in HA; new items are added as they appear."""
    coordinator: LeftBehindCoordinator = config_entry.runtime_data
    known_ids: set[str] = set()

    @callback
    def _add_new_trackers() -> None:
        new_entities = []
        for tracker in coordinator.data.trackers:
            if tracker.id not in known_ids:
                known_ids.add(tracker.id)
                new_entities.append(ItemTrackerEntity(coordinator, tracker.id))
        if new_entities:
            _LOGGER.debug("Adding %s item trackers", len(new_entities))
            async_add_entities(new_entities)

    _add_new_trackers()
    config_entry.async_on_unload(coordinator.async_add_listener(_add_new_trackers))

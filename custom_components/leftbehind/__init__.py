import logging

import voluptuous as vol

from homeassistant import config_entries, core
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import ConfigEntryNotReady, HomeAssistantError
import homeassistant.helpers.config_validation as cv

from .config_flow import _validate_credentials
from .const import (
    ATTR_ALARM_ID,
    ATTR_SEVERITY,
    DOMAIN,
    SERVICE_DISMISS_ALARM,
    SERVICE_GET_ALARM_HISTORY,
    SERVICE_REFRESH_LOCATION,
)
from .coordinator import LeftBehindCoordinator
from .models import Severity

PLATFORMS: list[Platform] = [Platform.BINARY_SENSOR, Platform.SENSOR, Platform.DEVICE_TRACKER]
_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

DISMISS_ALARM_SCHEMA = vol.Schema({vol.Required(ATTR_ALARM_ID): cv.string})
GET_ALARM_HISTORY_SCHEMA = vol.Schema(
    {vol.Optional(ATTR_SEVERITY): vol.All(vol.In([s.value for s in Severity]), vol.Coerce(Severity))}
)


def _loaded_coordinators(hass: HomeAssistant) -> list[LeftBehindCoordinator]:
    return [
        entry.runtime_data
        for entry in hass.config_entries.async_entries(DOMAIN)
        if entry.state is config_entries.ConfigEntryState.LOADED
    ]


async def async_setup(hass: core.HomeAssistant, config: dict) -> bool:
    """Set up the integration and register its services."""

    async def _handle_refresh_location(call: ServiceCall) -> None:
        for coordinator in _loaded_coordinators(hass):
            await coordinator.async_request_location()

    async def _handle_dismiss_alarm(call: ServiceCall) -> None:
        alarm_id = call.data[ATTR_ALARM_ID]
        coordinators = _loaded_coordinators(hass)
        if not coordinators:
            raise HomeAssistantError("No Left Behind account is loaded")
        for coordinator in coordinators:
            await coordinator.async_dismiss_alarm(alarm_id)

    async def _handle_get_alarm_history(call: ServiceCall) -> ServiceResponse:
        coordinators = _loaded_coordinators(hass)
        if not coordinators:
            raise HomeAssistantError("No Left Behind account is loaded")
        severity = call.data.get(ATTR_SEVERITY)
        alarms = []
        for coordinator in coordinators:
            alarms.extend(await coordinator.async_get_alarm_history(severity))
        return {"alarms": alarms}

    hass.services.async_register(DOMAIN, SERVICE_REFRESH_LOCATION, _handle_refresh_location)
    hass.services.async_register(
        DOMAIN, SERVICE_DISMISS_ALARM, _handle_dismiss_alarm, schema=DISMISS_ALARM_SCHEMA
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_GET_ALARM_HISTORY,
        _handle_get_alarm_history,
        schema=GET_ALARM_HISTORY_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    return True


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up one user session from a ConfigEntry."""
    error = await _validate_credentials(entry.data)
    if error == "cannot_connect":
        raise ConfigEntryNotReady("Cannot reach the Left Behind store")
    if error == "invalid_auth":
        raise ConfigEntryNotReady("The Left Behind store rejected the API key credentials")

    coordinator = LeftBehindCoordinator(hass, dict(entry.data), config_entry=entry)
    await coordinator.async_config_entry_first_refresh()
    entry.runtime_data = coordinator

    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    await coordinator.async_start()

    return True


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update."""
    # Reload the integration when the options change.
    await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry and stop its location watch."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        await entry.runtime_data.async_shutdown()
    return unloaded

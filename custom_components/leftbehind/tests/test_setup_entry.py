"""
Unit tests for __init__.py: async_setup_entry, async_unload_entry and the
integration services.

Coverage:
- cannot_connect / invalid_auth → ConfigEntryNotReady before the coordinator is created
- valid credentials → coordinator refreshed, stored in runtime_data and started
- unload shuts the coordinator down only when the platforms unloaded
- refresh_location / dismiss_alarm / get_alarm_history reach every loaded coordinator
"""

from __future__ import annotations

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import voluptuous as vol

from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import SupportsResponse
from homeassistant.exceptions import ConfigEntryNotReady, HomeAssistantError

from custom_components.leftbehind.models import Severity

from .test_common import make_entry_data

VALIDATE_PATH = "custom_components.leftbehind._validate_credentials"
COORDINATOR_PATH = "custom_components.leftbehind.LeftBehindCoordinator"


def _make_mock_entry(state=ConfigEntryState.LOADED) -> MagicMock:
    """Return a minimal mock ConfigEntry."""
    entry = MagicMock()
    entry.data = make_entry_data()
    entry.state = state
    entry.async_on_unload = MagicMock()
    entry.add_update_listener = MagicMock(return_value=MagicMock())
    return entry


def _make_mock_coordinator() -> MagicMock:
    coordinator = MagicMock()
    coordinator.async_config_entry_first_refresh = AsyncMock()
    coordinator.async_start = AsyncMock()
    coordinator.async_shutdown = AsyncMock()
    coordinator.async_request_location = AsyncMock()
    coordinator.async_dismiss_alarm = AsyncMock()
    coordinator.async_get_alarm_history = AsyncMock(return_value=[])
    return coordinator


class TestAsyncSetupEntry(unittest.IsolatedAsyncioTestCase):

    async def test_cannot_connect_raises_config_entry_not_ready(self):
        from custom_components.leftbehind import async_setup_entry

        with patch(VALIDATE_PATH, new=AsyncMock(return_value="cannot_connect")), \
             patch(COORDINATOR_PATH) as MockCoord:
            with self.assertRaises(ConfigEntryNotReady) as ctx:
                await async_setup_entry(MagicMock(), _make_mock_entry())

        self.assertIn("store", str(ctx.exception))
        MockCoord.assert_not_called()

    async def test_invalid_auth_raises_config_entry_not_ready(self):
        from custom_components.leftbehind import async_setup_entry

        with patch(VALIDATE_PATH, new=AsyncMock(return_value="invalid_auth")), \
             patch(COORDINATOR_PATH) as MockCoord:
            with self.assertRaises(ConfigEntryNotReady) as ctx:
                await async_setup_entry(MagicMock(), _make_mock_entry())

        self.assertIn("credentials", str(ctx.exception))
        MockCoord.assert_not_called()

    async def test_valid_credentials_completes_setup(self):
        from custom_components.leftbehind import PLATFORMS, async_setup_entry

        hass = MagicMock()
        hass.config_entries.async_forward_entry_setups = AsyncMock()
        entry = _make_mock_entry()
        coordinator = _make_mock_coordinator()

        with patch(VALIDATE_PATH, new=AsyncMock(return_value=None)), \
             patch(COORDINATOR_PATH, return_value=coordinator) as MockCoord:
            result = await async_setup_entry(hass, entry)

        self.assertTrue(result)
        self.assertIs(entry.runtime_data, coordinator)
        self.assertIs(MockCoord.call_args.kwargs["config_entry"], entry)
        coordinator.async_config_entry_first_refresh.assert_awaited_once()
        hass.config_entries.async_forward_entry_setups.assert_awaited_once_with(entry, PLATFORMS)
        coordinator.async_start.assert_awaited_once()

    async def test_first_refresh_failure_propagates(self):
        from custom_components.leftbehind import async_setup_entry

        coordinator = _make_mock_coordinator()
        coordinator.async_config_entry_first_refresh = AsyncMock(
            side_effect=ConfigEntryNotReady("refresh failed")
        )

        with patch(VALIDATE_PATH, new=AsyncMock(return_value=None)), \
             patch(COORDINATOR_PATH, return_value=coordinator):
            with self.assertRaises(ConfigEntryNotReady):
                await async_setup_entry(MagicMock(), _make_mock_entry())

        coordinator.async_start.assert_not_awaited()


class TestAsyncUnloadEntry(unittest.IsolatedAsyncioTestCase):

    async def test_unload_shuts_down_coordinator(self):
        from custom_components.leftbehind import async_unload_entry

        hass = MagicMock()
        hass.config_entries.async_unload_platforms = AsyncMock(return_value=True)
        entry = _make_mock_entry()
        entry.runtime_data = _make_mock_coordinator()

        self.assertTrue(await async_unload_entry(hass, entry))
        entry.runtime_data.async_shutdown.assert_awaited_once()

    async def test_failed_unload_keeps_coordinator(self):
        from custom_components.leftbehind import async_unload_entry

        hass = MagicMock()
        hass.config_entries.async_unload_platforms = AsyncMock(return_value=False)
        entry = _make_mock_entry()
        entry.runtime_data = _make_mock_coordinator()

        self.assertFalse(await async_unload_entry(hass, entry))
        entry.runtime_data.async_shutdown.assert_not_awaited()


class TestServices(unittest.IsolatedAsyncioTestCase):

    async def _setup(self, entries):
        from custom_components.leftbehind import async_setup

        hass = MagicMock()
        hass.config_entries.async_entries = MagicMock(return_value=entries)
        await async_setup(hass, {})
        handlers = {
            call.args[1]: call.args[2] for call in hass.services.async_register.call_args_list
        }
        return hass, handlers

    async def test_services_registered(self):
        _, handlers = await self._setup([])
        self.assertEqual(set(handlers), {"refresh_location", "dismiss_alarm", "get_alarm_history"})

    async def test_refresh_location_only_loaded_entries(self):
        loaded = _make_mock_entry()
        loaded.runtime_data = _make_mock_coordinator()
        pending = _make_mock_entry(state=ConfigEntryState.SETUP_RETRY)
        pending.runtime_data = _make_mock_coordinator()
        _, handlers = await self._setup([loaded, pending])

        await handlers["refresh_location"](MagicMock(data={}))

        loaded.runtime_data.async_request_location.assert_awaited_once()
        pending.runtime_data.async_request_location.assert_not_awaited()

    async def test_dismiss_alarm_forwards_id(self):
        entry = _make_mock_entry()
        entry.runtime_data = _make_mock_coordinator()
        _, handlers = await self._setup([entry])

        await handlers["dismiss_alarm"](MagicMock(data={"alarm_id": "a1"}))

        entry.runtime_data.async_dismiss_alarm.assert_awaited_once_with("a1")

    async def test_dismiss_alarm_without_entries_raises(self):
        _, handlers = await self._setup([])

        with self.assertRaises(HomeAssistantError):
            await handlers["dismiss_alarm"](MagicMock(data={"alarm_id": "a1"}))

    async def test_get_alarm_history_collects_rows_of_loaded_entries(self):
        first = _make_mock_entry()
        first.runtime_data = _make_mock_coordinator()
        first.runtime_data.async_get_alarm_history = AsyncMock(return_value=[{"id": "a1"}])
        second = _make_mock_entry()
        second.runtime_data = _make_mock_coordinator()
        second.runtime_data.async_get_alarm_history = AsyncMock(return_value=[{"id": "b1"}])
        _, handlers = await self._setup([first, second])

        response = await handlers["get_alarm_history"](MagicMock(data={"severity": Severity.DANGER}))

        self.assertEqual(response, {"alarms": [{"id": "a1"}, {"id": "b1"}]})
        first.runtime_data.async_get_alarm_history.assert_awaited_once_with(Severity.DANGER)

    async def test_get_alarm_history_only_returns_responses(self):
        hass, _ = await self._setup([])

        call = next(
            c for c in hass.services.async_register.call_args_list
            if c.args[1] == "get_alarm_history"
        )
        self.assertIs(call.kwargs["supports_response"], SupportsResponse.ONLY)

    def test_get_alarm_history_schema_coerces_severity(self):
        from custom_components.leftbehind import GET_ALARM_HISTORY_SCHEMA

        self.assertEqual(GET_ALARM_HISTORY_SCHEMA({"severity": "warning"}), {"severity": Severity.WARNING})
        self.assertEqual(GET_ALARM_HISTORY_SCHEMA({}), {})
        with self.assertRaises(vol.Invalid):
            GET_ALARM_HISTORY_SCHEMA({"severity": "critical"})

    async def test_get_alarm_history_without_entries_raises(self):
        _, handlers = await self._setup([])

        with self.assertRaises(HomeAssistantError):
            await handlers["get_alarm_history"](MagicMock(data={}))

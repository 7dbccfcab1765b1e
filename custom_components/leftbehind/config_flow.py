"""Config flow for the Left Behind integration."""
from __future__ import annotations
import logging
import uuid
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    CONF_API_KEY,
    CONF_ENTRY_NAME,
    CONF_HOME_LATITUDE,
    CONF_HOME_LONGITUDE,
    CONF_NOTIFY_TARGET,
    CONF_PERSON_ENTITY,
    CONF_STORE_URL,
    CONF_USER_ID,
    DOMAIN,
)
from .store import StoreClient

_LOGGER = logging.getLogger(__name__)


async def _validate_credentials(entry_data: Dict[str, Any]) -> Optional[str]:
    """Return None when the store accepts the credentials, otherwise an error key."""
    client = StoreClient(
        entry_data[CONF_STORE_URL], entry_data[CONF_API_KEY], entry_data[CONF_USER_ID]
    )
    return await client.async_check_connection()

# Field → error key reported when the field is left empty
REQUIRED_FIELDS: dict[str, str] = {
    CONF_ENTRY_NAME:    "entry_name_required",
    CONF_STORE_URL:     "store_url_required",
    CONF_API_KEY:       "api_key_required",
    CONF_USER_ID:       "user_id_required",
    CONF_PERSON_ENTITY: "person_entity_required",
}

ENTRY_FIELDS = (
    CONF_ENTRY_NAME,
    CONF_STORE_URL,
    CONF_API_KEY,
    CONF_USER_ID,
    CONF_PERSON_ENTITY,
    CONF_HOME_LATITUDE,
    CONF_HOME_LONGITUDE,
    CONF_NOTIFY_TARGET,
)


def build_schema(defaults: Dict[str, Any]) -> vol.Schema:
    """Schema shared by the user step and the options step."""
    return vol.Schema(
        {
            vol.Required(CONF_ENTRY_NAME, default=defaults.get(CONF_ENTRY_NAME, "My items")): cv.string,
            vol.Required(CONF_STORE_URL, default=defaults.get(CONF_STORE_URL, "")): cv.string,
            vol.Required(CONF_API_KEY, default=defaults.get(CONF_API_KEY, "")): cv.string,
            vol.Required(CONF_USER_ID, default=defaults.get(CONF_USER_ID, "")): cv.string,
            vol.Required(CONF_PERSON_ENTITY, default=defaults.get(CONF_PERSON_ENTITY, "")): cv.string,
            vol.Required(CONF_HOME_LATITUDE, default=defaults.get(CONF_HOME_LATITUDE, 0.0)): vol.Coerce(float),
            vol.Required(CONF_HOME_LONGITUDE, default=defaults.get(CONF_HOME_LONGITUDE, 0.0)): vol.Coerce(float),
            vol.Optional(CONF_NOTIFY_TARGET, default=defaults.get(CONF_NOTIFY_TARGET, "")): cv.string,
        }
    )


def validate_input(user_input: Dict[str, Any]) -> Dict[str, str]:
    """Return a form errors dict; empty when the input is usable."""
    errors: Dict[str, str] = {}
    for field, error in REQUIRED_FIELDS.items():
        if not user_input.get(field):
            errors["base"] = error
    try:
        lat = float(user_input.get(CONF_HOME_LATITUDE))
        lng = float(user_input.get(CONF_HOME_LONGITUDE))
    except (TypeError, ValueError):
        errors["base"] = "invalid_home"
    else:
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
            errors["base"] = "invalid_home"
    return errors


class LeftBehindConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            errors = validate_input(user_input)
            if not errors:
                error = await _validate_credentials(user_input)
                if error:
                    errors["base"] = error
            if not errors:
                self.data = {field: user_input.get(field) for field in ENTRY_FIELDS}
                # Create new guid for the entry
                self.data["guid"] = str(uuid.uuid4())
                return self.async_create_entry(title=f"{self.data[CONF_ENTRY_NAME]}", data=self.data)

        defaults = dict(user_input or {})
        if not user_input:
            defaults[CONF_HOME_LATITUDE] = self.hass.config.latitude
            defaults[CONF_HOME_LONGITUDE] = self.hass.config.longitude
        return self.async_show_form(step_id="user", data_schema=build_schema(defaults), errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handles options flow for the component."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}

        # Options override data so the form always shows the values in use
        defaults = {**self._entry.data, **self._entry.options}

        if user_input is not None:
            errors = validate_input(user_input)
            if not errors:
                error = await _validate_credentials(user_input)
                if error:
                    errors["base"] = error
            if not errors:
                new_data ={field: user_input.get(field) for field in ENTRY_FIELDS}
                new_data["guid"] = self._entry.data["guid"]

                # Rename the entry in the UI
                self.hass.config_entries.async_update_entry(
                    self._entry,
                    data=new_data,
                    title=new_data[CONF_ENTRY_NAME],
                )
                return self.async_create_entry(title=f"{new_data[CONF_ENTRY_NAME]}", data=new_data)
            defaults.update(user_input)

        return self.async_show_form(step_id="init", data_schema=build_schema(defaults), errors=errors)

"""
Notification gateway — delivers alarm messages to the user.

Best effort: failures are logged and never propagate to the caller.
"""
from __future__ import annotations

import logging

from homeassistant.components import persistent_notification
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError

from .const import ADVISORY_NOTIFICATION_ID, NOTIFICATION_TAG, PRIORITY_BY_SEVERITY
from .models import Severity

_LOGGER = logging.getLogger(__name__)

NOTIFY_DOMAIN = "notify"


class NotificationGateway:
    """Sends notifications through notify.<target> or a persistent notification."""

    def __init__(self, hass: HomeAssistant, target: str | None = None) -> None:
        self.hass = hass
        self.target = target or None

    def is_available(self) -> bool:
        """
        Return True when the configured delivery channel exists.

        Without a target the persistent notification panel is always available.
        """
        if self.target is None:
            return True
        return self.hass.services.has_service(NOTIFY_DOMAIN, self.target)

    async def async_send_alarm_notification(self, message: str, severity: Severity) -> None:
        """Send a titled alarm message; priority follows the severity."""
        title = "Forgotten items" if severity is Severity.DANGER else "Reminder"
        priority = PRIORITY_BY_SEVERITY[severity.value]

        try:
            if self.target is not None and self.hass.services.has_service(NOTIFY_DOMAIN, self.target):
                await self.hass.services.async_call(
                    NOTIFY_DOMAIN,
                    self.target,
                    {
                        "title": title,
                        "message": message,
                        "data": {"priority": priority, "tag": NOTIFICATION_TAG},
                    },
                    blocking=False,
                )
            else:
                if self.target is not None:
                    _LOGGER.warning(
                        "notify.%s is not available, using a persistent notification", self.target
                    )
                persistent_notification.async_create(
                    self.hass, message, title=title, notification_id=NOTIFICATION_TAG
                )
        except HomeAssistantError as exc:
            _LOGGER.warning("Failed to deliver alarm notification: %s", exc)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Unexpected error delivering alarm notification: %s", exc)

    def send_advisory(self, message: str) -> None:
        """Show a location advisory (e.g. permission or fix failures)."""
        try:
            persistent_notification.async_create(
                self.hass, message, title="Left Behind", notification_id=ADVISORY_NOTIFICATION_ID
            )
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to show location advisory: %s", exc)

    def clear_advisory(self) -> None:
        try:
            persistent_notification.async_dismiss(self.hass, ADVISORY_NOTIFICATION_ID)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.debug("Failed to dismiss location advisory: %s", exc)

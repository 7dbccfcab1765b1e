"""
Remote store client for trackers and alarm history.

Responsible for:
- Fetching the user's tracker rows
- Appending alarm records (history sink)
- Listing and dismissing alarm history for the user-facing service
- Checking reachability and credentials at setup time
"""
from __future__ import annotations

import asyncio
import logging

from .const import ALARM_HISTORY_TABLE, HISTORY_PAGE_SIZE, TRACKERS_TABLE
from .exceptions import ApiResponseError
from .models import AlarmRecord, Severity
from .requests import make_request, store_headers

_LOGGER = logging.getLogger(__name__)


class StoreClient:
    """PostgREST-style client scoped to a single user."""

    def __init__(self, url: str, api_key: str, user_id: str) -> None:
        self._base_url = url.rstrip("/") + "/rest/v1/"
        self._headers = store_headers(api_key)
        self.user_id = user_id

    def _url(self, table: str) -> str:
        return self._base_url + table

    async def async_fetch_trackers(self) -> list[dict]:
        """
        Return raw tracker rows for the user.

        Corresponding request:
        GET /rest/v1/trackers?user_id=eq.<user_id>&select=*
        """
        params = {"user_id": f"eq.{self.user_id}", "select": "*"}
        rows = await make_request("GET", self._url(TRACKERS_TABLE), self._headers, params=params)
        if not isinstance(rows, list):
            _LOGGER.error("Unexpected response format in tracker data: %s", rows)
            return []
        return rows

    async def async_append_alarm(self, record: AlarmRecord) -> None:
        """
        Append one alarm record to the history table.

        Corresponding request:
        POST /rest/v1/alarm_history  {user_id, type, message, severity, ...}
        """
        headers = dict(self._headers, Prefer="return=minimal")
        await make_request(
            "POST",
            self._url(ALARM_HISTORY_TABLE),
            headers,
            payload=record.as_row(self.user_id),
        )
        _LOGGER.debug("Alarm %s appended to history", record.id)

    async def async_fetch_alarm_history(
        self, severity: Severity | None = None, limit: int = HISTORY_PAGE_SIZE
    ) -> list[dict]:
        """Return the newest alarm history rows, optionally filtered by severity."""
        params = {
            "user_id": f"eq.{self.user_id}",
            "select": "*",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if severity is not None:
            params["severity"] = f"eq.{severity.value}"
        rows = await make_request("GET", self._url(ALARM_HISTORY_TABLE), self._headers, params=params)
        return rows if isinstance(rows, list) else []

    async def async_dismiss_alarm(self, alarm_id: str) -> None:
        """
        Mark an alarm as dismissed.

        Corresponding request:
        PATCH /rest/v1/alarm_history?id=eq.<alarm_id>  {"was_dismissed": true}
        """
        params = {"id": f"eq.{alarm_id}", "user_id": f"eq.{self.user_id}"}
        await make_request(
            "PATCH",
            self._url(ALARM_HISTORY_TABLE),
            self._headers,
            payload={"was_dismissed": True},
            params=params,
        )

    async def async_check_connection(self) -> str | None:
        """
        Probe the store with a one-row tracker query.

        Returns None on success, "invalid_auth" when the key is rejected and
        "cannot_connect" for any other failure.
        """
        params = {"user_id": f"eq.{self.user_id}", "select": "id", "limit": "1"}
        try:
            await make_request(
                "GET", self._url(TRACKERS_TABLE), self._headers, params=params, max_attempts=1
            )
        except ApiResponseError as exc:
            if exc.status in (401, 403):
                return "invalid_auth"
            _LOGGER.warning("Store rejected connection check: %s", exc)
            return "cannot_connect"
        except (asyncio.TimeoutError, TimeoutError):
            _LOGGER.warning("Timeout while checking store connection")
            return "cannot_connect"
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Error while checking store connection: %s", exc)
            return "cannot_connect"
        return None

"""
Unit tests for the low-level request helpers: response handling and
retry on timeout.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from custom_components.leftbehind.exceptions import ApiResponseError
from custom_components.leftbehind.requests import _process_response, make_request, store_headers

SESSION_PATH = "custom_components.leftbehind.requests.aiohttp.ClientSession"


def _make_response(status=200, content_type="application/json", json_data=None, text=""):
    response = AsyncMock()
    response.status = status
    response.headers = {"Content-Type": content_type}
    response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=False)
    return response


def _make_session(request):
    session = MagicMock()
    session.request = request
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return session


class TestProcessResponse(unittest.IsolatedAsyncioTestCase):

    async def test_json_body(self):
        response = _make_response(json_data=[{"id": "T1"}])
        self.assertEqual(await _process_response(response, "url"), [{"id": "T1"}])

    async def test_no_content(self):
        self.assertIsNone(await _process_response(_make_response(status=204), "url"))

    async def test_empty_created_body(self):
        response = _make_response(status=201, content_type="", text="")
        self.assertIsNone(await _process_response(response, "url"))

    async def test_non_json_success_raises(self):
        response = _make_response(content_type="text/html", text="<html>")
        with self.assertRaises(ValueError):
            await _process_response(response, "url")

    async def test_json_error(self):
        response = _make_response(status=401, json_data={"message": "Invalid API key"})
        with self.assertRaises(ApiResponseError) as ctx:
            await _process_response(response, "url")

        self.assertEqual(ctx.exception.status, 401)
        self.assertEqual(ctx.exception.error_json["message"], "Invalid API key")

    async def test_text_error(self):
        response = _make_response(status=502, content_type="text/plain", text="Bad gateway")
        with self.assertRaises(ApiResponseError) as ctx:
            await _process_response(response, "url")

        self.assertEqual(ctx.exception.status, 502)
        self.assertEqual(ctx.exception.error_json, {"message": "Bad gateway"})


class TestMakeRequest(unittest.IsolatedAsyncioTestCase):

    async def test_returns_parsed_json(self):
        response = _make_response(json_data=[1, 2])
        session = _make_session(MagicMock(return_value=response))

        with patch(SESSION_PATH, return_value=session):
            result = await make_request("get", "https://x/rest/v1/trackers", {}, params={"a": "b"})

        self.assertEqual(result, [1, 2])
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("GET", "https://x/rest/v1/trackers"))
        self.assertEqual(kwargs["params"], {"a": "b"})

    async def test_retries_after_timeout(self):
        response = _make_response(json_data=[])
        session = _make_session(MagicMock(side_effect=[asyncio.TimeoutError(), response]))

        with patch(SESSION_PATH, return_value=session):
            result = await make_request("GET", "https://x", {})

        self.assertEqual(result, [])
        self.assertEqual(session.request.call_count, 2)

    async def test_raises_after_last_attempt(self):
        session = _make_session(MagicMock(side_effect=asyncio.TimeoutError()))

        with patch(SESSION_PATH, return_value=session):
            with self.assertRaises(asyncio.TimeoutError):
                await make_request("GET", "https://x", {}, max_attempts=2)

        self.assertEqual(session.request.call_count, 2)

    async def test_unsupported_method(self):
        with self.assertRaises(ValueError):
            await make_request("DELETE", "https://x", {})


class TestStoreHeaders(unittest.TestCase):

    def test_key_sent_as_apikey_and_bearer(self):
        headers = store_headers("k")
        self.assertEqual(headers["apikey"], "k")
        self.assertEqual(headers["Authorization"], "Bearer k")

"""
Shared fixtures for unit tests.

``fake_session`` stands in for an aiohttp ``ClientSession`` so the real
request/response handling of the adapters runs without network access.
"""

import json
from contextlib import asynccontextmanager

import pytest


class FakeResponse:
    """Minimal aiohttp response: status, headers and a JSON body."""

    def __init__(self, status=200, body=None, text=None, headers=None):
        self.status = status
        self.headers = headers or {}
        self._body = body
        self._text = text

    async def json(self, content_type="application/json"):
        if self._text is not None:
            return json.loads(self._text)
        return self._body


class FakeSession:
    """Replays one response (or raises one error) for every request."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(body={})
        self.error = error
        self.closed = False
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self._respond()

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    @asynccontextmanager
    async def _respond(self):
        if self.error is not None:
            raise self.error
        yield self.response

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    """Factory: ``fake_session(status=..., body=..., text=..., headers=..., error=...)``."""
    def make(status=200, body=None, text=None, headers=None, error=None):
        return FakeSession(FakeResponse(status, body, text, headers), error)
    return make

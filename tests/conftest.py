"""
Pytest configuration and shared fixtures.

Test settings are pinned through environment variables before any relay
module is imported, then the settings cache is cleared so they take effect.
"""

import os

import pytest

os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("OTP_TTL_SECONDS", "300")
os.environ.setdefault("MAX_ATTACHMENT_BYTES", str(5 * 1024 * 1024))

from relay.config import get_settings
get_settings.cache_clear()


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSocket:
    """Collects outbound frames instead of writing to a network connection."""

    def __init__(self, fail: bool = False):
        self.frames = []
        self.accepted = False
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection reset")
        self.frames.append(data)

    def events(self):
        return [f["event"] for f in self.frames]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_socket():
    """Factory for fake channel sockets."""
    return FakeSocket

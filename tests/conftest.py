"""Shared fixtures for FFMS SDK tests."""

import pytest
import respx

from ffms import FFMSConfig, ReconnectPolicy

BASE_URL = "https://ffms.example.com/api"
VALIDATE_URL = f"{BASE_URL}/validate"
FLAGS_URL = f"{BASE_URL}/projects/project-1/feature-flags"


class FakeChannel:
    """Stands in for ChannelAdapter and lets tests drive its callbacks."""

    def __init__(self, url, api_key, on_open=None, on_message=None, on_close=None, on_error=None):
        self.url = url
        self.api_key = api_key
        self.on_open = on_open
        self.on_message = on_message
        self.on_close = on_close
        self.on_error = on_error
        self.started = False
        self.closed = False

    def start(self):
        self.started = True
        return self

    def close(self):
        # A real adapter reports closure after close() as well
        if not self.closed:
            self.closed = True
            self.on_close()

    def open(self):
        self.on_open()

    def receive(self, payload):
        self.on_message(payload)

    def drop(self):
        self.closed = True
        self.on_close()

    def fail(self, error):
        self.on_error(error)


@pytest.fixture
def mock_api():
    """Mock API responses."""
    with respx.mock:
        yield respx


@pytest.fixture
def config():
    """Create test configuration."""
    return FFMSConfig(
        base_url=BASE_URL,
        api_key="test-api-key",
        project_id="project-1",
        toggle_id="toggle-1",
        reconnect_policy=ReconnectPolicy(delay_ms=10),
    )


@pytest.fixture
def channels():
    """Every FakeChannel built by the client, in order."""
    return []


@pytest.fixture
def channel_factory(channels):
    def factory(url, api_key, **callbacks):
        channel = FakeChannel(url, api_key, **callbacks)
        channels.append(channel)
        return channel

    return factory

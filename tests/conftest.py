"""Shared pytest fixtures and configuration."""

import os
import pytest
import httpx
from unittest.mock import Mock
from freezegun import freeze_time

from slack_relay.services.dedup_cache import InMemoryCache
from slack_relay.services.event_dispatcher import build_dispatcher
from slack_relay.services.workflow_forwarder import WorkflowForwarder
from slack_relay.utils.settings import RelaySettings
from tests.utils.helpers import DIFY_API_KEY, SIGNING_SECRET, VERIFICATION_TOKEN

# Keep test logs readable and deterministic
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_MASK_SENSITIVE", "true")


@pytest.fixture
def settings():
    """Fully configured relay settings."""
    return RelaySettings(
        dify_api_key=DIFY_API_KEY,
        slack_signing_secret=SIGNING_SECRET,
        slack_verification_token=VERIFICATION_TOKEN,
    )


@pytest.fixture
def memory_cache():
    return InMemoryCache()


@pytest.fixture
def mock_forwarder():
    """Forwarder double that records calls."""
    return Mock(spec=WorkflowForwarder)


@pytest.fixture
def dispatcher(settings, memory_cache, mock_forwarder):
    """Dispatcher with an in-memory cache and a recording forwarder, forwarding inline."""
    dispatcher = build_dispatcher(settings, cache=memory_cache)
    dispatcher.forwarder = mock_forwarder
    return dispatcher


@pytest.fixture
def dify_requests():
    """Requests captured by the mock Dify transport."""
    return []


@pytest.fixture
def dify_transport(dify_requests):
    """httpx transport standing in for the Dify API."""
    def handle(request: httpx.Request) -> httpx.Response:
        dify_requests.append(request)
        return httpx.Response(200, text="data: {\"event\": \"workflow_started\"}\n\n")

    return httpx.MockTransport(handle)


@pytest.fixture
def sample_slack_event():
    """Sample Slack event payload."""
    return {
        "type": "event_callback",
        "token": VERIFICATION_TOKEN,
        "event_id": "Ev123456",
        "event": {
            "type": "message",
            "channel": "C123456",
            "user": "U123456",
            "text": "Please summarize yesterday's incident",
            "ts": "1234567890.123456"
        },
        "team_id": "T123456"
    }


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time

"""Test helper functions."""

import json
import hmac
import hashlib
import time
from typing import Dict, Any, Optional

from slack_relay.models.slack_event import InboundEnvelope

SIGNING_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
VERIFICATION_TOKEN = "Jhj5dZrVaK7ZwHHjRyZWjbDl"
DIFY_API_KEY = "app-test-dify-key"


def generate_slack_signature(secret: str, timestamp: str, body: str) -> str:
    """Generate a valid Slack signature for testing."""
    sig_basestring = f"v0:{timestamp}:{body}"
    signature = hmac.new(
        secret.encode('utf-8'),
        sig_basestring.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()
    return f"v0={signature}"


def create_slack_event(
    event_type: str = "message",
    text: str = "Test message",
    channel: Optional[str] = "C123456",
    user: str = "U123456",
    ts: Optional[str] = "1234567890.123456",
    event_id: Optional[str] = "Ev123456",
    client_msg_id: Optional[str] = None,
    token: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a Slack event_callback payload for testing."""
    event = {"type": event_type, "user": user, "text": text}
    if channel is not None:
        event["channel"] = channel
    if ts is not None:
        event["ts"] = ts
    if client_msg_id is not None:
        event["client_msg_id"] = client_msg_id

    body = {"type": "event_callback", "team_id": "T123456", "event": event}
    if event_id is not None:
        body["event_id"] = event_id
    if token is not None:
        body["token"] = token
    return body


def create_envelope(body: Any, headers: Optional[Dict[str, str]] = None) -> InboundEnvelope:
    """Wrap a payload (dict or raw string) in an InboundEnvelope."""
    raw = json.dumps(body) if isinstance(body, dict) else body
    return InboundEnvelope(body=raw, headers=headers)


def create_signed_envelope(
    body: Any,
    secret: str,
    timestamp: Optional[str] = None,
    signature: Optional[str] = None,
) -> InboundEnvelope:
    """Create an envelope carrying Slack signature headers."""
    raw = json.dumps(body) if isinstance(body, dict) else body
    if timestamp is None:
        timestamp = str(int(time.time()))
    if signature is None:
        signature = generate_slack_signature(secret, timestamp, raw)
    return InboundEnvelope(
        body=raw,
        headers={
            "X-Slack-Request-Timestamp": timestamp,
            "X-Slack-Signature": signature,
            "Content-Type": "application/json",
        },
    )

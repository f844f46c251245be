"""Slack event deduplication over a short-lived cache."""

import threading
from typing import Optional

from slack_relay.models.slack_event import SlackPayload
from slack_relay.services.dedup_cache import EphemeralCache
from slack_relay.utils.errors import CacheError
from slack_relay.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

CACHE_KEY_PREFIX = "slack_event_"
SEEN_MARKER = "true"
DEFAULT_DEDUP_TTL_SECONDS = 60


def resolve_event_identity(payload: SlackPayload) -> Optional[str]:
    """
    Derive a stable identity for deduplication.

    Priority: event_id, event.client_msg_id, event.channel + "_" + event.ts,
    event.ts. Returns None when none of these are present.
    """
    if payload.event_id:
        return payload.event_id

    event = payload.event
    if event is None:
        return None

    client_msg_id = _identity_part(event.client_msg_id)
    ts = _identity_part(event.ts)
    if client_msg_id:
        return client_msg_id
    # channel is an object on channel_* events and cannot key the cache
    if isinstance(event.channel, str) and event.channel and ts:
        return f"{event.channel}_{ts}"
    if ts:
        return ts
    return None


def _identity_part(value) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


class Deduplicator:
    """Accepts each event identity at most once per TTL window."""

    def __init__(self, cache: EphemeralCache, ttl_seconds: int = DEFAULT_DEDUP_TTL_SECONDS):
        # TTL should cover Slack's retry cadence, later retries are treated as new
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()

    def is_duplicate(self, identity: Optional[str]) -> bool:
        """
        Check an identity and mark it seen when new.

        Returns True if the identity was already accepted within the TTL.
        """
        if not identity:
            logger.warning("Could not determine a unique event identifier; duplicate processing might occur")
            return False

        cache_key = f"{CACHE_KEY_PREFIX}{identity}"
        try:
            with self._lock:
                if self.cache.get(cache_key) is not None:
                    logger.info("Duplicate event detected", event_identity=identity)
                    return True
                self.cache.put(cache_key, SEEN_MARKER, self.ttl_seconds)
        except CacheError as e:
            # Prefer a possible double forward over dropping the event
            logger.error("Dedup cache unavailable, treating event as new", event_identity=identity, error=str(e))
            return False

        return False

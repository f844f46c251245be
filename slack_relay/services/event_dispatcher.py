"""Slack event pipeline: parse, handshake, authenticate, dedup, forward."""

import json
from concurrent.futures import Executor
from typing import Any, Callable, Optional

from pydantic import ValidationError

from slack_relay.models.slack_event import InboundEnvelope, RelayResponse, SlackEventBody, SlackPayload
from slack_relay.services.dedup_cache import EphemeralCache, InMemoryCache, SupabaseCache
from slack_relay.services.slack_dedup import Deduplicator, resolve_event_identity
from slack_relay.services.slack_verifier import Authenticator
from slack_relay.services.supabase_client import create_supabase_client
from slack_relay.services.workflow_forwarder import WorkflowForwarder
from slack_relay.utils.errors import MalformedRequestError
from slack_relay.utils.logging import get_structured_logger, mask_user_id, redact_mapping
from slack_relay.utils.settings import RelaySettings

logger = get_structured_logger(__name__)

OK = "OK"
ALREADY_PROCESSED = "OK - Already processed"
UNAUTHORIZED = "Unauthorized"
PROCESSING_ERROR = "Error processing request"


def parse_payload(raw_body: str) -> SlackPayload:
    """Parse a raw request body into a SlackPayload."""
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedRequestError(f"Body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedRequestError(f"Body must be a JSON object, got {type(data).__name__}")

    try:
        return SlackPayload.model_validate(data)
    except ValidationError as e:
        raise MalformedRequestError(f"Body does not match the Slack payload shape: {e.error_count()} error(s)") from e


class EventDispatcher:
    """Turns one inbound request into one synchronous response."""

    def __init__(
        self,
        settings: RelaySettings,
        authenticator: Authenticator,
        deduplicator: Deduplicator,
        forwarder: WorkflowForwarder,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings
        self.authenticator = authenticator
        self.deduplicator = deduplicator
        self.forwarder = forwarder
        self.executor = executor

    def handle(self, envelope: InboundEnvelope) -> RelayResponse:
        """Process a request. Never raises."""
        try:
            return self._handle(envelope)
        except MalformedRequestError as e:
            self._log_malformed(envelope, e)
            return RelayResponse(body=PROCESSING_ERROR)
        except Exception as e:
            logger.error("Error processing Slack request", error=str(e), exc_info=True)
            return RelayResponse(body=PROCESSING_ERROR)

    def _handle(self, envelope: InboundEnvelope) -> RelayResponse:
        payload = parse_payload(envelope.body)

        # Handshake skips authentication and dedup
        if payload.is_url_verification:
            logger.info("Answering Slack URL verification")
            return RelayResponse(body=payload.challenge or "")

        if not self.authenticator.authenticate(envelope, payload):
            return RelayResponse(body=UNAUTHORIZED)

        if payload.event is None:
            logger.info("Slack payload carries no event, nothing to forward", payload_type=payload.type)
            return RelayResponse(body=OK)

        identity = resolve_event_identity(payload)
        if self.deduplicator.is_duplicate(identity):
            return RelayResponse(body=ALREADY_PROCESSED)

        self._log_event(payload, identity)
        self._dispatch_forward(payload.event)
        return RelayResponse(body=OK)

    def _log_event(self, payload: SlackPayload, identity: Optional[str]) -> None:
        if self.settings.debug_mode:
            dumped = redact_mapping(payload.model_dump(exclude_none=True))
            logger.info("Received Slack event", payload=json.dumps(dumped, indent=2, ensure_ascii=False))
            return

        event = payload.event
        logger.info(
            "Received Slack event",
            event_type=event.type,
            channel_id=_object_id(event.channel),
            slack_user_id=mask_user_id(_object_id(event.user)),
            event_identity=identity
        )

    def _log_malformed(self, envelope: InboundEnvelope, error: MalformedRequestError) -> None:
        if self.settings.debug_mode:
            logger.error("Malformed Slack request", error=str(error), raw_body=envelope.body)
        else:
            logger.error("Malformed Slack request", error=str(error), body_length=len(envelope.body))

    def _dispatch_forward(self, event: SlackEventBody) -> None:
        # The response is already decided, forwarding cannot change it
        if self.executor is None:
            self._forward_safely(event)
            return
        try:
            self.executor.submit(self._forward_safely, event)
        except RuntimeError as e:
            logger.error("Could not schedule workflow forwarding", error=str(e))

    def _forward_safely(self, event: SlackEventBody) -> None:
        try:
            self.forwarder.forward(event)
        except Exception as e:
            logger.error("Workflow forwarder raised", error=str(e), exc_info=True)


def _object_id(value: Any) -> Optional[str]:
    """Return the ID of a plain or object-valued channel/user field."""
    if isinstance(value, dict):
        value = value.get("id")
    return value if isinstance(value, str) else None


def build_cache(settings: RelaySettings) -> EphemeralCache:
    """Create the dedup cache selected by DEDUP_BACKEND."""
    if settings.dedup_backend == "supabase":
        return SupabaseCache(create_supabase_client(settings))
    return InMemoryCache()


def build_dispatcher(
    settings: RelaySettings,
    cache: Optional[EphemeralCache] = None,
    executor: Optional[Executor] = None,
    clock: Optional[Callable[[], float]] = None,
) -> EventDispatcher:
    """Wire the pipeline from settings."""
    return EventDispatcher(
        settings=settings,
        authenticator=Authenticator.from_settings(settings, clock=clock),
        deduplicator=Deduplicator(cache if cache is not None else build_cache(settings), settings.dedup_ttl_seconds),
        forwarder=WorkflowForwarder(settings),
        executor=executor,
    )

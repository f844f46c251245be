"""Slack request authentication: signing secret first, legacy token second."""

import enum
import hmac
import hashlib
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

from slack_relay.models.slack_event import InboundEnvelope, SlackPayload
from slack_relay.utils.logging import get_structured_logger
from slack_relay.utils.settings import RelaySettings

logger = get_structured_logger(__name__)

TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_HEADER = "X-Slack-Signature"
DEFAULT_REPLAY_WINDOW_SECONDS = 300


class AuthOutcome(str, enum.Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"


def compute_slack_signature(secret: str, timestamp: str, body: str) -> str:
    """Return the `v0=` signature Slack would send for this body."""
    sig_basestring = f"v0:{timestamp}:{body}"
    digest = hmac.new(
        secret.encode('utf-8'),
        sig_basestring.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()
    return f"v0={digest}"


def verify_slack_signature(
    secret: str,
    timestamp: str,
    body: str,
    signature: str,
    now: Optional[float] = None,
    replay_window_seconds: int = DEFAULT_REPLAY_WINDOW_SECONDS,
) -> bool:
    """
    Verify Slack request signature using HMAC-SHA256.

    Rejects timestamps outside the replay window before touching the HMAC.
    """
    if not secret or not timestamp or not signature:
        return False

    # Slack sends bare ASCII digits, int() alone also accepts signs and padding
    if not (timestamp.isascii() and timestamp.isdigit()):
        logger.warning("Slack request timestamp is not an integer")
        return False
    ts = int(timestamp)

    current_time = int(time.time() if now is None else now)
    if abs(current_time - ts) > replay_window_seconds:
        logger.warning(
            "Slack request timestamp outside replay window",
            skew_seconds=current_time - ts,
            replay_window_seconds=replay_window_seconds
        )
        return False

    expected_signature = compute_slack_signature(secret, timestamp, body)
    return hmac.compare_digest(expected_signature.encode('utf-8'), signature.encode('utf-8'))


class AuthStrategy(ABC):
    """One way of proving a request came from Slack."""

    name = "base"

    @abstractmethod
    def check(self, envelope: InboundEnvelope, payload: SlackPayload) -> AuthOutcome:
        """Return this strategy's verdict on the request."""


class SignatureStrategy(AuthStrategy):
    """Signing-secret verification over the raw body."""

    name = "signature"

    def __init__(
        self,
        signing_secret: Optional[str],
        replay_window_seconds: int = DEFAULT_REPLAY_WINDOW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.signing_secret = signing_secret
        self.replay_window_seconds = replay_window_seconds
        self._clock = clock

    def _now(self) -> float:
        return self._clock() if self._clock is not None else time.time()

    def check(self, envelope: InboundEnvelope, payload: SlackPayload) -> AuthOutcome:
        if not self.signing_secret:
            logger.debug("Signature verification unavailable: SLACK_SIGNING_SECRET not set")
            return AuthOutcome.UNAVAILABLE

        if envelope.headers is None:
            logger.info("Signature verification unavailable: transport exposes no request headers")
            return AuthOutcome.UNAVAILABLE

        timestamp = envelope.get_header(TIMESTAMP_HEADER)
        signature = envelope.get_header(SIGNATURE_HEADER)
        if not timestamp or not signature:
            logger.info(
                "Signature verification unavailable: Slack headers missing",
                has_timestamp=bool(timestamp),
                has_signature=bool(signature)
            )
            return AuthOutcome.UNAVAILABLE

        if verify_slack_signature(
            self.signing_secret,
            timestamp,
            envelope.body,
            signature,
            now=self._now(),
            replay_window_seconds=self.replay_window_seconds,
        ):
            return AuthOutcome.ACCEPTED

        logger.warning("Slack signature mismatch", body_length=len(envelope.body))
        return AuthOutcome.REJECTED


class TokenStrategy(AuthStrategy):
    """Legacy verification token carried in the payload."""

    name = "token"

    def __init__(self, verification_token: Optional[str]):
        self.verification_token = verification_token

    def check(self, envelope: InboundEnvelope, payload: SlackPayload) -> AuthOutcome:
        if not self.verification_token:
            logger.debug("Token verification unavailable: SLACK_VERIFICATION_TOKEN not set")
            return AuthOutcome.UNAVAILABLE

        if payload.token and payload.token == self.verification_token:
            return AuthOutcome.ACCEPTED

        return AuthOutcome.REJECTED


class Authenticator:
    """Runs strategies in order and accepts on the first success."""

    def __init__(self, strategies: Sequence[AuthStrategy], skip_verification: bool = False):
        self.strategies = list(strategies)
        self.skip_verification = skip_verification

    @classmethod
    def from_settings(
        cls,
        settings: RelaySettings,
        clock: Optional[Callable[[], float]] = None,
    ) -> "Authenticator":
        return cls(
            strategies=[
                SignatureStrategy(
                    settings.slack_signing_secret,
                    replay_window_seconds=settings.replay_window_seconds,
                    clock=clock,
                ),
                TokenStrategy(settings.slack_verification_token),
            ],
            skip_verification=settings.skip_signature_verification,
        )

    def authenticate(self, envelope: InboundEnvelope, payload: SlackPayload) -> bool:
        """
        Verify a Slack request.

        Returns True if any strategy accepts or verification is bypassed.
        """
        if self.skip_verification:
            # Debug escape hatch, never enable in production
            logger.warning("Slack authentication bypassed (SKIP_SIGNATURE_VERIFICATION=true)")
            return True

        outcomes = {}
        for strategy in self.strategies:
            outcome = strategy.check(envelope, payload)
            outcomes[strategy.name] = outcome.value
            if outcome is AuthOutcome.ACCEPTED:
                logger.debug("Slack request authenticated", strategy=strategy.name)
                return True

        if all(value == AuthOutcome.UNAVAILABLE.value for value in outcomes.values()):
            logger.error(
                "No Slack authentication method is configured or usable; "
                "set SLACK_SIGNING_SECRET or SLACK_VERIFICATION_TOKEN",
                outcomes=outcomes
            )
        else:
            logger.warning("Slack authentication failed", outcomes=outcomes)
        return False

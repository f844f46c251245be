"""Relay settings loaded once from environment variables."""

import os
from typing import Literal, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field

from slack_relay.utils.errors import ConfigurationError

DEFAULT_DIFY_WORKFLOW_URL = "https://api.dify.ai/v1/workflows/run"
DEFAULT_DIFY_USER = "slack-dify-relay"


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _optional(value: Optional[str]) -> Optional[str]:
    # Strip to remove trailing newlines pasted into env vars
    value = (value or "").strip()
    return value or None


def _number(environ: Mapping[str, str], name: str, default: str, cast):
    raw = environ.get(name, default)
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


class RelaySettings(BaseModel):
    """Credentials and tuning values, read-only for the lifetime of the process."""
    model_config = ConfigDict(frozen=True)

    dify_api_key: Optional[str] = Field(None, description="Bearer key for the Dify API")
    dify_workflow_url: str = Field(DEFAULT_DIFY_WORKFLOW_URL, description="Workflow run endpoint")
    dify_user: str = Field(DEFAULT_DIFY_USER, description="Static user tag sent to Dify")
    slack_signing_secret: Optional[str] = Field(None, description="Enables signature verification")
    slack_verification_token: Optional[str] = Field(None, description="Enables legacy token verification")
    debug_mode: bool = False
    skip_signature_verification: bool = Field(False, description="UNSAFE: disables all authentication")
    dedup_ttl_seconds: int = 60
    replay_window_seconds: int = 300
    forward_timeout_seconds: float = 5.0
    dedup_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelaySettings":
        """Build settings from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ

        backend = (env.get("DEDUP_BACKEND") or "memory").strip().lower()
        if backend not in ("memory", "supabase"):
            raise ConfigurationError(f"DEDUP_BACKEND must be 'memory' or 'supabase', got {backend!r}")

        return cls(
            dify_api_key=_optional(env.get("DIFY_API_KEY")),
            dify_workflow_url=_optional(env.get("DIFY_WORKFLOW_URL")) or DEFAULT_DIFY_WORKFLOW_URL,
            dify_user=_optional(env.get("DIFY_USER")) or DEFAULT_DIFY_USER,
            slack_signing_secret=_optional(env.get("SLACK_SIGNING_SECRET")),
            slack_verification_token=_optional(env.get("SLACK_VERIFICATION_TOKEN")),
            debug_mode=_flag(env.get("DEBUG_MODE")),
            skip_signature_verification=_flag(env.get("SKIP_SIGNATURE_VERIFICATION")),
            dedup_ttl_seconds=_number(env, "DEDUP_TTL_SECONDS", "60", int),
            replay_window_seconds=_number(env, "SLACK_REPLAY_WINDOW_SECONDS", "300", int),
            forward_timeout_seconds=_number(env, "FORWARD_TIMEOUT_SECONDS", "5.0", float),
            dedup_backend=backend,
            supabase_url=_optional(env.get("SUPABASE_URL")),
            supabase_service_role_key=_optional(env.get("SUPABASE_SERVICE_ROLE_KEY")),
        )

"""Slack event models."""

from typing import Any, Optional, Mapping
from pydantic import BaseModel, ConfigDict, Field


class InboundEnvelope(BaseModel):
    """Raw inbound request as handed over by the transport."""
    model_config = ConfigDict(frozen=True)

    body: str = Field(default="", description="Raw request body")
    headers: Optional[Mapping[str, str]] = Field(None, description="Request headers, None when the transport hides them")
    query: Optional[Mapping[str, str]] = Field(None, description="Query string parameters")

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        if self.headers is None:
            return None
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class SlackEventBody(BaseModel):
    """Inner `event` object of an event_callback."""
    model_config = ConfigDict(extra="allow")

    # channel and user are objects on events such as channel_created or team_join
    type: Optional[str] = Field(None, description="Event type, e.g. message or app_mention")
    ts: Any = Field(None, description="Message timestamp")
    channel: Any = Field(None, description="Slack channel ID or channel object")
    user: Any = Field(None, description="Slack user ID or user object")
    text: Any = Field(None, description="Message text")
    client_msg_id: Any = Field(None, description="Client-generated message ID")


class SlackPayload(BaseModel):
    """Top-level Slack Events API payload."""
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = Field(None, description="url_verification, event_callback, ...")
    challenge: Optional[str] = Field(None, description="Handshake challenge")
    token: Optional[str] = Field(None, description="Legacy verification token")
    event_id: Optional[str] = Field(None, description="Globally unique event ID")
    event: Optional[SlackEventBody] = None

    @property
    def is_url_verification(self) -> bool:
        return self.type == "url_verification"


class RelayResponse(BaseModel):
    """Synchronous response returned to Slack."""
    model_config = ConfigDict(frozen=True)

    body: str
    content_type: str = "text/plain"
    status_code: int = 200

"""Dify workflow request models."""

from typing import Any, Literal
from pydantic import BaseModel, Field

from slack_relay.models.slack_event import SlackEventBody


class WorkflowInputs(BaseModel):
    """Inputs mapped from a Slack event into the workflow."""
    # Object-valued event fields (channel_created, team_join) pass through as-is
    slack_text: Any = Field(default="", description="Message text")
    channel_id: Any = Field(default="", description="Slack channel ID or channel object")
    timestamp: Any = Field(default="", description="Slack message ts")
    user_id: Any = Field(default="", description="Slack user ID or user object")
    event_type: str = Field(default="", description="Slack event type")

    @classmethod
    def from_event(cls, event: SlackEventBody) -> "WorkflowInputs":
        return cls(
            slack_text=event.text or "",
            channel_id=event.channel or "",
            timestamp=event.ts or "",
            user_id=event.user or "",
            event_type=event.type or "",
        )


class WorkflowRequest(BaseModel):
    """Body of POST /v1/workflows/run."""
    inputs: WorkflowInputs
    response_mode: Literal["streaming", "blocking"] = "streaming"
    user: str = Field(..., description="Static caller tag")

"""Best-effort forwarding of Slack events to the Dify workflow API."""

import json
from typing import Optional

import httpx

from slack_relay.models.slack_event import SlackEventBody
from slack_relay.models.workflow import WorkflowInputs, WorkflowRequest
from slack_relay.utils.errors import ForwardingError
from slack_relay.utils.logging import get_structured_logger, log_timing
from slack_relay.utils.settings import RelaySettings

logger = get_structured_logger(__name__)


class WorkflowForwarder:
    """Posts events to Dify; logs failures instead of raising them."""

    def __init__(
        self,
        settings: RelaySettings,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings
        self._transport = transport

    def build_request(self, event: SlackEventBody) -> WorkflowRequest:
        return WorkflowRequest(
            inputs=WorkflowInputs.from_event(event),
            response_mode="streaming",
            user=self.settings.dify_user,
        )

    def build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.dify_api_key}",
            "Content-Type": "application/json",
        }

    def forward(self, event: SlackEventBody) -> None:
        """Send one event downstream. Never raises."""
        if not self.settings.dify_api_key:
            logger.error(
                "DIFY_API_KEY is not configured; skipping workflow call. "
                "Set it in the deployment environment."
            )
            return

        try:
            with log_timing("dify_workflow_call", logger=logger, channel_id=event.channel):
                self._post(self.build_request(event))
            logger.info("Successfully initiated Dify workflow (streaming)")
        except ForwardingError as e:
            logger.error("Dify workflow call failed", status_code=e.status_code, error=str(e))
        except httpx.HTTPError as e:
            logger.error("Dify workflow call transport error", error_type=type(e).__name__, error=str(e))
        except Exception as e:
            logger.error("Unexpected error calling Dify workflow", error=str(e), exc_info=True)

    def _post(self, request: WorkflowRequest) -> int:
        body = request.model_dump()
        if self.settings.debug_mode:
            logger.debug(
                "Sending request to Dify",
                endpoint=self.settings.dify_workflow_url,
                payload=json.dumps(body, ensure_ascii=False)
            )

        # Streaming mode: the status line means the run was accepted, the event stream is not consumed
        with httpx.Client(transport=self._transport, timeout=self.settings.forward_timeout_seconds) as client:
            with client.stream(
                "POST",
                self.settings.dify_workflow_url,
                json=body,
                headers=self.build_headers(),
            ) as response:
                logger.info("Dify API response received", status_code=response.status_code)
                if response.status_code >= 400:
                    response.read()
                    raise ForwardingError(
                        f"Dify API returned {response.status_code}: {response.text[:500]}",
                        status_code=response.status_code,
                    )
                return response.status_code

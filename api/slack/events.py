"""Slack events webhook endpoint for Vercel."""

from http.server import BaseHTTPRequestHandler
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import parse_qsl, urlsplit
import json
import logging
import threading

# Setup basic logging first
logging.basicConfig(level=logging.INFO)
_logger = logging.getLogger(__name__)

# Built once per process, lazily, so import errors surface as a logged 200
_dispatcher = None
_dispatcher_lock = threading.Lock()
_forward_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="dify-forward")

PROCESSING_ERROR = "Error processing request"


def _get_dispatcher():
    """Lazy load the pipeline to avoid import-time failures."""
    global _dispatcher

    if _dispatcher is not None:
        return _dispatcher

    # Concurrent first requests must share one dispatcher and its cache
    with _dispatcher_lock:
        if _dispatcher is None:
            from slack_relay.services.event_dispatcher import build_dispatcher
            from slack_relay.utils.logging_config import LoggingConfig
            from slack_relay.utils.settings import RelaySettings

            settings = RelaySettings.from_env()
            LoggingConfig.setup_logging(debug_mode=settings.debug_mode)
            _dispatcher = build_dispatcher(settings, executor=_forward_executor)
            _logger.info("Slack relay pipeline initialized")

    return _dispatcher


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for Slack events."""

    def _send_text(self, body: str, status: int = 200, content_type: str = "text/plain"):
        payload = body.encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', f"{content_type}; charset=utf-8")
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def do_POST(self):
        """Handle POST request from Slack."""
        try:
            from slack_relay.models.slack_event import InboundEnvelope
            from slack_relay.utils.logging import correlation_context

            content_length = int(self.headers.get('Content-Length', 0) or 0)
            raw_body = self.rfile.read(content_length).decode('utf-8') if content_length > 0 else ""

            envelope = InboundEnvelope(
                body=raw_body,
                headers=dict(self.headers.items()) if self.headers is not None else None,
                query=dict(parse_qsl(urlsplit(self.path or "").query)),
            )

            with correlation_context():
                response = _get_dispatcher().handle(envelope)

            # Slack retries on anything but a fast 200, so every outcome is a 200
            self._send_text(response.body, response.status_code, response.content_type)

        except Exception as e:
            _logger.error(f"Error processing Slack event: {e}")
            self._send_text(PROCESSING_ERROR)

    def do_GET(self):
        """Handle GET request (health check)."""
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps({"status": "ok", "endpoint": "slack/events"}).encode('utf-8'))

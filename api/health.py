"""Health check endpoint reporting relay readiness (no secrets)."""

from http.server import BaseHTTPRequestHandler
import json


def readiness_report(settings) -> dict:
    """Summarize which parts of the pipeline are configured."""
    return {
        "status": "ok",
        "service": "slack-dify-relay",
        "forwarding_enabled": bool(settings.dify_api_key),
        "auth": {
            "signature": bool(settings.slack_signing_secret),
            "token": bool(settings.slack_verification_token),
            "bypassed": settings.skip_signature_verification,
        },
        "dedup_backend": settings.dedup_backend,
        "dedup_ttl_seconds": settings.dedup_ttl_seconds,
    }


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        """Handle GET request."""
        from slack_relay.utils.errors import ConfigurationError
        from slack_relay.utils.settings import RelaySettings

        try:
            report = readiness_report(RelaySettings.from_env())
            status = 200
        except ConfigurationError as e:
            report = {"status": "misconfigured", "service": "slack-dify-relay", "error": str(e)}
            status = 500

        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(report).encode('utf-8'))

    def do_POST(self):
        """Handle POST request (same as GET for health check)."""
        self.do_GET()

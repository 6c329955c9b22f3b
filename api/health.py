"""Health check endpoint: liveness plus the configured primary backend."""

from http.server import BaseHTTPRequestHandler
import json

from pydantic import ValidationError

from src.utils.config import ServiceConfig
from src.utils.errors import ConfigurationError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

SERVICE_NAME = "propertyhub-backend"


def health_report() -> tuple[int, dict]:
    """
    Build the health response.

    Returns:
        HTTP status and body. A configuration the service could not start
        with is reported as 503 so deploys with bad env vars fail their check.
    """
    try:
        config = ServiceConfig.from_env()
    except (ConfigurationError, ValidationError) as e:
        logger.error("Health check found invalid configuration", error=str(e))
        return 503, {"status": "misconfigured", "service": SERVICE_NAME, "error": str(e)}
    return 200, {"status": "ok", "service": SERVICE_NAME, "backend": config.backend}


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        status, body = health_report()
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Cache-Control', 'no-store')
        self.end_headers()
        self.wfile.write(json.dumps(body).encode('utf-8'))

    def do_POST(self):
        """Handle POST request (same as GET for health check)."""
        self.do_GET()

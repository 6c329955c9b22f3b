"""Property search endpoint for Vercel."""

from http.server import BaseHTTPRequestHandler
from urllib.parse import parse_qs, urlparse
import asyncio
import json

from pydantic import ValidationError

from src.models.search import PropertySearchFilters
from src.services.real_estate_service import RealEstateService, create_real_estate_service
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)

# Built on first request and reused while the function stays warm
_service: RealEstateService | None = None


async def _get_service() -> RealEstateService:
    global _service
    if _service is None:
        _service = await create_real_estate_service()
    return _service


def _event_loop() -> asyncio.AbstractEventLoop:
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = None
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop


def parse_filters(path: str) -> PropertySearchFilters:
    """
    Build search filters from a request path's query string.

    Keys may be camelCase or snake_case; repeated keys are comma-joined.
    """
    query = parse_qs(urlparse(path).query, keep_blank_values=False)
    params = {key: ",".join(values) for key, values in query.items()}
    return PropertySearchFilters.model_validate(params)


async def search(path: str) -> dict:
    filters = parse_filters(path)
    service = await _get_service()
    result = await service.search_properties(filters)
    return {
        "properties": [prop.to_api() for prop in result.properties],
        "total": result.total,
        "page": result.page,
        "limit": result.limit,
        "totalPages": result.total_pages,
        "backend": service.backend_name,
    }


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for property search."""

    def _send_json(self, status: int, body: dict) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(body).encode('utf-8'))

    def do_GET(self):
        """Handle GET /api/properties/search?..."""
        correlation_id = self.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER) if self.headers else None
        with correlation_context(correlation_id):
            try:
                body = _event_loop().run_until_complete(search(self.path))
                self._send_json(200, body)
                logger.info("Property search served", total=body["total"], backend=body["backend"])

            except ValidationError as e:
                logger.warning("Invalid search parameters", errors=e.error_count())
                self._send_json(400, {
                    "error": "invalid search parameters",
                    "details": [
                        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                        for error in e.errors()
                    ],
                })
            except Exception as e:
                logger.exception("Error serving property search", error=str(e))
                self._send_json(500, {"error": "internal error"})

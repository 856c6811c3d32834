"""Shared handler for the field queue progress endpoints."""

from http.server import BaseHTTPRequestHandler
import json

from src.utils.logging import correlation_context, get_structured_logger

logger = get_structured_logger(__name__)


def make_progress_handler(queue_name: str) -> type[BaseHTTPRequestHandler]:
    """
    Build a Vercel handler class for one queue.

    GET returns the progress snapshot, POST clears stuck items.
    """

    class handler(BaseHTTPRequestHandler):
        """Progress handler for Vercel serverless function."""

        def _send_json(self, status: int, payload: dict):
            self.send_response(status)
            self.send_header('Content-Type', 'application/json')
            self.send_header('Cache-Control', 'no-store')
            self.end_headers()
            self.wfile.write(json.dumps(payload).encode('utf-8'))

        def do_GET(self):
            """Return current progress for the queue."""
            with correlation_context(prefix="progress") as correlation_id:
                try:
                    from src.services.field_queue import get_field_queue_services

                    snapshot = get_field_queue_services().tracker.get_progress(queue_name)
                    body = snapshot.to_response()
                    if snapshot.last_error:
                        body["last_error"] = snapshot.last_error
                    self._send_json(200, body)
                except Exception as e:
                    logger.error(
                        "Failed to read queue progress",
                        correlation_id=correlation_id,
                        queue_name=queue_name,
                        error=str(e),
                        exc_info=True
                    )
                    self._send_json(500, {"error": str(e)})

        def do_POST(self):
            """Clear stuck items from the queue."""
            with correlation_context(prefix="progress") as correlation_id:
                try:
                    from src.services.field_queue import get_field_queue_services

                    cleared = get_field_queue_services().tracker.clean_stuck_items(queue_name)
                    self._send_json(200, {"success": True, "cleared_count": cleared})
                except Exception as e:
                    logger.error(
                        "Failed to clear stuck queue items",
                        correlation_id=correlation_id,
                        queue_name=queue_name,
                        error=str(e),
                        exc_info=True
                    )
                    self._send_json(500, {"success": False, "error": str(e)})

    return handler

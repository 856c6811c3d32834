"""Test helper functions."""

import json
from io import BytesIO
from typing import Any, Dict
from unittest.mock import Mock


def create_vercel_request(
    method: str = "GET",
    query: Dict[str, Any] = None,
    path: str = "/api/fields/process"
) -> Dict[str, Any]:
    """Create a Vercel request dict for testing."""
    return {
        "method": method,
        "path": path,
        "headers": {"content-type": "application/json"},
        "body": "",
        "query": query or {}
    }


def call_handler(handler_cls, method: str, path: str = "/") -> tuple[int, Dict[str, Any]]:
    """Invoke a BaseHTTPRequestHandler subclass and return (status, json body)."""

    # An empty request line keeps the constructor from dispatching on its own
    class MockSocket:
        def makefile(self, *args, **kwargs):
            return BytesIO(b"")

        def sendall(self, data):
            pass

        def close(self):
            pass

    h = handler_cls(MockSocket(), ("127.0.0.1", 8000), None)
    h.path = path
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()

    getattr(h, f"do_{method}")()

    h.wfile.seek(0)
    return h.send_response.call_args[0][0], json.loads(h.wfile.read().decode("utf-8"))


def plan_and_drain(planner, worker, field_keys, record_types=(), max_items: int = 100) -> int:
    """Plan creation and drain everything in one go."""
    planner.plan(field_keys, record_types, True)
    return worker.drain(max_items)

"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json

from src.utils.queue_config import QueueConfig


class handler(BaseHTTPRequestHandler):
    """Liveness handler for Vercel serverless function."""

    def do_GET(self):
        """Report liveness and the configured queue backend."""
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        response = json.dumps({
            "status": "ok",
            "service": "exif-field-queue",
            "backend": QueueConfig.BACKEND,
            "queues": [QueueConfig.CREATION_QUEUE_NAME, QueueConfig.REMOVAL_QUEUE_NAME]
        })
        self.wfile.write(response.encode('utf-8'))

    def do_POST(self):
        """Handle POST request (same as GET for health check)."""
        self.do_GET()

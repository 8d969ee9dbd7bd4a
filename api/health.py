"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json
from src.utils.config import StorageConfig
from src.utils.errors import ConfigurationError


def health_payload() -> dict:
    """Service status plus the storage strategy this deployment resolves to."""
    try:
        storage = StorageConfig.resolve_backend()
    except ConfigurationError as e:
        return {"status": "error", "service": "simple-todo", "error": str(e)}
    return {"status": "ok", "service": "simple-todo", "storage": storage}


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        payload = health_payload()
        self.send_response(200 if payload["status"] == "ok" else 500)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode('utf-8'))

    def do_POST(self):
        """Same as GET."""
        self.do_GET()

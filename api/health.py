"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
from datetime import date
import json

from tenbyten.utils.settings import settings


def health_payload() -> dict:
    """Service status plus which integrations are configured."""
    return {
        "status": "ok",
        "service": "tenbyten-backend",
        "today": date.today().isoformat(),
        "checks": {
            "supabase_configured": bool(settings.supabase_url and settings.supabase_key),
            "llm_provider": settings.llm_provider,
            "monthly_lookahead_months": settings.monthly_lookahead_months,
        },
    }


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function for uptime checks."""

    def _write_json(self, status: int, payload: dict) -> None:
        body = json.dumps(payload).encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Cache-Control', 'no-store')
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        self._write_json(200, health_payload())

    def do_HEAD(self):
        self.send_response(200)
        self.end_headers()

    def do_POST(self):
        self.do_GET()

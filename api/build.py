from http.server import BaseHTTPRequestHandler
from datetime import datetime, timezone
import json
import os
import sys


# Ensure project root is on path so we can import lp_blocks
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.append(PROJECT_ROOT)

from lp_blocks.errors import InvalidInputError  # noqa: E402
from lp_blocks.handlers import handle_build  # noqa: E402


def _api_log(level: str, event: str, **kwargs) -> None:
    """Structured stdout log for Vercel; all keys JSON-serializable."""
    payload = {"ts": datetime.now(timezone.utc).isoformat(), "level": level, "event": event, **{k: v for k, v in kwargs.items() if v is not None}}
    print(json.dumps(payload, default=str, ensure_ascii=False), flush=True)
    sys.stdout.flush()


class handler(BaseHTTPRequestHandler):
    """POST {"html" | "blocks": ..., "config": {...}} -> {"html", "validation", "sizeBytes"}."""

    def do_POST(self):
        content_length = int(self.headers.get("Content-Length", "0"))
        if content_length <= 0:
            self._send_json({"error": "Empty request body."}, status=400)
            return

        raw_body = self.rfile.read(content_length)
        try:
            payload = json.loads(raw_body)
        except json.JSONDecodeError:
            self._send_json({"error": "Invalid JSON payload."}, status=400)
            return
        if not isinstance(payload, dict):
            self._send_json({"error": "JSON payload must be an object."}, status=400)
            return

        _api_log("INFO", "build_start", blocks=len(payload.get("blocks") or []) or None)
        try:
            result = handle_build(payload)
        except InvalidInputError as exc:
            _api_log("WARN", "build_invalid_input", error=str(exc))
            self._send_json({"error": str(exc)}, status=400)
            return
        except Exception as exc:
            _api_log("ERROR", "build_failed", error=str(exc))
            self._send_json({"error": f"Build failed: {exc}"}, status=500)
            return

        validation = result.get("validation", {})
        _api_log(
            "INFO", "build_done",
            valid=validation.get("valid"),
            warnings=len(validation.get("warnings", [])),
            size_bytes=result.get("sizeBytes"),
        )
        self._send_json(result, status=200)

    def do_GET(self):
        self._send_json({"error": "Use POST to submit blocks or HTML."}, status=405)

    def _send_json(self, payload, status=200):
        body = json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

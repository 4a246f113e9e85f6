from http.server import BaseHTTPRequestHandler, HTTPServer
from datetime import datetime, timezone
import json
import os
import sys

from lp_blocks.errors import InvalidInputError
from lp_blocks.handlers import ROUTES


def _api_log(level: str, event: str, **kwargs) -> None:
    """Structured stdout log; all keys JSON-serializable."""
    payload = {"ts": datetime.now(timezone.utc).isoformat(), "level": level, "event": event, **{k: v for k, v in kwargs.items() if v is not None}}
    print(json.dumps(payload, default=str, ensure_ascii=False), flush=True)
    sys.stdout.flush()


class DevHandler(BaseHTTPRequestHandler):
    def _set_headers(self, status=200):
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def _send_json(self, payload, status=200):
        self._set_headers(status)
        self.wfile.write(json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8"))

    def _read_json(self):
        content_length = int(self.headers.get("Content-Length", "0"))
        if content_length <= 0:
            return None, "Empty request body."
        raw_body = self.rfile.read(content_length)
        try:
            payload = json.loads(raw_body)
        except json.JSONDecodeError:
            return None, "Invalid JSON payload."
        if not isinstance(payload, dict):
            return None, "JSON payload must be an object."
        return payload, None

    def do_OPTIONS(self):
        self._set_headers(204)

    def do_POST(self):
        route = ROUTES.get(self.path)
        if route is None:
            self._send_json({"error": "Not found"}, status=404)
            return

        payload, error = self._read_json()
        if error:
            _api_log("WARN", "dev_bad_request", path=self.path, error=error)
            self._send_json({"error": error}, status=400)
            return

        try:
            result = route(payload)
        except InvalidInputError as exc:
            _api_log("WARN", "dev_invalid_input", path=self.path, error=str(exc))
            self._send_json({"error": str(exc)}, status=400)
            return
        except Exception as exc:
            _api_log("ERROR", "dev_handler_failed", path=self.path, error=str(exc))
            self._send_json({"error": f"Request failed: {exc}"}, status=500)
            return

        _api_log("INFO", "dev_handled", path=self.path)
        self._send_json(result, status=200)


def run():
    port = int(os.environ.get("DEV_LP_BLOCKS_PORT", "5005"))
    server = HTTPServer(("0.0.0.0", port), DevHandler)
    print(f"Dev API running on http://localhost:{port}")
    for path in ROUTES:
        print(f"- POST http://localhost:{port}{path}")
    server.serve_forever()


if __name__ == "__main__":
    run()

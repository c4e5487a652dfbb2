"""HTTP request layer exposing rank lookups and reference updates."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlparse

from linkrank.errors import PageNotFoundError
from linkrank.guards import require_page_id, require_page_ids
from linkrank.service import RankService

logger = logging.getLogger(__name__)

GET_RANK_PATH = "/getPageRank"
UPDATE_PAGE_PATH = "/updatePageData"
HEALTH_PATH = "/health"


class RankHttpServer:
    def __init__(
        self,
        service: RankService,
        host: str = "127.0.0.1",
        port: int = 0,
        auth_token: str | None = None,
    ) -> None:
        self.service = service
        self.host = host
        self.port = int(port)
        self.auth_token = auth_token
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def get_rank_payload(self, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        try:
            page_url = require_page_id(payload.get("pageUrl"), "pageUrl")
        except ValueError as exc:
            return 400, {"error": str(exc)}
        try:
            result = self.service.get_rank(page_url)
        except PageNotFoundError:
            return 404, {"error": "Page not found"}
        except Exception:
            logger.exception("Rank lookup failed for %s", page_url)
            return 500, {"error": "Internal server error"}
        return 200, {
            "pageUrl": page_url,
            "pageRank": result.rank,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def update_page_payload(self, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        try:
            page_url = require_page_id(payload.get("pageUrl"), "pageUrl")
            embedded_urls = require_page_ids(payload.get("embeddedUrls"), "embeddedUrls")
        except ValueError as exc:
            return 400, {"error": str(exc)}
        try:
            self.service.record_reference(page_url, embedded_urls)
        except Exception as exc:
            logger.exception("Reference update failed for %s", page_url)
            return 500, {"error": str(exc)}
        return 200, {"success": True}

    def start(self) -> str:
        if self._httpd is not None:
            return self.url
        handler = self._build_handler()
        httpd = ThreadingHTTPServer((self.host, self.port), handler)
        self._httpd = httpd
        self._thread = threading.Thread(target=httpd.serve_forever, daemon=True)
        self._thread.start()
        logger.info("Rank API server running at %s", self.url)
        return self.url

    def stop(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        self._httpd = None
        self._thread = None

    @property
    def url(self) -> str:
        if self._httpd is None:
            return f"http://{self.host}:{self.port}"
        host, port = self._httpd.server_address[:2]
        return f"http://{host}:{port}"

    def _authorized(self, handler: BaseHTTPRequestHandler) -> bool:
        if not self.auth_token:
            return True
        auth = handler.headers.get("Authorization", "")
        return auth.strip() == f"Bearer {self.auth_token}"

    def _build_handler(self):
        server = self

        class _Handler(BaseHTTPRequestHandler):
            def _json(self, status: int, payload: dict[str, Any]) -> None:
                encoded = json.dumps(payload, sort_keys=True).encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(encoded)))
                self.end_headers()
                self.wfile.write(encoded)

            def _read_json(self) -> dict[str, Any] | None:
                try:
                    content_length = int(self.headers.get("Content-Length", "0") or "0")
                except ValueError:
                    content_length = -1
                if content_length < 0:
                    self._json(400, {"error": "invalid_json"})
                    return None
                body = self.rfile.read(content_length)
                try:
                    payload = json.loads(body.decode("utf-8") or "{}")
                except (UnicodeDecodeError, json.JSONDecodeError):
                    self._json(400, {"error": "invalid_json"})
                    return None
                if not isinstance(payload, dict):
                    self._json(400, {"error": "invalid_payload"})
                    return None
                return payload

            def do_POST(self) -> None:  # noqa: N802
                if not server._authorized(self):
                    self._json(401, {"error": "unauthorized"})
                    return
                parsed = urlparse(self.path)
                if parsed.path == GET_RANK_PATH:
                    route = server.get_rank_payload
                elif parsed.path == UPDATE_PAGE_PATH:
                    route = server.update_page_payload
                else:
                    self._json(404, {"error": "not_found"})
                    return
                payload = self._read_json()
                if payload is None:
                    return
                status, response = route(payload)
                self._json(status, response)

            def do_GET(self) -> None:  # noqa: N802
                parsed = urlparse(self.path)
                if parsed.path != HEALTH_PATH:
                    self._json(404, {"error": "not_found"})
                    return
                self._json(200, {"status": "ok"})

            def log_message(self, format: str, *args: Any) -> None:  # noqa: A003
                logger.debug("%s - %s", self.address_string(), format % args)

        return _Handler

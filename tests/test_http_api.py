from __future__ import annotations

import http.client
import tempfile
import unittest
from pathlib import Path

from linkrank.api import HttpRankClient, RankApiError, RankHttpServer
from linkrank.errors import StoreError
from linkrank.guards import MAX_PAGE_ID_LENGTH
from linkrank.models import PageRecord
from linkrank.service import RankService
from linkrank.store.database import Database


class _BrokenStore:
    def find_by_id(self, page_id: str) -> PageRecord | None:
        raise StoreError("store offline")

    def upsert_fields(self, page_id, fields, insert_defaults=None) -> None:  # type: ignore[no-untyped-def]
        raise StoreError("store offline")

    def add_to_set(self, page_id, field, value, insert_defaults=None) -> None:  # type: ignore[no-untyped-def]
        raise StoreError("store offline")


class RankHttpServerTests(unittest.TestCase):
    def test_payload_handlers_map_errors_to_status_codes(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            db = Database(Path(tmpdir) / "linkrank.db")
            db.init_schema()
            server = RankHttpServer(RankService(db))

            status, payload = server.get_rank_payload({})
            self.assertEqual(status, 400)
            self.assertEqual(payload, {"error": "pageUrl is required"})

            status, payload = server.get_rank_payload({"pageUrl": "unknown.example"})
            self.assertEqual(status, 404)
            self.assertEqual(payload, {"error": "Page not found"})

            status, payload = server.update_page_payload({"pageUrl": "a", "embeddedUrls": "b"})
            self.assertEqual(status, 400)

            status, payload = server.update_page_payload({"pageUrl": "a", "embeddedUrls": ["b"]})
            self.assertEqual(status, 200)
            self.assertEqual(payload, {"success": True})

            status, payload = server.get_rank_payload({"pageUrl": "b"})
            self.assertEqual(status, 200)
            self.assertEqual(payload["pageUrl"], "b")
            self.assertGreater(float(payload["pageRank"]), 0.0)
            self.assertIn("timestamp", payload)

    def test_blank_and_oversized_identifiers_are_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            db = Database(Path(tmpdir) / "linkrank.db")
            db.init_schema()
            server = RankHttpServer(RankService(db))
            long_id = "a" * (MAX_PAGE_ID_LENGTH + 1)

            status, payload = server.update_page_payload({"pageUrl": "a", "embeddedUrls": ["b", "  "]})
            self.assertEqual(status, 400)
            self.assertEqual(payload, {"error": "embeddedUrls must be a list of non-empty strings"})

            status, payload = server.update_page_payload({"pageUrl": "a", "embeddedUrls": [long_id]})
            self.assertEqual(status, 400)
            self.assertIn("embeddedUrls exceeds", payload["error"])

            status, payload = server.get_rank_payload({"pageUrl": long_id})
            self.assertEqual(status, 400)
            self.assertIn("pageUrl exceeds", payload["error"])

            self.assertIsNone(db.find_by_id("a"))
            self.assertIsNone(db.find_by_id("b"))

    def test_store_failure_maps_to_internal_error(self) -> None:
        server = RankHttpServer(RankService(_BrokenStore()))
        status, payload = server.get_rank_payload({"pageUrl": "a"})
        self.assertEqual(status, 500)
        self.assertEqual(payload, {"error": "Internal server error"})
        status, payload = server.update_page_payload({"pageUrl": "a", "embeddedUrls": []})
        self.assertEqual(status, 500)
        self.assertEqual(payload, {"error": "store offline"})

    def test_client_round_trip_over_http(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            db = Database(Path(tmpdir) / "linkrank.db")
            db.init_schema()
            server = RankHttpServer(RankService(db), host="127.0.0.1", port=0)
            url = server.start()
            try:
                client = HttpRankClient(url)
                self.assertTrue(client.health())
                self.assertIsNone(client.get_rank("unknown.example"))
                self.assertTrue(client.update_page_data("r1", ["t"]))
                self.assertTrue(client.update_page_data("r2", ["t", "x"]))
                self.assertAlmostEqual(client.get_rank("t") or 0.0, 0.11375, places=9)
                self.assertAlmostEqual(client.get_rank("r1") or 0.0, 0.15, places=9)

                status, payload = client._request_json("POST", "/unknown", payload={})
                self.assertEqual(status, 404)
                self.assertEqual(payload, {"error": "not_found"})
            finally:
                server.stop()

    def test_malformed_content_length_returns_bad_request(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            db = Database(Path(tmpdir) / "linkrank.db")
            db.init_schema()
            server = RankHttpServer(RankService(db), port=0)
            server.start()
            host, port = server._httpd.server_address[:2]  # type: ignore[union-attr]
            try:
                for content_length in ("abc", "-5"):
                    conn = http.client.HTTPConnection(host, port, timeout=5)
                    try:
                        conn.putrequest("POST", "/getPageRank")
                        conn.putheader("Content-Type", "application/json")
                        conn.putheader("Content-Length", content_length)
                        conn.endheaders()
                        response = conn.getresponse()
                        self.assertEqual(response.status, 400)
                        self.assertEqual(response.read(), b'{"error": "invalid_json"}')
                    finally:
                        conn.close()
                self.assertTrue(HttpRankClient(server.url).health())
            finally:
                server.stop()

    def test_bearer_token_is_enforced(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            db = Database(Path(tmpdir) / "linkrank.db")
            db.init_schema()
            server = RankHttpServer(RankService(db), port=0, auth_token="secret")
            url = server.start()
            try:
                with self.assertRaises(RankApiError) as ctx:
                    HttpRankClient(url, auth_token="wrong").update_page_data("a", ["b"])
                self.assertEqual(ctx.exception.status, 401)
                self.assertTrue(HttpRankClient(url, auth_token="secret").update_page_data("a", ["b"]))
            finally:
                server.stop()

    def test_unreachable_server_reports_unavailable(self) -> None:
        client = HttpRankClient("http://127.0.0.1:9", timeout_seconds=0.5)
        with self.assertRaises(RankApiError) as ctx:
            client.get_rank("a")
        self.assertEqual(ctx.exception.status, 503)


if __name__ == "__main__":
    unittest.main()

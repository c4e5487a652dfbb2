"""HTTP client for a running rank API server."""

from __future__ import annotations

import json
import os
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from linkrank.api.http import GET_RANK_PATH, UPDATE_PAGE_PATH
from linkrank.config import AUTH_TOKEN_ENV


class RankApiError(RuntimeError):
    def __init__(self, status: int, payload: dict[str, object] | None) -> None:
        detail = payload.get("error") if payload else None
        super().__init__(f"Rank API request failed with status {status}: {detail}")
        self.status = status
        self.payload = payload


class HttpRankClient:
    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token or os.getenv(AUTH_TOKEN_ENV)
        self.timeout_seconds = timeout_seconds

    def _request_json(
        self,
        method: str,
        path: str,
        payload: dict[str, object] | None = None,
    ) -> tuple[int, dict[str, object] | None]:
        url = f"{self.base_url}{path}"
        data = None
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        if payload is not None:
            data = json.dumps(payload, sort_keys=True).encode("utf-8")
        request = Request(url=url, data=data, method=method, headers=headers)
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                body = response.read().decode("utf-8")
                if not body.strip():
                    return response.status, None
                parsed = json.loads(body)
                return response.status, parsed if isinstance(parsed, dict) else None
        except HTTPError as exc:
            try:
                body = exc.read().decode("utf-8")
                parsed = json.loads(body)
                return int(exc.code), parsed if isinstance(parsed, dict) else None
            except (UnicodeDecodeError, json.JSONDecodeError):
                return int(exc.code), None
        except URLError:
            return 503, None

    def get_rank(self, page_url: str) -> float | None:
        """Return the page's rank, or None if the server does not know the page."""
        status, payload = self._request_json(
            "POST",
            GET_RANK_PATH,
            payload={"pageUrl": page_url},
        )
        if status == 404:
            return None
        if status >= 400 or payload is None:
            raise RankApiError(status, payload)
        return float(payload["pageRank"])  # type: ignore[arg-type]

    def update_page_data(self, page_url: str, embedded_urls: list[str]) -> bool:
        status, payload = self._request_json(
            "POST",
            UPDATE_PAGE_PATH,
            payload={"pageUrl": page_url, "embeddedUrls": list(embedded_urls)},
        )
        if status >= 400:
            raise RankApiError(status, payload)
        return bool(payload.get("success", False)) if payload else False

    def health(self) -> bool:
        status, payload = self._request_json("GET", "/health")
        return status == 200 and bool(payload) and payload.get("status") == "ok"

"""MCP tool definitions and handler wiring."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from linkrank.errors import PageNotFoundError
from linkrank.guards import require_page_id, require_page_ids
from linkrank.models import RequestMetric, rank_result_to_dict
from linkrank.service import RankService
from linkrank.store.database import Database


ToolHandler = Callable[[dict[str, Any]], dict[str, Any]]

TOOL_SCHEMAS: dict[str, dict[str, Any]] = {
    "get_page_rank": {
        "type": "object",
        "properties": {
            "page_url": {"type": "string"},
        },
        "required": ["page_url"],
    },
    "record_references": {
        "type": "object",
        "properties": {
            "page_url": {"type": "string"},
            "embedded_urls": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["page_url", "embedded_urls"],
    },
}


def _safe_record_metric(db: Database, metric: RequestMetric) -> None:
    try:
        db.record_request_metric(metric)
    except Exception as exc:
        logging.getLogger(__name__).warning(
            "Failed to persist request metric for %s: %s",
            metric.operation,
            str(exc),
        )


def _instrument_handler(db: Database, tool_name: str, handler: ToolHandler) -> ToolHandler:
    def wrapped(payload: dict[str, Any]) -> dict[str, Any]:
        started = time.perf_counter()
        page_id = str(payload.get("page_url", "")) or None
        try:
            result = handler(payload)
        except Exception as exc:
            latency_ms = (time.perf_counter() - started) * 1000.0
            _safe_record_metric(
                db,
                RequestMetric(
                    operation=tool_name,
                    latency_ms=latency_ms,
                    success=False,
                    page_id=page_id,
                    error_message=str(exc),
                ),
            )
            logging.getLogger(__name__).exception("Tool handler failed: %s", tool_name)
            raise
        latency_ms = (time.perf_counter() - started) * 1000.0
        _safe_record_metric(
            db,
            RequestMetric(
                operation=tool_name,
                latency_ms=latency_ms,
                success=True,
                page_id=page_id,
            ),
        )
        return result

    return wrapped


def _get_page_rank_handler(service: RankService, payload: dict[str, Any]) -> dict[str, Any]:
    page_url = require_page_id(payload.get("page_url"), "page_url")
    try:
        result = service.get_rank(page_url)
    except PageNotFoundError:
        return {"pageUrl": page_url, "found": False, "error": "Page not found"}
    return {**rank_result_to_dict(result), "found": True}


def _record_references_handler(service: RankService, payload: dict[str, Any]) -> dict[str, Any]:
    page_url = require_page_id(payload.get("page_url"), "page_url")
    embedded_urls = require_page_ids(payload.get("embedded_urls"), "embedded_urls")
    service.record_reference(page_url, embedded_urls)
    return {"pageUrl": page_url, "embeddedUrls": len(embedded_urls), "success": True}


def build_tool_registry(db: Database, service: RankService) -> dict[str, dict[str, Any]]:
    rank_handler = _instrument_handler(
        db,
        "get_page_rank",
        lambda payload: _get_page_rank_handler(service, payload),
    )
    references_handler = _instrument_handler(
        db,
        "record_references",
        lambda payload: _record_references_handler(service, payload),
    )
    return {
        "get_page_rank": {
            "description": "Return the cached or freshly computed local rank estimate of a page.",
            "input_schema": TOOL_SCHEMAS["get_page_rank"],
            "handler": rank_handler,
        },
        "record_references": {
            "description": "Record the outgoing links of a page and update referrer sets.",
            "input_schema": TOOL_SCHEMAS["record_references"],
            "handler": references_handler,
        },
    }


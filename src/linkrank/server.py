"""CLI entry point for the linkrank service."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Any

from linkrank.api.http import RankHttpServer
from linkrank.config import DEFAULT_HOST, DEFAULT_PORT, Settings, build_settings
from linkrank.errors import PageNotFoundError
from linkrank.guards import require_page_id, require_page_ids
from linkrank.models import (
    DEFAULT_DAMPING_FACTOR,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    rank_result_to_dict,
)
from linkrank.service import RankService
from linkrank.store.database import SCHEMA_VERSION, Database
from linkrank.tools.definitions import build_tool_registry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkrank",
        description="Local link-graph rank estimation with a persistent rank cache.",
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        default=None,
        help="Path to SQLite database file. Defaults to $LINKRANK_DB_PATH or ./.linkrank/linkrank.db.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log verbosity level.",
    )
    parser.add_argument(
        "--damping-factor",
        type=float,
        default=DEFAULT_DAMPING_FACTOR,
        help="Probability of following a link; 1 - d is the base rank.",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_TOLERANCE,
        help="Per-node rank change at which iteration stops.",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=DEFAULT_MAX_ITERATIONS,
        help="Upper bound on power iterations per computation.",
    )
    parser.add_argument(
        "--loader-workers",
        type=int,
        default=1,
        help="Threads used to fetch referrer records.",
    )

    subparsers = parser.add_subparsers(dest="command")

    http_parser = subparsers.add_parser("serve-http", help="Start the HTTP rank API.")
    http_parser.add_argument("--host", type=str, default=DEFAULT_HOST, help="Bind host.")
    http_parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Bind port.")
    http_parser.add_argument("--auth-token", type=str, default=None, help="Optional bearer token.")

    subparsers.add_parser("serve-mcp", help="Start the MCP STDIO server.")

    rank_parser = subparsers.add_parser("rank", help="Print the rank of a page and exit.")
    rank_parser.add_argument("page", type=str, help="Page identifier.")
    rank_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Compute the rank without reading or writing the cached value.",
    )

    link_parser = subparsers.add_parser("link", help="Record the outgoing links of a page and exit.")
    link_parser.add_argument("page", type=str, help="Referencing page identifier.")
    link_parser.add_argument("targets", nargs="*", help="Identifiers the page links to.")

    subparsers.add_parser("status", help="Print store status and exit.")
    parser.set_defaults(command="serve-http")
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _status_payload(db: Database) -> dict[str, Any]:
    schema_version = db.get_schema_version()
    return {
        "db_path": db.db_path.as_posix(),
        "schema_version": schema_version,
        "schema_status": "ok" if schema_version == SCHEMA_VERSION else "degraded",
        "counts": db.counts(),
        "top_ranked": db.top_ranked(limit=5),
    }


def _rank_payload(service: RankService, page: str, no_cache: bool) -> tuple[int, dict[str, Any]]:
    try:
        if no_cache:
            solved = service.calculate_rank(page)
            return 0, {
                "pageUrl": page,
                "pageRank": solved.rank,
                "source": "uncached",
                "iterations": solved.iterations,
                "converged": solved.converged,
            }
        return 0, rank_result_to_dict(service.get_rank(page))
    except PageNotFoundError:
        return 1, {"error": "Page not found", "pageUrl": page}


def _serve_http(service: RankService, settings: Settings, args: argparse.Namespace) -> None:
    server = RankHttpServer(
        service,
        host=str(getattr(args, "host", settings.host)),
        port=int(getattr(args, "port", settings.port)),
        auth_token=getattr(args, "auth_token", None) or settings.auth_token,
    )
    url = server.start()
    print(json.dumps({"status": "running", "url": url}, sort_keys=True), flush=True)
    try:
        while True:
            threading.Event().wait(1.0)
    except KeyboardInterrupt:
        server.stop()


def _serve_mcp(db: Database, service: RankService) -> None:
    from mcp.server.fastmcp import FastMCP

    registry = build_tool_registry(db, service)
    rank_tool = registry["get_page_rank"]
    references_tool = registry["record_references"]
    mcp_server = FastMCP("linkrank")

    @mcp_server.tool(name="get_page_rank", description=str(rank_tool["description"]))
    def get_page_rank(page_url: str) -> dict[str, Any]:
        return rank_tool["handler"]({"page_url": page_url})

    @mcp_server.tool(name="record_references", description=str(references_tool["description"]))
    def record_references(page_url: str, embedded_urls: list[str]) -> dict[str, Any]:
        return references_tool["handler"](
            {"page_url": page_url, "embedded_urls": embedded_urls}
        )

    logging.getLogger(__name__).info(
        "Starting MCP STDIO server runtime with %d tools.", len(registry)
    )
    mcp_server.run()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = build_settings(
            db_path=args.db_path,
            log_level=args.log_level,
            damping_factor=args.damping_factor,
            tolerance=args.tolerance,
            max_iterations=args.max_iterations,
            loader_workers=args.loader_workers,
        )
    except ValueError as exc:
        parser.error(str(exc))
    try:
        if args.command == "rank":
            args.page = require_page_id(args.page, "page")
        elif args.command == "link":
            args.page = require_page_id(args.page, "page")
            args.targets = require_page_ids(args.targets, "targets")
    except ValueError as exc:
        parser.error(str(exc))
    configure_logging(settings.log_level)
    db = Database(settings.db_path)
    db.init_schema()
    service = RankService(db, params=settings.rank, loader_workers=settings.loader_workers)

    logging.getLogger(__name__).info(
        "linkrank initialized (db=%s, damping=%s, tolerance=%s, max_iterations=%d)",
        settings.db_path,
        settings.rank.damping_factor,
        settings.rank.tolerance,
        settings.rank.max_iterations,
    )

    command = str(getattr(args, "command", "serve-http") or "serve-http")
    if command == "rank":
        exit_code, payload = _rank_payload(service, args.page, bool(args.no_cache))
        print(json.dumps(payload, sort_keys=True))
        return exit_code

    if command == "link":
        service.record_reference(args.page, args.targets)
        print(json.dumps({"pageUrl": args.page, "embeddedUrls": list(args.targets), "success": True}, sort_keys=True))
        return 0

    if command == "status":
        print(json.dumps(_status_payload(db), sort_keys=True))
        return 0

    if command == "serve-mcp":
        _serve_mcp(db, service)
        return 0

    _serve_http(service, settings, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())

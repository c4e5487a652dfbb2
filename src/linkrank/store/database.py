"""SQLite storage layer for page records and the rank cache."""

from __future__ import annotations

import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping, Protocol, Sequence

from linkrank.errors import StoreError
from linkrank.models import UNCOMPUTED_RANK, PageRecord, RequestMetric


SCHEMA_VERSION = 1

FIELD_RANK = "rank"
FIELD_OUT_LINKS = "out_links"
FIELD_IN_LINKS = "in_links"
UPSERT_FIELDS = (FIELD_RANK, FIELD_OUT_LINKS)
SET_FIELDS = (FIELD_IN_LINKS,)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS repo_meta (
        key TEXT PRIMARY KEY,
        value TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS pages (
        id TEXT PRIMARY KEY,
        rank REAL NOT NULL DEFAULT 0.0,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS page_out_links (
        page_id TEXT NOT NULL REFERENCES pages(id),
        position INTEGER NOT NULL,
        target_id TEXT NOT NULL,
        PRIMARY KEY(page_id, position)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS page_in_links (
        page_id TEXT NOT NULL REFERENCES pages(id),
        referrer_id TEXT NOT NULL,
        PRIMARY KEY(page_id, referrer_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS migration_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        from_version INTEGER NOT NULL,
        to_version INTEGER NOT NULL,
        status TEXT NOT NULL,
        error_message TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS request_metrics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        operation TEXT NOT NULL,
        page_id TEXT,
        latency_ms REAL NOT NULL,
        success INTEGER NOT NULL,
        error_message TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_pages_rank ON pages(rank DESC);",
    "CREATE INDEX IF NOT EXISTS idx_out_links_target ON page_out_links(target_id);",
    "CREATE INDEX IF NOT EXISTS idx_in_links_referrer ON page_in_links(referrer_id);",
    "CREATE INDEX IF NOT EXISTS idx_request_metrics_op_created ON request_metrics(operation, created_at);",
)


class GraphStore(Protocol):
    def find_by_id(self, page_id: str) -> PageRecord | None: ...

    def upsert_fields(
        self,
        page_id: str,
        fields: Mapping[str, Any],
        insert_defaults: Mapping[str, Any] | None = None,
    ) -> None: ...

    def add_to_set(
        self,
        page_id: str,
        field: str,
        value: str,
        insert_defaults: Mapping[str, Any] | None = None,
    ) -> None: ...


def _check_fields(fields: Mapping[str, Any], allowed: Sequence[str]) -> None:
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise ValueError(f"Unsupported page fields: {', '.join(unknown)}")


class Database:
    def __init__(self, db_path: Path, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path.expanduser().resolve()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout_ms = max(0, int(busy_timeout_ms))

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout_ms / 1000.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(self.connect()) as conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreError(f"{type(exc).__name__}: {exc}") from exc

    def init_schema(self) -> None:
        with self.session() as conn:
            conn.execute("PRAGMA journal_mode = WAL;")
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
            self._migrate_schema(conn)
            conn.commit()

    def _migrate_schema(self, conn: sqlite3.Connection) -> None:
        current_version = self._get_schema_version(conn)
        if current_version >= SCHEMA_VERSION:
            return
        self._set_schema_version(conn, SCHEMA_VERSION)
        self._record_migration_step(
            conn=conn,
            from_version=current_version,
            to_version=SCHEMA_VERSION,
            status="success",
            error_message=None,
        )

    def _get_schema_version(self, conn: sqlite3.Connection) -> int:
        row = conn.execute(
            "SELECT value FROM repo_meta WHERE key = 'schema_version';"
        ).fetchone()
        if not row:
            return 0
        try:
            return int(row["value"])
        except (TypeError, ValueError):
            return 0

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        conn.execute(
            """
            INSERT INTO repo_meta(key, value)
            VALUES('schema_version', ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value;
            """,
            (str(version),),
        )

    def _record_migration_step(
        self,
        conn: sqlite3.Connection,
        from_version: int,
        to_version: int,
        status: str,
        error_message: str | None,
    ) -> None:
        conn.execute(
            """
            INSERT INTO migration_history(from_version, to_version, status, error_message)
            VALUES (?, ?, ?, ?);
            """,
            (from_version, to_version, status, error_message),
        )

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        with self.session() as conn:
            cursor = conn.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]

    def find_by_id(self, page_id: str) -> PageRecord | None:
        with self.session() as conn:
            row = conn.execute(
                "SELECT id, rank FROM pages WHERE id = ?;", (page_id,)
            ).fetchone()
            if row is None:
                return None
            out_rows = conn.execute(
                "SELECT target_id FROM page_out_links WHERE page_id = ? ORDER BY position;",
                (page_id,),
            ).fetchall()
            in_rows = conn.execute(
                "SELECT referrer_id FROM page_in_links WHERE page_id = ?;",
                (page_id,),
            ).fetchall()
        return PageRecord(
            id=str(row["id"]),
            rank=float(row["rank"] or UNCOMPUTED_RANK),
            out_links=tuple(str(item["target_id"]) for item in out_rows),
            in_links=frozenset(str(item["referrer_id"]) for item in in_rows),
        )

    def upsert_fields(
        self,
        page_id: str,
        fields: Mapping[str, Any],
        insert_defaults: Mapping[str, Any] | None = None,
    ) -> None:
        """Set ``fields`` on a page, creating it with ``insert_defaults`` if absent."""
        defaults = dict(insert_defaults or {})
        _check_fields(fields, UPSERT_FIELDS)
        _check_fields(defaults, UPSERT_FIELDS)
        with self.session() as conn:
            inserted = self._insert_page_if_missing(
                conn,
                page_id,
                rank=float(fields.get(FIELD_RANK, defaults.get(FIELD_RANK, UNCOMPUTED_RANK))),
            )
            if inserted:
                out_links = fields.get(FIELD_OUT_LINKS, defaults.get(FIELD_OUT_LINKS, ()))
                self._replace_out_links(conn, page_id, out_links)
            else:
                if FIELD_RANK in fields:
                    conn.execute(
                        """
                        UPDATE pages
                        SET rank = ?, updated_at = CURRENT_TIMESTAMP
                        WHERE id = ?;
                        """,
                        (float(fields[FIELD_RANK]), page_id),
                    )
                if FIELD_OUT_LINKS in fields:
                    self._replace_out_links(conn, page_id, fields[FIELD_OUT_LINKS])
            conn.commit()

    def add_to_set(
        self,
        page_id: str,
        field: str,
        value: str,
        insert_defaults: Mapping[str, Any] | None = None,
    ) -> None:
        """Add ``value`` to a set-valued field, creating the page if absent."""
        if field not in SET_FIELDS:
            raise ValueError(f"Unsupported set field: {field}")
        defaults = dict(insert_defaults or {})
        _check_fields(defaults, UPSERT_FIELDS)
        with self.session() as conn:
            inserted = self._insert_page_if_missing(
                conn,
                page_id,
                rank=float(defaults.get(FIELD_RANK, UNCOMPUTED_RANK)),
            )
            if inserted:
                self._replace_out_links(conn, page_id, defaults.get(FIELD_OUT_LINKS, ()))
            conn.execute(
                """
                INSERT INTO page_in_links(page_id, referrer_id)
                VALUES (?, ?)
                ON CONFLICT(page_id, referrer_id) DO NOTHING;
                """,
                (page_id, value),
            )
            conn.commit()

    def _insert_page_if_missing(
        self,
        conn: sqlite3.Connection,
        page_id: str,
        rank: float,
    ) -> bool:
        cursor = conn.execute(
            """
            INSERT INTO pages(id, rank)
            VALUES (?, ?)
            ON CONFLICT(id) DO NOTHING;
            """,
            (page_id, rank),
        )
        return cursor.rowcount == 1

    def _replace_out_links(
        self,
        conn: sqlite3.Connection,
        page_id: str,
        out_links: Sequence[str],
    ) -> None:
        conn.execute("DELETE FROM page_out_links WHERE page_id = ?;", (page_id,))
        conn.executemany(
            "INSERT INTO page_out_links(page_id, position, target_id) VALUES (?, ?, ?);",
            [(page_id, position, str(target)) for position, target in enumerate(out_links)],
        )
        conn.execute(
            "UPDATE pages SET updated_at = CURRENT_TIMESTAMP WHERE id = ?;",
            (page_id,),
        )

    def record_request_metric(self, metric: RequestMetric) -> None:
        with self.session() as conn:
            conn.execute(
                """
                INSERT INTO request_metrics(operation, page_id, latency_ms, success, error_message)
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    metric.operation,
                    metric.page_id,
                    float(metric.latency_ms),
                    1 if metric.success else 0,
                    metric.error_message,
                ),
            )
            conn.commit()

    def get_schema_version(self) -> int:
        with self.session() as conn:
            return self._get_schema_version(conn)

    def counts(self) -> dict[str, int]:
        with self.session() as conn:
            pages = conn.execute("SELECT COUNT(*) AS count FROM pages;").fetchone()
            ranked = conn.execute(
                "SELECT COUNT(*) AS count FROM pages WHERE rank > 0;"
            ).fetchone()
            links = conn.execute("SELECT COUNT(*) AS count FROM page_out_links;").fetchone()
            references = conn.execute(
                "SELECT COUNT(*) AS count FROM page_in_links;"
            ).fetchone()
            metrics = conn.execute(
                "SELECT COUNT(*) AS count FROM request_metrics;"
            ).fetchone()
        return {
            "pages": int(pages["count"]),
            "ranked_pages": int(ranked["count"]),
            "out_links": int(links["count"]),
            "in_links": int(references["count"]),
            "request_metrics": int(metrics["count"]),
        }

    def top_ranked(self, limit: int = 10) -> list[dict[str, Any]]:
        return self.query(
            """
            SELECT id, rank, updated_at
            FROM pages
            WHERE rank > 0
            ORDER BY rank DESC, id ASC
            LIMIT ?;
            """,
            (max(1, int(limit)),),
        )

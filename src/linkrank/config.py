"""Configuration handling for linkrank startup."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from linkrank.models import (
    DEFAULT_DAMPING_FACTOR,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    RankParameters,
)

DB_PATH_ENV = "LINKRANK_DB_PATH"
AUTH_TOKEN_ENV = "LINKRANK_AUTH_TOKEN"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000


@dataclass(frozen=True)
class Settings:
    db_path: Path
    log_level: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    auth_token: str | None = None
    rank: RankParameters = field(default_factory=RankParameters)
    loader_workers: int = 1


def resolve_db_path(db_path: Path | None) -> Path:
    if db_path is None:
        from_env = os.getenv(DB_PATH_ENV)
        if from_env:
            return Path(from_env).expanduser().resolve()
        return (Path(".") / ".linkrank" / "linkrank.db").resolve()
    return db_path.expanduser().resolve()


def resolve_port(port: int) -> int:
    if not 0 <= port <= 65535:
        raise ValueError(f"Port out of range: {port}")
    return port


def build_settings(
    db_path: Path | None,
    log_level: str,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    auth_token: str | None = None,
    damping_factor: float = DEFAULT_DAMPING_FACTOR,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    loader_workers: int = 1,
) -> Settings:
    rank = RankParameters(
        damping_factor=float(damping_factor),
        tolerance=float(tolerance),
        max_iterations=int(max_iterations),
    )
    return Settings(
        db_path=resolve_db_path(db_path),
        log_level=log_level,
        host=host,
        port=resolve_port(int(port)),
        auth_token=auth_token or os.getenv(AUTH_TOKEN_ENV),
        rank=rank,
        loader_workers=max(1, int(loader_workers)),
    )

"""Database connection settings and connection factory."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

import psycopg2
from psycopg2.extensions import connection as PgConnection

ConnectionFactory = Callable[[], PgConnection]


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection parameters for the application database."""

    host: str
    port: int
    dbname: str
    user: str
    password: str
    connect_timeout: int
    statement_timeout_ms: int


def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def load_database_config(env: Optional[Mapping[str, str]] = None) -> DatabaseConfig:
    """Load :class:`DatabaseConfig` from environment variables."""

    env_mapping = os.environ if env is None else env
    return DatabaseConfig(
        host=env_mapping.get("DB_HOST", "127.0.0.1"),
        port=int(env_mapping.get("DB_PORT", "5432")),
        dbname=env_mapping.get("DB_NAME", "booking_db"),
        user=env_mapping.get("DB_USER", "booking_user"),
        password=env_mapping.get("DB_PASSWORD", "booking_pass"),
        connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT", "5")),
        statement_timeout_ms=max(0, int(env_mapping.get("DB_STATEMENT_TIMEOUT_MS", "5000"))),
    )


def create_connection_factory(config: DatabaseConfig) -> ConnectionFactory:
    """Return a callable opening a new connection per call.

    A statement timeout keeps a stalled database from outliving the webhook
    response deadline.
    """

    options = f"-c statement_timeout={config.statement_timeout_ms}" if config.statement_timeout_ms else None

    def _connect() -> PgConnection:
        return psycopg2.connect(
            host=config.host,
            port=config.port,
            dbname=config.dbname,
            user=config.user,
            password=config.password,
            connect_timeout=config.connect_timeout,
            options=options,
        )

    return _connect


__all__ = ["ConnectionFactory", "DatabaseConfig", "create_connection_factory", "load_database_config"]

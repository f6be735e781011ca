"""PostgreSQL repository base and engine factory using SQLAlchemy."""

from __future__ import annotations

import json
import os
from typing import Any, List, Optional, Union

import boto3
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.sql import Executable

from utils.logging_config import get_logger

logger = get_logger(__name__)

Statement = Union[str, Executable]

# Connection pooling for Lambda reuse.
_engine: Optional[Engine] = None


def get_db_engine(
    database_url: Optional[str] = None, db_secret_arn: Optional[str] = None
) -> Optional[Engine]:
    """Get or create SQLAlchemy engine with connection pooling."""
    global _engine
    if _engine is None:
        db_url = database_url or os.environ.get("DATABASE_URL")
        if not db_url:
            secret_arn = db_secret_arn or os.environ.get("DB_SECRET_ARN")
            if secret_arn:
                db_url = _secret_to_db_url(secret_arn)
            if not db_url:
                logger.warning("DATABASE_URL not set; DB calls will fail")
                return None
        if db_url.startswith("sqlite"):
            _engine = create_engine(db_url)
        else:
            _engine = create_engine(
                db_url,
                poolclass=QueuePool,
                pool_size=2,
                max_overflow=4,
                pool_pre_ping=True,
                pool_recycle=300,
                pool_timeout=10,
            )
    return _engine


def reset_db_engine() -> None:
    """Dispose the cached engine (tests and credential rotation)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def _secret_to_db_url(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret."""
    try:
        sm = boto3.client("secretsmanager")
        secret_value = sm.get_secret_value(SecretId=secret_arn)["SecretString"]
        secret = json.loads(secret_value)
        host = secret.get("host")
        port = secret.get("port", 5432)
        username = secret.get("username")
        password = secret.get("password")
        dbname = secret.get("dbname", "postgres")
        if not (host and username and password):
            return None
        return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None


def _statement(query: Statement) -> Executable:
    return text(query) if isinstance(query, str) else query


class PostgresRepository:
    """Thin wrapper to keep SQL organized and parameterized."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def fetch_one(self, query: Statement, params: Optional[dict] = None) -> Optional[dict]:
        """Execute a SELECT and return one row as dict."""
        with self.engine.connect() as conn:
            row = conn.execute(_statement(query), params or {}).fetchone()
            return dict(row._mapping) if row else None

    def fetch_all(self, query: Statement, params: Optional[dict] = None) -> List[dict]:
        """Execute a SELECT and return every row as dict."""
        with self.engine.connect() as conn:
            result = conn.execute(_statement(query), params or {})
            return [dict(row._mapping) for row in result]

    def execute(self, query: Statement, params: Any = None) -> Any:
        """Execute a parameterized statement in its own transaction."""
        with self.engine.begin() as conn:
            return conn.execute(_statement(query), params or {})

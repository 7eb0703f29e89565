"""Database engine creation with optional SQLCipher encryption.

Uses SQLCipher when pysqlcipher3 is installed and a key is configured,
otherwise plain SQLite. Full SQLAlchemy URLs are passed through unchanged.
"""

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from ..errors import ConfigError
from ..logging import get_logger

logger = get_logger(__name__)

MIN_KEY_LENGTH = 16


class ConnectionWrapper:
    """Wrapper around pysqlcipher3 connection to handle API differences.

    pysqlcipher3 doesn't support the 'deterministic' kwarg that SQLAlchemy
    uses for create_function, so we intercept and ignore it.
    """

    def __init__(self, conn):
        self._conn = conn

    def create_function(self, name, num_params, func, deterministic=False):
        """Create a user-defined function, ignoring deterministic param."""
        return self._conn.create_function(name, num_params, func)

    def __getattr__(self, name):
        return getattr(self._conn, name)


def _is_url(db_path: str) -> bool:
    return "://" in db_path


def create_database_engine(
    db_path: str,
    encryption_key: Optional[str] = None,
    require_encryption: bool = False,
) -> Engine:
    """Create the SQLAlchemy engine for the survey store.

    Args:
        db_path: SQLite file path, ":memory:", or a full SQLAlchemy URL
        encryption_key: SQLCipher key (min 16 chars). If None, reads ENCRYPTION_KEY env.
        require_encryption: If True, fail unless an encrypted SQLite engine can be built.

    Returns:
        SQLAlchemy Engine

    Raises:
        ConfigError: If encryption is required but no usable key is configured
        ImportError: If encryption is required and pysqlcipher3 is not installed
    """
    if _is_url(db_path):
        if require_encryption:
            raise ConfigError("REQUIRE_ENCRYPTION only applies to SQLite file paths")
        logger.info(f"Database engine created for {db_path.split('://')[0]} URL")
        return create_engine(db_path, echo=False)

    if not encryption_key:
        encryption_key = os.getenv('ENCRYPTION_KEY')

    if encryption_key and len(encryption_key) < MIN_KEY_LENGTH:
        raise ConfigError(
            "ENCRYPTION_KEY must be at least 16 characters (128 bits). "
            "Generate a strong key with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
        )

    if not encryption_key:
        if require_encryption:
            raise ConfigError("ENCRYPTION_KEY is required when REQUIRE_ENCRYPTION is set")
        logger.warning("No ENCRYPTION_KEY set - database is NOT encrypted")
        return _plain_sqlite_engine(db_path)

    try:
        import pysqlcipher3.dbapi2 as sqlcipher
    except ImportError:
        if require_encryption:
            raise ImportError(
                "pysqlcipher3 is required for database encryption. "
                "Install it with: pip install pysqlcipher3"
            )
        logger.warning("SQLCipher not available - database is NOT encrypted!")
        logger.warning("Install pysqlcipher3 for encryption: pip install pysqlcipher3")
        return _plain_sqlite_engine(db_path)

    key = encryption_key

    def connection_creator():
        conn = sqlcipher.connect(db_path, check_same_thread=False)
        cursor = conn.cursor()
        # Escape quotes in key for PRAGMA statement
        escaped_key = key.replace("'", "''")
        cursor.execute(f"PRAGMA key = '{escaped_key}'")
        cursor.close()
        return ConnectionWrapper(conn)

    engine = create_engine(
        "sqlite://",  # URL is ignored when using creator
        creator=connection_creator,
        echo=False
    )

    logger.info("Database engine created with SQLCipher encryption")
    return engine


def _plain_sqlite_engine(db_path: str) -> Engine:
    if db_path == ":memory:":
        # One shared connection so every session sees the same in-memory DB
        return create_engine(
            "sqlite://",
            echo=False,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
        )

    return create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={'check_same_thread': False}
    )

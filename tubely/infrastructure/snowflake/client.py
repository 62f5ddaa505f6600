"""
Connections to the Snowflake warehouse that holds video records.

get_snowflake_connection opens a real session for one unit of work and
closes it afterwards. MockSnowflakeConnection keeps VIDEOS rows in a dict
and understands only the statements VideoRepository issues, which is
enough for local development and the test suite.
"""

import base64
import logging
import re
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from .repositories.videos import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when a Snowflake session can't be opened."""
    pass


def _private_key_der(config: SnowflakeConfig) -> bytes:
    """
    PKCS8 DER bytes for key-pair auth.

    The PEM comes from private_key_path if set, else from the base64
    value (for hosts where mounting a key file is awkward).
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    if config.private_key_path:
        with open(config.private_key_path, "rb") as key_file:
            pem = key_file.read()
    else:
        pem = base64.b64decode(config.private_key_base64 or "")

    key = serialization.load_pem_private_key(pem, password=None, backend=default_backend())
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _connect_params(config: SnowflakeConfig) -> dict[str, Any]:
    """Keyword arguments for snowflake.connector.connect. Key-pair wins over password."""
    params: dict[str, Any] = {
        "account": config.account,
        "user": config.user,
        "database": config.database,
        "schema": config.schema,
        "warehouse": config.warehouse,
        "client_session_keep_alive": True,
    }
    if config.role:
        params["role"] = config.role

    if config.private_key_path or config.private_key_base64:
        params["private_key"] = _private_key_der(config)
        logger.info("Authenticating to Snowflake with key pair")
    elif config.password:
        params["password"] = config.password
        logger.info("Authenticating to Snowflake with password")
    else:
        raise SnowflakeConnectionError("Either password or a private key must be provided")

    return params


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Iterator[SnowflakeConnection]:
    """
    Open a session, yield it, and close it when the block exits.

        with get_snowflake_connection(config) as conn:
            VideoRepository(conn).get_video(video_id)
    """
    import snowflake.connector

    params = _connect_params(config)
    try:
        conn = snowflake.connector.connect(**params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Could not open Snowflake session",
            extra={"account": config.account, "error": str(e)}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    logger.debug(
        "Opened Snowflake session",
        extra={"account": config.account, "database": config.database, "schema": config.schema}
    )
    try:
        yield conn
    finally:
        try:
            conn.close()
        except Exception as e:
            logger.warning("Snowflake session did not close cleanly", extra={"error": str(e)})


# ---------------------------------------------------------------------------
# In-memory stand-in
# ---------------------------------------------------------------------------

# VIDEOS column positions in stored row tuples
_ID, _USER_ID, _CREATED_AT = 0, 1, 6


class MockSnowflakeCursor:
    """
    Cursor over the in-memory VIDEOS table.

    Statements are recognised by regex on their normalised text. Anything
    VideoRepository doesn't send raises ValueError, so a new query shows
    up as a test failure instead of silently returning nothing.
    """

    def __init__(self, videos: dict[str, tuple]) -> None:
        self._videos = videos
        self._results: list[tuple] = []
        self.rowcount = 0
        self._handlers: list[tuple[re.Pattern, Callable[[tuple], None]]] = [
            (re.compile(r"^INSERT INTO VIDEOS\b"), self._insert),
            (re.compile(r"^SELECT .* FROM VIDEOS WHERE VIDEO_ID\b"), self._select_by_id),
            (re.compile(r"^SELECT .* FROM VIDEOS WHERE USER_ID\b"), self._select_by_user),
            (re.compile(r"^UPDATE VIDEOS SET\b"), self._update),
            (re.compile(r"^CREATE TABLE\b"), lambda params: None),
        ]

    def execute(self, query: str, params: Optional[tuple] = None) -> "MockSnowflakeCursor":
        statement = " ".join(query.upper().split())
        self._results = []
        self.rowcount = 0

        for pattern, handler in self._handlers:
            if pattern.search(statement):
                handler(tuple(params or ()))
                return self

        raise ValueError(f"Mock cursor can't execute: {statement[:60]}")

    def _insert(self, params: tuple) -> None:
        self._videos[str(params[_ID])] = params
        self.rowcount = 1

    def _select_by_id(self, params: tuple) -> None:
        row = self._videos.get(str(params[0]))
        self._results = [row] if row else []

    def _select_by_user(self, params: tuple) -> None:
        owned = [row for row in self._videos.values() if row[_USER_ID] == str(params[0])]
        self._results = sorted(owned, key=lambda row: row[_CREATED_AT], reverse=True)

    def _update(self, params: tuple) -> None:
        *fields, video_id = params
        existing = self._videos.get(str(video_id))
        if existing is None:
            return
        title, description, thumbnail_url, video_url, updated_at = fields
        # id, owner and creation time survive every update
        self._videos[str(video_id)] = (
            existing[_ID], existing[_USER_ID],
            title, description, thumbnail_url, video_url,
            existing[_CREATED_AT], updated_at,
        )
        self.rowcount = 1

    def fetchone(self) -> Optional[tuple]:
        return self._results[0] if self._results else None

    def fetchall(self) -> list[tuple]:
        return list(self._results)

    def close(self) -> None:
        pass


class MockSnowflakeConnection:
    """A connection whose only table is VIDEOS, held in a dict keyed by video ID."""

    def __init__(self) -> None:
        self._videos: dict[str, tuple] = {}
        logger.info("Using in-memory Snowflake stand-in")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._videos)

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    def close(self) -> None:
        pass


@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Iterator[SnowflakeConnection]:
    """
    Yield a real session, or a fresh in-memory one in mock mode.

    config is required outside mock mode.
    """
    if mock_mode:
        yield MockSnowflakeConnection()
        return

    if config is None:
        raise ValueError("config is required when not in mock mode")

    with get_snowflake_connection(config) as conn:
        yield conn

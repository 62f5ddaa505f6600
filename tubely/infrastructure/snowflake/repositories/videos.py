"""
Snowflake repository for video records.

This module implements the repository pattern for video data access.
The repository:
1. Translates between the Video domain model and VIDEOS rows
2. Encapsulates all SQL queries
3. Provides a clean interface for the application layer

USER_ID is written once on insert and never touched by updates.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from ....core.media.errors import RecordStoreError, VideoNotFoundError
from ....core.media.models import Video


logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "TUBELY"
    schema: str = "PUBLIC"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


_VIDEO_COLUMNS = """
    VIDEO_ID,
    USER_ID,
    TITLE,
    DESCRIPTION,
    THUMBNAIL_URL,
    VIDEO_URL,
    CREATED_AT,
    UPDATED_AT
"""


class VideoRepository:
    """
    Repository for video record persistence.

    Every method runs in its own cursor and commits before returning.
    Lookups of a missing video raise VideoNotFoundError; every other
    database failure surfaces as RecordStoreError.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def create_video(self, video: Video) -> Video:
        self._write(
            f"INSERT INTO VIDEOS ({_VIDEO_COLUMNS}) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
            (
                str(video.id),
                str(video.user_id),
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.created_at,
                video.updated_at,
            ),
            video.id,
        )
        logger.info(
            "Created video record",
            extra={"video_id": str(video.id), "user_id": str(video.user_id)}
        )
        return video

    def get_video(self, video_id: UUID) -> Video:
        rows = self._read(
            f"SELECT {_VIDEO_COLUMNS} FROM VIDEOS WHERE VIDEO_ID = %s",
            (str(video_id),),
        )
        if not rows:
            raise VideoNotFoundError(f"No video with ID {video_id}")
        return self._row_to_video(rows[0])

    def list_videos(self, user_id: UUID) -> list[Video]:
        """A user's videos, newest first."""
        rows = self._read(
            f"SELECT {_VIDEO_COLUMNS} FROM VIDEOS WHERE USER_ID = %s ORDER BY CREATED_AT DESC",
            (str(user_id),),
        )
        return [self._row_to_video(row) for row in rows]

    def update_video(self, video: Video) -> None:
        """Overwrite the mutable fields of an existing record. Last write wins."""
        rowcount = self._write(
            """
            UPDATE VIDEOS SET
                TITLE = %s,
                DESCRIPTION = %s,
                THUMBNAIL_URL = %s,
                VIDEO_URL = %s,
                UPDATED_AT = %s
            WHERE VIDEO_ID = %s
            """,
            (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.updated_at,
                str(video.id),
            ),
            video.id,
        )
        if rowcount == 0:
            raise VideoNotFoundError(f"No video with ID {video.id}")

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _read(self, query: str, params: tuple) -> list:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        except Exception as e:
            logger.error("Failed to read videos", extra={"params": params, "error": str(e)})
            raise RecordStoreError(f"Could not read video record: {e}") from e
        finally:
            cursor.close()

    def _write(self, query: str, params: tuple, video_id: UUID) -> int:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, params)
            rowcount = cursor.rowcount
            self._conn.commit()
            return rowcount
        except Exception as e:
            logger.error(
                "Failed to write video",
                extra={"video_id": str(video_id), "error": str(e)}
            )
            raise RecordStoreError(f"Could not write video record: {e}") from e
        finally:
            cursor.close()

    @staticmethod
    def _row_to_video(row: tuple) -> Video:
        (
            video_id,
            user_id,
            title,
            description,
            thumbnail_url,
            video_url,
            created_at,
            updated_at,
        ) = row
        return Video(
            id=UUID(str(video_id)),
            user_id=UUID(str(user_id)),
            title=title or "",
            description=description or "",
            thumbnail_url=thumbnail_url,
            video_url=video_url,
            created_at=created_at or datetime.utcnow(),
            updated_at=updated_at or datetime.utcnow(),
        )

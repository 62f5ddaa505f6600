"""
Snowflake repositories.
"""

from .videos import SnowflakeConfig, SnowflakeConnection, VideoRepository

__all__ = ["SnowflakeConfig", "SnowflakeConnection", "VideoRepository"]

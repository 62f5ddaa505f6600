"""
Application configuration.

Settings come from environment variables (or .env) via pydantic-settings,
with mock modes for running without S3, Snowflake or FFmpeg.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]

"""
Tubely - video hosting backend.

This package contains the complete application:
- core: Framework-agnostic business logic (upload pipeline, orientation)
- infrastructure: External service integrations (ffmpeg, S3, Snowflake, JWT)
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"

"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- auth: JWT bearer tokens
- snowflake: Video record persistence
- storage: Object storage (S3/R2) and the local assets directory
- video: FFmpeg/FFprobe processing

These wrappers translate between external formats and our domain models.
"""

"""
Core business logic for video uploads.

This package is framework-agnostic - it doesn't import FastAPI, boto3,
Snowflake, or subprocess. External tools and services are reached through
the Protocols declared in core.media.uploads, so the pipeline can be
tested with fakes.
"""

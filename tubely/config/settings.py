"""
Tubely configuration.

Every field maps to an environment variable of the same name (case
insensitive), optionally read from a .env file. Pydantic checks types
when Settings() is built, so a malformed value stops the app at startup.

The three *_mock_mode switches replace S3, Snowflake and ffmpeg with
in-process stand-ins.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the API process."""

    # API
    api_title: str = "Tubely API"
    api_version: str = "v1"
    platform: str = Field(
        default="dev",
        description="Where this instance runs. 'dev' turns on uvicorn reload."
    )
    port: int = Field(default=8091, description="Port the API is served on")

    # Authentication
    jwt_secret: str = Field(
        default="",
        description="HMAC secret used to sign and verify access tokens"
    )

    # Local assets (thumbnails)
    assets_root: str = Field(
        default="./assets",
        description="Directory thumbnails are written to and served from"
    )
    assets_base_url: Optional[str] = Field(
        default=None,
        description="Public URL prefix for assets. Defaults to http://localhost:{port}/assets"
    )

    # Object storage
    s3_bucket: str = Field(
        default="tubely-videos",
        description="Bucket uploaded videos are stored in"
    )
    s3_region: str = Field(default="us-east-1", description="S3 region")
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible stores (R2, MinIO). None means AWS."
    )
    s3_access_key_id: str = Field(
        default="",
        description="Access key ID. Empty falls back to boto3's default credential chain."
    )
    s3_secret_access_key: str = Field(default="", description="Secret access key")
    s3_mock_mode: bool = Field(
        default=False,
        description="Keep objects in memory and hand out mock:// URLs"
    )

    # Video records (Snowflake)
    snowflake_account: str = Field(default="", description="Account identifier, e.g. xy12345.us-east-1")
    snowflake_user: str = Field(default="", description="User the API connects as")
    snowflake_password: str = Field(default="", description="Password, if not using a key pair")
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="PEM private key file for key-pair auth"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="The same PEM, base64-encoded, for hosts without a key file"
    )
    snowflake_database: str = Field(default="TUBELY", description="Database holding VIDEOS")
    snowflake_schema: str = Field(default="PUBLIC", description="Schema holding VIDEOS")
    snowflake_warehouse: str = Field(default="COMPUTE_WH", description="Warehouse queries run on")
    snowflake_role: Optional[str] = Field(default=None, description="Role to assume; None keeps the user's default")
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Keep video records in an in-process dict instead of Snowflake"
    )

    # Video processing
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg binary")
    ffprobe_path: str = Field(default="ffprobe", description="ffprobe binary")
    video_processor_mock_mode: bool = Field(
        default=False,
        description="Skip ffmpeg: copy files as-is and report 1920x1080 for every video."
    )
    upload_temp_dir: Optional[str] = Field(
        default=None,
        description="Where staged and remuxed uploads live. None uses the system temp dir."
    )

    # Upload limits
    max_video_upload_bytes: int = Field(
        default=1 << 30,
        description="Maximum video upload size (1 GiB)"
    )
    max_thumbnail_upload_bytes: int = Field(
        default=10 << 20,
        description="Maximum thumbnail upload size (10 MiB)"
    )
    presigned_url_expiry_seconds: int = Field(
        default=15 * 60,
        description="Lifetime of presigned video URLs handed to clients"
    )

    log_level: str = Field(default="INFO", description="Root logger level")

    cors_origins: str = Field(
        default="http://localhost:8091",
        description="Allowed origins, comma-separated, or * to allow any"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def assets_url(self) -> str:
        """Public URL prefix thumbnails are linked under."""
        if self.assets_base_url:
            return self.assets_base_url.rstrip("/")
        return f"http://localhost:{self.port}/assets"

    def validate_required_fields(self) -> list[str]:
        """
        Names of environment variables that must be set but aren't.

        What counts as required depends on the mock modes, which is why
        this isn't a pydantic validator.
        """
        missing = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        if not self.s3_mock_mode and not self.s3_bucket:
            missing.append("S3_BUCKET")

        if not self.snowflake_mock_mode:
            for name in ("snowflake_account", "snowflake_user"):
                if not getattr(self, name):
                    missing.append(name.upper())
            has_key = self.snowflake_private_key_path or self.snowflake_private_key_base64
            if not (self.snowflake_password or has_key):
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide Settings, built on first call.

    Tests that change the environment call get_settings.cache_clear().
    """
    return Settings()

"""
Liveness and readiness probes.

/health answers as long as the process is up. /health/ready also checks
that uploads could actually succeed: configuration is complete, ffmpeg and
ffprobe can be found, and the assets disk has room.
"""

import logging
import shutil
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import AssetStoreDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()

# Refuse traffic when the assets disk is nearly full
MIN_FREE_ASSET_BYTES = 100 << 20


class HealthResponse(BaseModel):
    """Liveness payload."""
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """One dependency's verdict."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None
    detail: str | None = None


class ReadinessResponse(BaseModel):
    """Overall verdict plus each check."""
    status: str  # ready | not_ready
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Always 200 while the process is up.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Liveness check. Fast, and never touches external dependencies."""
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "s3": settings.s3_mock_mode,
                "video_processor": settings.video_processor_mock_mode,
            }
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the service can handle traffic.",
    responses={
        503: {
            "description": "At least one check failed",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    response: Response,
    settings: SettingsDep,
    assets: AssetStoreDep,
) -> ReadinessResponse:
    """503 with the failing checks listed if any dependency is missing."""
    checks: list[ReadinessCheck] = []

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error="unset: " + ", ".join(missing_fields)
        ))
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    if settings.video_processor_mock_mode:
        checks.append(ReadinessCheck(name="ffmpeg", status="ok", detail="mock mode"))
    else:
        for tool in (settings.ffmpeg_path, settings.ffprobe_path):
            if shutil.which(tool):
                checks.append(ReadinessCheck(name=tool, status="ok"))
            else:
                checks.append(ReadinessCheck(name=tool, status="error", error="not found on PATH"))

    if assets.has_free_space(MIN_FREE_ASSET_BYTES):
        checks.append(ReadinessCheck(name="assets", status="ok"))
    else:
        checks.append(ReadinessCheck(
            name="assets",
            status="error",
            error=f"{assets.root} is missing or nearly full"
        ))

    all_ok = all(check.status == "ok" for check in checks)
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    check.model_dump() for check in checks if check.status != "ok"
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )

"""Health check endpoints."""
import subprocess
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_app_config
from core.config import AppConfig
from core.secrets import check_production_readiness

router = APIRouter()

# Version info - updated on build/deploy
APP_VERSION = "1.0.0"
BUILD_TIME = datetime.now(timezone.utc).isoformat()


def get_git_info() -> Dict[str, str]:
    """Get git commit info for version tracking."""
    try:
        git_sha = subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],
            stderr=subprocess.DEVNULL
        ).decode().strip()
        git_branch = subprocess.check_output(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            stderr=subprocess.DEVNULL
        ).decode().strip()
        return {"sha": git_sha, "branch": git_branch}
    except (OSError, subprocess.CalledProcessError):
        return {"sha": "unknown", "branch": "unknown"}


class HealthResponse(BaseModel):
    """Health check response."""
    success: bool = True
    status: str
    version: str
    git_sha: str
    git_branch: str
    build_time: str
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(config: AppConfig = Depends(get_app_config)):
    """
    Health check endpoint.

    Reports configuration status without calling Google:
    - Service account credentials present
    - Which sheet layout is configured (workbook / folder)
    - Invoice folder and login settings
    """
    google = config.google
    auth_warnings = check_production_readiness(
        config.auth.session_secret, config.auth.shift_password
    )
    checks = {
        "google_credentials": {"configured": google.has_credentials},
        "workbook": {"configured": bool(google.spreadsheet_id)},
        "auction_folder": {"configured": bool(google.auction_sheets_folder_id)},
        "invoices_folder": {"configured": bool(google.invoices_folder_id)},
        "auth": {"configured": not config.auth.validate(), "warnings": auth_warnings},
    }

    overall_status = "healthy"
    if google.validate() or config.auth.validate():
        overall_status = "degraded"

    git_info = get_git_info()

    return HealthResponse(
        status=overall_status,
        version=APP_VERSION,
        git_sha=git_info["sha"],
        git_branch=git_info["branch"],
        build_time=BUILD_TIME,
        checks=checks,
    )


@router.get("/ready")
async def readiness_check():
    """Simple readiness probe for k8s/docker."""
    return {"success": True, "ready": True}


@router.get("/live")
async def liveness_check():
    """Simple liveness probe for k8s/docker."""
    return {"success": True, "alive": True}

"""
Health check API routes for system monitoring.
"""

import time
from typing import Any, Dict

from fastapi import APIRouter

from ... import dependencies
from ...config.settings import get_settings
from ...core.logging_config import get_all_component_stats

router = APIRouter()

_started_at = time.time()


@router.get("")
def health() -> Dict[str, Any]:
    """Liveness plus basic registry information."""
    registry = dependencies.artifact_registry
    settings = get_settings()
    return {
        "status": "healthy" if registry is not None else "initializing",
        "uptime_seconds": round(time.time() - _started_at, 3),
        "registry": {
            "initialized": registry is not None,
            "resolved_artifacts": len(registry) if registry is not None else 0,
            "repositories": [repo.url for repo in registry.repositories] if registry is not None else [],
        },
        "remote_fetch_enabled": settings.remote_fetch_enabled,
        "configuration_warnings": settings.validate_settings(),
    }


@router.get("/logging")
def logging_stats() -> Dict[str, Any]:
    """Per-component log counters."""
    return get_all_component_stats()

"""
Dependency injection for FastAPI routes.
"""

from typing import Optional

from fastapi import HTTPException

from .services.artifact_registry import ArtifactRegistry

# Global registry - set by main.py / create_app during startup
artifact_registry: Optional[ArtifactRegistry] = None


def set_registry(registry: Optional[ArtifactRegistry]):
    """Set the global registry instance."""
    global artifact_registry
    artifact_registry = registry


def get_registry() -> ArtifactRegistry:
    """Get the artifact registry."""
    if artifact_registry is None:
        raise HTTPException(status_code=503, detail="Artifact registry not initialized")
    return artifact_registry

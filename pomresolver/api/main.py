from typing import Optional

from fastapi import FastAPI

from .. import dependencies
from ..config.settings import Settings, get_settings
from ..services.artifact_registry import ArtifactRegistry

# Routers
from .routes import health as health_routes
from .routes.artifacts import router as artifacts_router


def create_app(registry: Optional[ArtifactRegistry] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, version="1.0.0")

    # Tests and embedding callers can pass a preconfigured registry
    if registry is None and dependencies.artifact_registry is None:
        registry = ArtifactRegistry(settings)
    if registry is not None:
        dependencies.set_registry(registry)
    app.state.registry = dependencies.artifact_registry

    app.include_router(health_routes.router, prefix="/api/v1/health", tags=["health"])
    app.include_router(artifacts_router, prefix="/api/v1/artifacts", tags=["artifacts"])

    return app

"""
Artifact resolution API router.

GET /api/v1/artifacts/{group_id}/{artifact_id}/{version} returns the effective
metadata, active profiles, flattened dependencies and the diagnostics recorded
while loading the descriptor chain.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ...core.exceptions import (
    CyclicReferenceError,
    FetchError,
    InvalidScopeError,
    OperationCancelledError,
    ParseError,
    PomResolverError,
)
from ...core.logging_config import get_logger
from ...dependencies import get_registry
from ...processing.maven_model import Coordinate, Dependency
from ...processing.version_resolver import VersionResolver
from ...services.artifact_registry import ArtifactRegistry

router = APIRouter()
logger = get_logger("artifacts_api")

_STATUS_BY_ERROR = (
    (CyclicReferenceError, 409),
    (InvalidScopeError, 422),
    (ParseError, 400),
    (FetchError, 502),
    (OperationCancelledError, 503),
)


# -------- Response Models --------

class LicenseModel(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None


class ExclusionModel(BaseModel):
    group_id: str
    artifact_id: str


class DependencyModel(BaseModel):
    group_id: str
    artifact_id: str
    version: str
    scope: str
    optional: bool = False
    exclusions: List[ExclusionModel] = Field(default_factory=list)


class ProfileModel(BaseModel):
    id: Optional[str] = None
    active: bool
    reason: str
    property_count: int = Field(0, description="Number of declared properties")


class DiagnosticModel(BaseModel):
    kind: str
    severity: str
    message: str
    coordinate: str
    subject: Optional[str] = None


class ArtifactResponse(BaseModel):
    coordinate: str
    version: str
    name: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    parent: Optional[str] = None
    imports: List[Optional[str]] = Field(default_factory=list)
    licenses: List[LicenseModel] = Field(default_factory=list)
    profiles: List[ProfileModel] = Field(default_factory=list)
    dependencies: List[DependencyModel] = Field(default_factory=list)
    diagnostics: List[DiagnosticModel] = Field(default_factory=list)


class ManagedVersionResponse(BaseModel):
    coordinate: str
    group_id: str
    artifact_id: str
    version: Optional[str] = None


# -------- Helpers --------

def _dependency_model(dependency: Dependency) -> DependencyModel:
    return DependencyModel(
        group_id=dependency.group_id,
        artifact_id=dependency.artifact_id,
        version=dependency.version,
        scope=dependency.scope.value,
        optional=dependency.optional,
        exclusions=[
            ExclusionModel(group_id=e.group_id, artifact_id=e.artifact_id)
            for e in sorted(dependency.exclusions, key=lambda c: c.ga)
        ],
    )


def _collect_diagnostics(version: VersionResolver) -> List[DiagnosticModel]:
    diagnostics = []
    seen = set()
    pending = [version]
    while pending:
        current = pending.pop(0)
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        diagnostics.extend(DiagnosticModel(**d.to_dict()) for d in current.diagnostics)
        pending.append(current.parent)
        pending.extend(current.imports)
    return diagnostics


def _resolve(registry: ArtifactRegistry, coordinate: Coordinate) -> VersionResolver:
    try:
        return registry.resolve(coordinate)
    except PomResolverError as e:
        for error_type, status_code in _STATUS_BY_ERROR:
            if isinstance(e, error_type):
                logger.warning("Artifact resolution failed", coordinate=coordinate.path, status=status_code)
                raise HTTPException(status_code=status_code, detail=e.to_dict())
        raise HTTPException(status_code=500, detail=e.to_dict())


# -------- Routes --------

@router.get("/{group_id}/{artifact_id}/{version}", response_model=ArtifactResponse)
def get_artifact(
    group_id: str,
    artifact_id: str,
    version: str,
    registry: ArtifactRegistry = Depends(get_registry),
) -> ArtifactResponse:
    """Resolve an artifact and return its effective dependency set."""
    resolved = _resolve(registry, Coordinate(group_id, artifact_id, version))
    return ArtifactResponse(
        coordinate=resolved.coordinate.path,
        version=resolved.version,
        name=resolved.name,
        description=resolved.description,
        url=resolved.url,
        parent=resolved.parent.path if resolved.parent else None,
        imports=[imported.path if imported else None for imported in resolved.imports],
        licenses=[LicenseModel(name=lic.name, url=lic.url) for lic in resolved.licenses],
        profiles=[
            ProfileModel(
                id=profile.id,
                active=profile.active,
                reason=profile.activation.reason,
                property_count=len(profile.properties),
            )
            for profile in resolved.profiles
        ],
        dependencies=[_dependency_model(d) for d in resolved.get_dependencies()],
        diagnostics=_collect_diagnostics(resolved),
    )


@router.get("/{group_id}/{artifact_id}/{version}/managed-version", response_model=ManagedVersionResponse)
def get_managed_version(
    group_id: str,
    artifact_id: str,
    version: str,
    dependency_group_id: str = Query(..., alias="groupId"),
    dependency_artifact_id: str = Query(..., alias="artifactId"),
    registry: ArtifactRegistry = Depends(get_registry),
) -> ManagedVersionResponse:
    """Look up the managed version of a dependency through the artifact's management chain."""
    resolved = _resolve(registry, Coordinate(group_id, artifact_id, version))
    return ManagedVersionResponse(
        coordinate=resolved.coordinate.path,
        group_id=dependency_group_id,
        artifact_id=dependency_artifact_id,
        version=resolved.find_dependency_version(dependency_group_id, dependency_artifact_id),
    )

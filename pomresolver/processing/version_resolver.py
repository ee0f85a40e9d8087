"""
Maven artifact version descriptor (POM) resolution.

A VersionResolver is built once per coordinate by the ArtifactRegistry. Loading
reads the descriptor, links the parent, evaluates profiles and parses
dependency management and dependencies. Parent and imported BOM versions are
registry-owned instances; this object only holds handles to them.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..core.logging_config import get_logger
from ..services.repository import MavenRepository
from .maven_model import (
    FILE_JAR,
    FILE_POM,
    ROOT_PROFILE_ID,
    ActivationDecision,
    Coordinate,
    Dependency,
    DependencyScope,
    DiagnosticKind,
    DiagnosticSeverity,
    License,
    Profile,
    ResolutionDiagnostic,
)
from .pom_document import (
    get_body,
    get_child,
    get_child_body,
    get_child_list,
    get_container_list,
    local_name,
    parse_document,
    to_boolean,
)
from .profile_activation import evaluate_activation
from .variable_resolver import VariableResolver

if TYPE_CHECKING:
    from ..services.artifact_registry import ArtifactRegistry
    from ..services.resolution_context import ResolutionContext

logger = get_logger("version_resolver")


@dataclass
class ParsedDependencies:
    """Dependencies kept from a <dependencies> block and the entries dropped on the way."""
    dependencies: List[Dependency] = field(default_factory=list)
    diagnostics: List[ResolutionDiagnostic] = field(default_factory=list)


class VersionResolver:
    """Effective metadata and dependencies of one artifact version."""

    def __init__(
        self,
        registry: 'ArtifactRegistry',
        repository: 'MavenRepository',
        coordinate: Coordinate,
        context: 'ResolutionContext',
    ):
        self._registry = registry
        self._repository = repository
        self._coordinate = coordinate
        self._version = coordinate.version
        self._version_declared = False
        self._name: Optional[str] = None
        self._description: Optional[str] = None
        self._url: Optional[str] = None
        self._parent: Optional[VersionResolver] = None
        self._parent_reference: Optional[Coordinate] = None
        self._imports: List[Optional[VersionResolver]] = []
        self._licenses: List[License] = []
        self._profiles: List[Profile] = []
        self._diagnostics: List[ResolutionDiagnostic] = []
        self._descriptor_path: Optional[Path] = None
        self._variables = VariableResolver(self)

        self._load(context)

    # ------------------------------------------------------------------ accessors

    @property
    def coordinate(self) -> Coordinate:
        return self._coordinate

    @property
    def repository(self) -> 'MavenRepository':
        return self._repository

    @property
    def version(self) -> str:
        return self._version

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def parent(self) -> Optional['VersionResolver']:
        return self._parent

    @property
    def parent_reference(self) -> Optional[Coordinate]:
        return self._parent_reference

    @property
    def imports(self) -> Tuple[Optional['VersionResolver'], ...]:
        return tuple(self._imports)

    @property
    def licenses(self) -> Tuple[License, ...]:
        return tuple(self._licenses)

    @property
    def profiles(self) -> Tuple[Profile, ...]:
        return tuple(self._profiles)

    @property
    def diagnostics(self) -> Tuple[ResolutionDiagnostic, ...]:
        return tuple(self._diagnostics)

    @property
    def descriptor_path(self) -> Optional[Path]:
        return self._descriptor_path

    @property
    def variables(self) -> VariableResolver:
        return self._variables

    @property
    def path(self) -> str:
        return f"{self._coordinate.group_id}:{self._coordinate.artifact_id}:{self._version}"

    def active_profiles(self) -> List[Profile]:
        return [profile for profile in self._profiles if profile.active]

    def get_cache_file(self) -> Path:
        """Where the artifact jar lives locally."""
        coordinate = Coordinate(self._coordinate.group_id, self._coordinate.artifact_id, self._version)
        if self._repository.is_local:
            return self._repository.local_file(coordinate, FILE_JAR)
        return self._repository.cache_file(coordinate, FILE_JAR)

    def get_external_url(self, file_type: str) -> str:
        coordinate = Coordinate(self._coordinate.group_id, self._coordinate.artifact_id, self._version)
        return self._repository.file_url(coordinate, file_type)

    def __str__(self) -> str:
        return self.path

    def __repr__(self) -> str:
        return f"<VersionResolver {self.path}>"

    # ------------------------------------------------------------------ queries

    def get_dependencies(self) -> List[Dependency]:
        """Active profile dependencies in declaration order, then the parent's. Not deduplicated."""
        dependencies: List[Dependency] = []
        for profile in self._profiles:
            if profile.active:
                dependencies.extend(profile.dependencies)
        if self._parent is not None:
            dependencies.extend(self._parent.get_dependencies())
        return dependencies

    def find_dependency_version(self, group_id: str, artifact_id: str) -> Optional[str]:
        """Managed version for group_id:artifact_id: own profiles, then imported BOMs, then parent."""
        for profile in self._profiles:
            if profile.active:
                managed = profile.find_managed_version(group_id, artifact_id)
                if managed is not None:
                    return managed
        for imported in self._imports:
            if imported is None:
                continue
            managed = imported.find_dependency_version(group_id, artifact_id)
            if managed is not None:
                return managed
        if self._parent is None:
            return None
        return self._parent.find_dependency_version(group_id, artifact_id)

    def evaluate(self, value: Optional[str]) -> Optional[str]:
        return self._variables.evaluate(value)

    # ------------------------------------------------------------------ loading

    def locate_descriptor(self, context: 'ResolutionContext') -> Optional[Path]:
        """Local descriptor file, downloading it into the cache when allowed."""
        if self._repository.is_local:
            local_pom = self._repository.local_file(self._coordinate, FILE_POM)
            if local_pom.exists():
                return local_pom
            self._diagnose(
                DiagnosticKind.MISSING_DESCRIPTOR,
                f"Local POM missing for {self}",
                subject=str(local_pom),
            )
            return None

        local_pom = self._repository.cache_file(self._coordinate, FILE_POM)
        if local_pom.exists():
            return local_pom
        if not context.allow_remote_fetch:
            self._diagnose(
                DiagnosticKind.MISSING_DESCRIPTOR,
                f"Local POM missing for {self}",
                subject=str(local_pom),
            )
            return None

        remote_pom = self._repository.file_url(self._coordinate, FILE_POM)
        context.sub_task(f"Download POM {remote_pom}")
        return self._registry.fetcher.download(remote_pom, local_pom, context)

    def _load(self, context: 'ResolutionContext'):
        self._descriptor_path = self.locate_descriptor(context)
        if self._descriptor_path is None:
            self._profiles.append(Profile(ROOT_PROFILE_ID, ActivationDecision.always()))
            return

        context.sub_task(f"Load POM {self}")
        root = parse_document(self._descriptor_path)

        self._name = get_child_body(root, "name")
        self._url = get_child_body(root, "url")
        self._description = get_child_body(root, "description")
        declared_version = get_child_body(root, "version")
        if declared_version:
            self._assign_version(declared_version)

        self._load_parent(root, context)

        for license_element in get_container_list(root, "licenses", "license"):
            self._licenses.append(License(
                name=get_child_body(license_element, "name"),
                url=get_child_body(license_element, "url"),
            ))

        default_profile = Profile(ROOT_PROFILE_ID, ActivationDecision.always())
        self._profiles.append(default_profile)
        self._parse_profile(default_profile, root, context)

        for profile_element in get_container_list(root, "profiles", "profile"):
            # Activation is decided before any of the profile content is read
            decision = evaluate_activation(profile_element, self._registry.platform_version)
            profile = Profile(get_child_body(profile_element, "id"), decision)
            self._profiles.append(profile)
            self._parse_profile(profile, profile_element, context)

        context.worked(1)

    def _assign_version(self, version: str):
        if self._version_declared:
            return
        self._version = version
        self._version_declared = True

    def _load_parent(self, root: ET.Element, context: 'ResolutionContext'):
        parent_element = get_child(root, "parent")
        if parent_element is None:
            return

        group_id = get_child_body(parent_element, "groupId")
        artifact_id = get_child_body(parent_element, "artifactId")
        version = get_child_body(parent_element, "version")
        if group_id is None or artifact_id is None or version is None:
            self._diagnose(
                DiagnosticKind.BROKEN_PARENT_REFERENCE,
                f"Broken parent reference: {group_id}:{artifact_id}:{version}",
                severity=DiagnosticSeverity.ERROR,
            )
            return

        self._parent_reference = Coordinate(group_id, artifact_id, version)
        self._assign_version(version)

        context.check_cancelled(f"resolve parent {self._parent_reference}")
        self._parent = self._registry.find_version(self._parent_reference, context)
        if self._parent is None:
            self._diagnose(
                DiagnosticKind.UNRESOLVED_PARENT,
                f"Artifact [{self}] parent [{self._parent_reference}] not found",
                severity=DiagnosticSeverity.ERROR,
                subject=self._parent_reference.path,
            )

    def _parse_profile(self, profile: Profile, element: ET.Element, context: 'ResolutionContext'):
        if not profile.active:
            # Inactive toolchain profiles usually reference versions that can't be resolved
            return

        properties_element = get_child(element, "properties")
        if properties_element is not None:
            for prop in get_child_list(properties_element):
                value = get_body(prop)
                if value is not None:
                    profile.properties[local_name(prop)] = value

        self._parse_repositories(element, context)

        management_element = get_child(element, "dependencyManagement")
        if management_element is not None:
            parsed = self.parse_dependencies(management_element, True, context)
            profile.dependency_management = parsed.dependencies
            self._diagnostics.extend(parsed.diagnostics)

        parsed = self.parse_dependencies(element, False, context)
        profile.dependencies = parsed.dependencies
        self._diagnostics.extend(parsed.diagnostics)

    def _parse_repositories(self, element: ET.Element, context: 'ResolutionContext'):
        declared = []
        for repo_element in get_container_list(element, "repositories", "repository"):
            repo_id = get_child_body(repo_element, "id")
            repo_url = get_child_body(repo_element, "url")
            if not repo_url:
                continue
            repository = MavenRepository(
                id=repo_id or repo_url,
                name=get_child_body(repo_element, "name") or repo_id or repo_url,
                url=repo_url.rstrip("/"),
                layout=get_child_body(repo_element, "layout") or "default",
            )
            if repository.layout == "legacy":
                logger.debug("Skip legacy repository", repository=str(repository))
                continue
            releases_element = get_child(repo_element, "releases")
            if releases_element is None:
                continue
            if to_boolean(get_child_body(releases_element, "enabled")):
                declared.append(repository)
        if declared:
            context.add_repositories(declared)

    def parse_dependencies(
        self,
        element: ET.Element,
        dep_management: bool,
        context: 'ResolutionContext',
    ) -> ParsedDependencies:
        """Parse the <dependencies> child of ``element``.

        Management entries are always kept. Plain entries are kept only when
        they are not optional and their scope is compile or runtime. Import
        scoped management entries are resolved as BOMs and appended to
        ``imports`` instead of being returned.

        Raises:
            InvalidScopeError: on an unrecognised <scope> literal.
        """
        result = ParsedDependencies()
        dependencies_element = get_child(element, "dependencies")
        if dependencies_element is None:
            return result

        for dep in get_child_list(dependencies_element, "dependency"):
            group_id = self.evaluate(get_child_body(dep, "groupId"))
            artifact_id = self.evaluate(get_child_body(dep, "artifactId"))
            if group_id is None or artifact_id is None:
                result.diagnostics.append(self._diagnose(
                    DiagnosticKind.BROKEN_DEPENDENCY_REFERENCE,
                    f"Broken dependency reference: {group_id}:{artifact_id}",
                    record=False,
                ))
                continue

            scope = DependencyScope.from_text(get_child_body(dep, "scope"))
            optional = to_boolean(get_child_body(dep, "optional"))
            version = self.evaluate(get_child_body(dep, "version"))

            if dep_management and scope == DependencyScope.IMPORT:
                if version is None:
                    result.diagnostics.append(self._diagnose(
                        DiagnosticKind.MISSING_IMPORT_VERSION,
                        f"Missing imported artifact [{group_id}:{artifact_id}] version. Skip.",
                        severity=DiagnosticSeverity.ERROR,
                        subject=f"{group_id}:{artifact_id}",
                        record=False,
                    ))
                    continue
                import_reference = Coordinate(group_id, artifact_id, version)
                context.check_cancelled(f"resolve import {import_reference}")
                imported = self._registry.find_version(import_reference, context)
                if imported is None:
                    result.diagnostics.append(self._diagnose(
                        DiagnosticKind.UNRESOLVED_IMPORT,
                        f"Imported artifact [{import_reference}] not found. Skip.",
                        severity=DiagnosticSeverity.ERROR,
                        subject=import_reference.path,
                        record=False,
                    ))
                self._imports.append(imported)
                continue

            if not dep_management and (optional or not scope.is_runtime):
                continue

            if version is None:
                # Managed versions may reference properties of this artifact
                version = self.evaluate(self.find_dependency_version(group_id, artifact_id))
            if version is None:
                result.diagnostics.append(self._diagnose(
                    DiagnosticKind.UNRESOLVED_DEPENDENCY_VERSION,
                    f"Can't resolve artifact [{group_id}:{artifact_id}] version. Skip.",
                    severity=DiagnosticSeverity.ERROR,
                    subject=f"{group_id}:{artifact_id}",
                    record=False,
                ))
                continue

            exclusions = frozenset()
            if not dep_management:
                exclusions = self._parse_exclusions(dep, group_id, artifact_id, result)

            result.dependencies.append(Dependency(
                group_id=group_id,
                artifact_id=artifact_id,
                version=version,
                scope=scope,
                optional=optional,
                exclusions=exclusions,
            ))
        return result

    def _parse_exclusions(self, dep: ET.Element, group_id: str, artifact_id: str, result: ParsedDependencies):
        exclusions = set()
        for exclusion in get_container_list(dep, "exclusions", "exclusion"):
            excluded_group = get_child_body(exclusion, "groupId")
            excluded_artifact = get_child_body(exclusion, "artifactId")
            if excluded_group is None or excluded_artifact is None:
                result.diagnostics.append(self._diagnose(
                    DiagnosticKind.BROKEN_EXCLUSION,
                    f"Broken exclusion {excluded_group}:{excluded_artifact} in {group_id}:{artifact_id}",
                    subject=f"{group_id}:{artifact_id}",
                    record=False,
                ))
                continue
            exclusions.add(Coordinate.exclusion(excluded_group, excluded_artifact))
        return frozenset(exclusions)

    def _diagnose(
        self,
        kind: DiagnosticKind,
        message: str,
        severity: DiagnosticSeverity = DiagnosticSeverity.WARNING,
        subject: Optional[str] = None,
        record: bool = True,
    ) -> ResolutionDiagnostic:
        diagnostic = ResolutionDiagnostic(
            kind=kind,
            message=message,
            coordinate=self._coordinate,
            severity=severity,
            subject=subject,
        )
        if severity == DiagnosticSeverity.ERROR:
            logger.error(message, coordinate=self._coordinate.path, kind=kind.value)
        else:
            logger.warning(message, coordinate=self._coordinate.path, kind=kind.value)
        if record:
            self._diagnostics.append(diagnostic)
        return diagnostic

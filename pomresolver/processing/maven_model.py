"""
Maven object model used by the version resolver.
Coordinates, dependencies, licenses, profiles and resolution diagnostics.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from ..core.exceptions import InvalidScopeError

ROOT_PROFILE_ID = "#root"

FILE_POM = "pom"
FILE_JAR = "jar"


class DependencyScope(Enum):
    """Maven dependency scopes."""
    COMPILE = "compile"
    RUNTIME = "runtime"
    PROVIDED = "provided"
    TEST = "test"
    SYSTEM = "system"
    IMPORT = "import"

    @classmethod
    def from_text(cls, text: Optional[str]) -> 'DependencyScope':
        """Parse a scope literal case-insensitively; empty means COMPILE."""
        if not text:
            return cls.COMPILE
        try:
            return cls(text.strip().lower())
        except ValueError:
            raise InvalidScopeError(text) from None

    @property
    def is_runtime(self) -> bool:
        """Scopes that belong to the effective runtime dependency set."""
        return self in (DependencyScope.COMPILE, DependencyScope.RUNTIME)


@dataclass(frozen=True)
class Coordinate:
    """Maven artifact coordinates (GAV). An empty version means "any version"."""
    group_id: str
    artifact_id: str
    version: str = ""

    @property
    def path(self) -> str:
        """Get full coordinates string."""
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    @property
    def ga(self) -> str:
        """Get group:artifact coordinates."""
        return f"{self.group_id}:{self.artifact_id}"

    def version_file_name(self, file_type: str) -> str:
        return f"{self.artifact_id}-{self.version}.{file_type}"

    @classmethod
    def parse(cls, text: str) -> 'Coordinate':
        parts = text.strip().split(":")
        if len(parts) not in (2, 3) or not all(parts[:2]):
            raise ValueError(f"Bad coordinate '{text}', expected groupId:artifactId[:version]")
        return cls(parts[0], parts[1], parts[2] if len(parts) == 3 else "")

    @classmethod
    def exclusion(cls, group_id: str, artifact_id: str) -> 'Coordinate':
        return cls(group_id, artifact_id, "")

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class License:
    """Artifact license declaration."""
    name: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class Dependency:
    """Resolved dependency declaration."""
    group_id: str
    artifact_id: str
    version: str
    scope: DependencyScope = DependencyScope.COMPILE
    optional: bool = False
    exclusions: FrozenSet[Coordinate] = frozenset()

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.group_id, self.artifact_id, self.version)

    def is_excluded(self, group_id: str, artifact_id: str) -> bool:
        """Exclusions match on identity only; versions are ignored."""
        return Coordinate.exclusion(group_id, artifact_id) in self.exclusions

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version} ({self.scope.value})"


@dataclass(frozen=True)
class ActivationDecision:
    """Outcome of evaluating a profile's <activation> block."""
    active: bool
    reason: str = "default"

    @classmethod
    def always(cls) -> 'ActivationDecision':
        return cls(active=True, reason="root")


@dataclass
class Profile:
    """Maven profile. Content collections stay empty when the profile is inactive."""
    id: Optional[str]
    activation: ActivationDecision
    properties: Dict[str, str] = field(default_factory=dict)
    dependency_management: List[Dependency] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.activation.active

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_PROFILE_ID

    def find_managed_version(self, group_id: str, artifact_id: str) -> Optional[str]:
        for managed in self.dependency_management:
            if managed.group_id == group_id and managed.artifact_id == artifact_id:
                return managed.version
        return None

    def __str__(self) -> str:
        return f"{self.id} ({'active' if self.active else 'inactive'})"


class DiagnosticKind(str, Enum):
    """Non-fatal conditions recorded while loading a descriptor."""
    MISSING_DESCRIPTOR = "missing_descriptor"
    BROKEN_PARENT_REFERENCE = "broken_parent_reference"
    UNRESOLVED_PARENT = "unresolved_parent"
    MISSING_IMPORT_VERSION = "missing_import_version"
    UNRESOLVED_IMPORT = "unresolved_import"
    BROKEN_DEPENDENCY_REFERENCE = "broken_dependency_reference"
    UNRESOLVED_DEPENDENCY_VERSION = "unresolved_dependency_version"
    BROKEN_EXCLUSION = "broken_exclusion"


class DiagnosticSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ResolutionDiagnostic:
    """A dropped entry and the reason it was dropped."""
    kind: DiagnosticKind
    message: str
    coordinate: Coordinate
    severity: DiagnosticSeverity = DiagnosticSeverity.WARNING
    subject: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "coordinate": self.coordinate.path,
            "subject": self.subject,
        }

"""
Property lookup and ``${...}`` substitution for descriptor values.
"""

import re
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .version_resolver import VersionResolver

PROP_PROJECT_VERSION = "project.version"
PROP_PROJECT_GROUP_ID = "project.groupId"
PROP_PROJECT_ARTIFACT_ID = "project.artifactId"

_VARIABLE_PATTERN = re.compile(r'\$\{([^}]+)\}')


class VariableResolver:
    """Resolves property names against a version and its parent chain."""

    def __init__(self, owner: 'VersionResolver'):
        self._owner = owner

    @property
    def owner(self) -> 'VersionResolver':
        return self._owner

    def get(self, name: str) -> Optional[str]:
        if name == PROP_PROJECT_VERSION:
            return self._owner.version
        if name == PROP_PROJECT_GROUP_ID:
            return self._owner.coordinate.group_id
        if name == PROP_PROJECT_ARTIFACT_ID:
            return self._owner.coordinate.artifact_id

        current = self._owner
        while current is not None:
            for profile in current.profiles:
                if not profile.active:
                    continue
                value = profile.properties.get(name)
                if value is not None:
                    return value
            current = current.parent
        return None

    def evaluate(self, value: Optional[str]) -> Optional[str]:
        return replace_variables(value, self)


def replace_variables(value: Optional[str], resolver: VariableResolver) -> Optional[str]:
    """Single-pass substitution; unknown variables are left as written."""
    if value is None or '${' not in value:
        return value

    def _substitute(match):
        resolved = resolver.get(match.group(1))
        return match.group(0) if resolved is None else resolved

    return _VARIABLE_PATTERN.sub(_substitute, value)

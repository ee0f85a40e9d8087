"""
Maven version range matching, used for <jdk> profile activation.

Supports bounded and half-open ranges (``[1.8,)``, ``(1.5,1.9]``), unions of
ranges separated by commas (``[1.5,1.7),[1.8,)``) and bare versions, which
match as a component prefix the way Maven's jdk activation does (``1.8``
matches ``1.8.0_292``).
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from packaging import version
from packaging.version import InvalidVersion

_NUMERIC_PREFIX = re.compile(r'\d+(?:\.\d+)*')
_RANGE_PATTERN = re.compile(r'([\[\(])([^,\]\)]*)(?:,([^\]\)]*))?([\]\)])')


def normalize_version(version_str: Optional[str]) -> Optional[version.Version]:
    """Leading dotted-numeric part of a runtime version string as a Version."""
    if not version_str:
        return None
    match = _NUMERIC_PREFIX.search(version_str)
    if not match:
        return None
    try:
        return version.parse(match.group(0))
    except InvalidVersion:
        return None


@dataclass
class VersionRange:
    """A single Maven version range."""
    raw_range: str
    min_version: Optional[str] = None
    max_version: Optional[str] = None
    min_inclusive: bool = True
    max_inclusive: bool = True
    exact: bool = False

    @classmethod
    def parse(cls, text: str) -> 'VersionRange':
        """Parse Maven version range syntax."""
        text = text.strip()
        match = _RANGE_PATTERN.fullmatch(text)
        if not match:
            return cls(raw_range=text, min_version=text)

        start_bracket, min_ver, max_ver, end_bracket = match.groups()
        if max_ver is None:
            # [1.8] pins a single version
            return cls(raw_range=text, min_version=min_ver.strip(), max_version=min_ver.strip(), exact=True)
        return cls(
            raw_range=text,
            min_version=min_ver.strip() or None,
            max_version=max_ver.strip() or None,
            min_inclusive=start_bracket == '[',
            max_inclusive=end_bracket == ']',
        )

    @property
    def is_prefix(self) -> bool:
        return not any(char in self.raw_range for char in '[]()')

    def contains(self, version_str: str) -> bool:
        """Check if version is within this range."""
        v = normalize_version(version_str)
        if v is None:
            return False

        if self.is_prefix:
            wanted = normalize_version(self.min_version)
            if wanted is None:
                return False
            return v.release[:len(wanted.release)] == wanted.release

        if self.min_version:
            min_v = normalize_version(self.min_version)
            if min_v is None or (v < min_v if self.min_inclusive else v <= min_v):
                return False

        if self.max_version:
            max_v = normalize_version(self.max_version)
            if max_v is None or (v > max_v if self.max_inclusive else v >= max_v):
                return False

        return True


def split_ranges(range_text: str) -> List[VersionRange]:
    """Split a union such as ``[1.5,1.7),[1.8,)`` into its ranges."""
    range_text = range_text.strip()
    if not any(char in range_text for char in '[]()'):
        return [VersionRange.parse(range_text)]
    return [VersionRange.parse(m.group(0)) for m in _RANGE_PATTERN.finditer(range_text)]


def version_matches(version_str: Optional[str], range_text: str) -> bool:
    """True when ``version_str`` falls in any range of ``range_text``."""
    if not version_str or not range_text or not range_text.strip():
        return False
    return any(r.contains(version_str) for r in split_ranges(range_text))

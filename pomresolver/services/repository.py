"""
Maven repository descriptors and their file naming scheme.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

from ..processing.maven_model import Coordinate


@dataclass
class MavenRepository:
    """Maven repository configuration."""
    id: str
    name: str
    url: str
    cache_dir: Optional[Path] = None
    layout: str = "default"
    releases_enabled: bool = True
    snapshots_enabled: bool = True

    @classmethod
    def from_url(cls, url: str, cache_root: Optional[Path] = None) -> 'MavenRepository':
        """Build a repository whose id and cache folder derive from its URL."""
        parsed = urlparse(url)
        if parsed.scheme == "file":
            repo_id = "local"
        else:
            repo_id = re.sub(r'[^A-Za-z0-9._-]+', '_', f"{parsed.netloc}{parsed.path}".strip("/")) or "remote"
        cache_dir = Path(cache_root) / repo_id if cache_root is not None else None
        return cls(id=repo_id, name=repo_id, url=url.rstrip("/"), cache_dir=cache_dir)

    @property
    def is_local(self) -> bool:
        return urlparse(self.url).scheme == "file"

    def file_url(self, coordinate: Coordinate, file_type: str) -> str:
        """Repository URL of an artifact file: <url>/<group path>/<artifact>/<version>/<file>."""
        group_path = coordinate.group_id.replace(".", "/")
        return (
            f"{self.url}/{group_path}/{coordinate.artifact_id}/{coordinate.version}/"
            f"{coordinate.version_file_name(file_type)}"
        )

    def local_file(self, coordinate: Coordinate, file_type: str) -> Path:
        """Filesystem path of an artifact file inside a file: repository."""
        return Path(url2pathname(urlparse(self.file_url(coordinate, file_type)).path))

    def cache_file(self, coordinate: Coordinate, file_type: str) -> Path:
        """Cache location: <cache_dir>/<groupId>/<artifactId>-<version>.<type>."""
        if self.cache_dir is None:
            raise ValueError(f"Repository {self.id} has no cache directory")
        return self.cache_dir / coordinate.group_id / coordinate.version_file_name(file_type)

    def __str__(self) -> str:
        return f"{self.id} ({self.url})"

"""Shared fixtures for the POM resolver test suite."""

import textwrap
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from pomresolver.config.settings import Settings
from pomresolver.core.exceptions import FetchError
from pomresolver.services.artifact_registry import ArtifactRegistry
from pomresolver.services.descriptor_fetcher import DescriptorFetcher
from pomresolver.services.repository import MavenRepository

REMOTE_URL = "https://repo.example.org/maven2"


def pom(group_id: str, artifact_id: str, version: Optional[str] = None, body: str = "",
        parent: Optional[str] = None) -> str:
    """Build a descriptor document. ``parent`` is ``g:a:v``."""
    parts = ['<project xmlns="http://maven.apache.org/POM/4.0.0">', "<modelVersion>4.0.0</modelVersion>"]
    if parent:
        pg, pa, pv = parent.split(":")
        parts.append(f"<parent><groupId>{pg}</groupId><artifactId>{pa}</artifactId><version>{pv}</version></parent>")
    parts.append(f"<groupId>{group_id}</groupId><artifactId>{artifact_id}</artifactId>")
    if version:
        parts.append(f"<version>{version}</version>")
    parts.append(textwrap.dedent(body))
    parts.append("</project>")
    return "\n".join(parts)


def dep(group_id: str, artifact_id: str, version: Optional[str] = None, scope: Optional[str] = None,
        optional: Optional[bool] = None, extra: str = "") -> str:
    xml = f"<dependency><groupId>{group_id}</groupId><artifactId>{artifact_id}</artifactId>"
    if version:
        xml += f"<version>{version}</version>"
    if scope:
        xml += f"<scope>{scope}</scope>"
    if optional is not None:
        xml += f"<optional>{'true' if optional else 'false'}</optional>"
    return xml + extra + "</dependency>"


def deps(*entries: str) -> str:
    return "<dependencies>" + "".join(entries) + "</dependencies>"


def managed(*entries: str) -> str:
    return "<dependencyManagement>" + deps(*entries) + "</dependencyManagement>"


class LocalRepository:
    """A file: repository laid out like ~/.m2/repository."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.repository = MavenRepository.from_url(self.root.as_uri())

    def path_for(self, group_id: str, artifact_id: str, version: str) -> Path:
        return self.root.joinpath(*group_id.split("."), artifact_id, version, f"{artifact_id}-{version}.pom")

    def add(self, coordinate: str, content: str) -> Path:
        group_id, artifact_id, version = coordinate.split(":")
        target = self.path_for(group_id, artifact_id, version)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target


class FakeResponse:
    def __init__(self, content: bytes, on_chunk=None):
        self.content = content
        self.on_chunk = on_chunk

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), 4):
            if self.on_chunk is not None:
                self.on_chunk(start)
            yield self.content[start:start + 4]


class FakeFetcher(DescriptorFetcher):
    """Serves descriptors from memory and records every URL opened."""

    def __init__(self, settings: Settings, documents: Optional[Dict[str, str]] = None):
        super().__init__(settings)
        self.documents: Dict[str, str] = dict(documents or {})
        self.opened: List[str] = []
        self.gate: Optional[threading.Event] = None
        self.on_chunk = None

    def open_stream(self, url: str):
        self.opened.append(url)
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if url not in self.documents:
            raise FetchError(f"Can't open {url}: 404", url=url)
        return FakeResponse(self.documents[url].encode("utf-8"), on_chunk=self.on_chunk)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        cache_dir=tmp_path / "cache",
        repository_urls=[REMOTE_URL],
        remote_fetch_enabled=True,
        platform_version="1.8.0_292",
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def local_repo(tmp_path) -> LocalRepository:
    return LocalRepository(tmp_path / "m2")


@pytest.fixture
def fetcher(settings) -> FakeFetcher:
    return FakeFetcher(settings)


@pytest.fixture
def local_registry(settings, local_repo, fetcher) -> ArtifactRegistry:
    """Registry over the local repository only."""
    return ArtifactRegistry(settings, repositories=[local_repo.repository], fetcher=fetcher)


@pytest.fixture
def remote_repository(settings) -> MavenRepository:
    return MavenRepository.from_url(REMOTE_URL, settings.cache_dir)


@pytest.fixture
def remote_registry(settings, remote_repository, fetcher) -> ArtifactRegistry:
    """Registry over a single remote repository backed by the fake fetcher."""
    return ArtifactRegistry(settings, repositories=[remote_repository], fetcher=fetcher)


def remote_url(group_id: str, artifact_id: str, version: str) -> str:
    return f"{REMOTE_URL}/{group_id.replace('.', '/')}/{artifact_id}/{version}/{artifact_id}-{version}.pom"

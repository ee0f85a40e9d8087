"""
Artifact registry: the single owner of VersionResolver instances.

Every coordinate is constructed at most once. Concurrent callers asking for a
coordinate that is being built wait for the builder and receive the same
instance. A coordinate requested again while it is still being built on the
same resolution path, or a wait that would close a loop between threads,
raises CyclicReferenceError instead of recursing or deadlocking.
"""

import threading
from concurrent.futures import Future
from typing import Dict, List, Optional, Sequence

from ..config.settings import Settings, get_settings
from ..core.exceptions import (
    ConfigurationError,
    CyclicReferenceError,
    ErrorContext,
    FetchError,
    InvalidScopeError,
    OperationCancelledError,
    ParseError,
)
from ..core.logging_config import get_logger
from ..processing.maven_model import FILE_POM, Coordinate
from ..processing.version_resolver import VersionResolver
from .descriptor_fetcher import DescriptorFetcher
from .repository import MavenRepository
from .resolution_context import ResolutionContext

logger = get_logger("artifact_registry")


class ArtifactRegistry:
    """Memoized lookup from coordinate to resolved VersionResolver."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repositories: Optional[Sequence[MavenRepository]] = None,
        fetcher: Optional[DescriptorFetcher] = None,
        platform_version: Optional[str] = None,
    ):
        self.settings = settings or get_settings()
        if repositories is None:
            repositories = [
                MavenRepository.from_url(url, self.settings.cache_dir)
                for url in self.settings.repository_urls
            ]
        self.repositories: List[MavenRepository] = list(repositories)
        self.fetcher = fetcher or DescriptorFetcher(self.settings)
        self.platform_version = platform_version or self.settings.platform_version

        self._lock = threading.Lock()
        self._versions: Dict[Coordinate, VersionResolver] = {}
        self._pending: Dict[Coordinate, Future] = {}
        self._owners: Dict[Coordinate, int] = {}
        self._waiting: Dict[int, Coordinate] = {}
        self._local = threading.local()

    # ------------------------------------------------------------------ lookup

    def new_context(self, **kwargs) -> ResolutionContext:
        kwargs.setdefault("allow_remote_fetch", self.settings.remote_fetch_enabled)
        return ResolutionContext(**kwargs)

    def get(self, coordinate: Coordinate) -> Optional[VersionResolver]:
        """Already constructed instance, without triggering construction."""
        with self._lock:
            return self._versions.get(coordinate)

    def __len__(self) -> int:
        with self._lock:
            return len(self._versions)

    def __contains__(self, coordinate: Coordinate) -> bool:
        with self._lock:
            return coordinate in self._versions

    def clear(self):
        with self._lock:
            if self._pending:
                raise RuntimeError("Can't clear the registry while resolutions are in progress")
            self._versions.clear()

    def find_version(self, coordinate: Coordinate, context: Optional[ResolutionContext] = None) -> Optional[VersionResolver]:
        """Like resolve(), but a descriptor that can't be fetched or parsed yields None.

        Cycles and cancellation still propagate.
        """
        try:
            return self.resolve(coordinate, context)
        except (FetchError, ParseError, InvalidScopeError) as e:
            logger.error(
                f"Can't resolve artifact {coordinate}: {e.message}",
                coordinate=coordinate.path,
                error_code=e.error_code,
            )
            return None

    def resolve(self, coordinate: Coordinate, context: Optional[ResolutionContext] = None) -> VersionResolver:
        """Return the canonical VersionResolver for ``coordinate``, building it if needed.

        Raises:
            CyclicReferenceError: the coordinate is already under construction on this path.
            FetchError, ParseError, InvalidScopeError: the descriptor is unusable.
            OperationCancelledError: this caller's context was cancelled. A waiter
                whose builder was cancelled by another context retries instead.
        """
        context = context or self.new_context()
        path = self._construction_path()
        if coordinate in path:
            raise CyclicReferenceError(
                path[path.index(coordinate):] + [coordinate],
                context=ErrorContext(component="artifact_registry", operation="resolve", coordinate=coordinate.path),
            )

        me = threading.get_ident()
        while True:
            with self._lock:
                existing = self._versions.get(coordinate)
                if existing is not None:
                    return existing
                future = self._pending.get(coordinate)
                if future is None:
                    future = Future()
                    self._pending[coordinate] = future
                    self._owners[coordinate] = me
                    is_owner = True
                else:
                    cycle = self._find_wait_cycle(coordinate, me)
                    if cycle:
                        raise CyclicReferenceError(
                            cycle,
                            context=ErrorContext(component="artifact_registry", operation="wait", coordinate=coordinate.path),
                        )
                    self._waiting[me] = coordinate
                    is_owner = False

            if is_owner:
                return self._construct(coordinate, future, context, path)

            logger.debug("Waiting for concurrent construction", coordinate=coordinate.path)
            try:
                return future.result()
            except OperationCancelledError:
                # The builder's context was cancelled, not necessarily ours
                if context.is_cancelled:
                    raise
                logger.debug("Concurrent construction cancelled, retrying", coordinate=coordinate.path)
            finally:
                with self._lock:
                    self._waiting.pop(me, None)

    # ------------------------------------------------------------------ internals

    def _construction_path(self) -> List[Coordinate]:
        path = getattr(self._local, "path", None)
        if path is None:
            path = self._local.path = []
        return path

    def _find_wait_cycle(self, coordinate: Coordinate, me: int) -> Optional[List[Coordinate]]:
        """Follow owner -> awaited coordinate links; a loop back to ``me`` is a deadlock."""
        chain = [coordinate]
        owner = self._owners.get(coordinate)
        seen = set()
        while owner is not None and owner not in seen:
            if owner == me:
                return chain
            seen.add(owner)
            awaited = self._waiting.get(owner)
            if awaited is None:
                return None
            chain.append(awaited)
            owner = self._owners.get(awaited)
        return None

    def _construct(
        self,
        coordinate: Coordinate,
        future: Future,
        context: ResolutionContext,
        path: List[Coordinate],
    ) -> VersionResolver:
        path.append(coordinate)
        try:
            context.check_cancelled(f"resolve {coordinate}")
            repository = self._select_repository(coordinate)
            logger.debug("Resolving artifact", coordinate=coordinate.path, repository=repository.id)
            version = VersionResolver(self, repository, coordinate, context)
        except BaseException as e:
            with self._lock:
                self._pending.pop(coordinate, None)
                self._owners.pop(coordinate, None)
            future.set_exception(e)
            raise
        else:
            with self._lock:
                self._versions[coordinate] = version
                self._pending.pop(coordinate, None)
                self._owners.pop(coordinate, None)
            future.set_result(version)
            return version
        finally:
            path.pop()

    def _select_repository(self, coordinate: Coordinate) -> MavenRepository:
        """First repository already holding the descriptor, else the first remote one."""
        if not self.repositories:
            raise ConfigurationError("No Maven repositories configured", config_key="repository_urls")

        for repository in self.repositories:
            if repository.is_local:
                if repository.local_file(coordinate, FILE_POM).exists():
                    return repository
            elif repository.cache_file(coordinate, FILE_POM).exists():
                return repository

        for repository in self.repositories:
            if not repository.is_local:
                return repository
        return self.repositories[0]

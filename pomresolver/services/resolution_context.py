"""
Per-request resolution context: progress reporting, cooperative cancellation
and the hook that receives repositories declared inside descriptors.
"""

import threading
from typing import Callable, List, Optional

from ..core.exceptions import ErrorContext, OperationCancelledError
from ..core.logging_config import get_logger
from .repository import MavenRepository

logger = get_logger("resolution_context")

ProgressCallback = Callable[[str, int], None]


class ResolutionContext:
    """Shared by every descriptor loaded for one top-level resolution."""

    def __init__(
        self,
        allow_remote_fetch: bool = True,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.allow_remote_fetch = allow_remote_fetch
        self._cancel_event = cancel_event or threading.Event()
        self._progress = progress
        self._declared_repositories: List[MavenRepository] = []
        self._lock = threading.Lock()
        self.work_done = 0

    def cancel(self):
        self._cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def check_cancelled(self, operation: str):
        """Raise OperationCancelledError when cancellation was requested."""
        if self._cancel_event.is_set():
            raise OperationCancelledError(
                f"Resolution cancelled before {operation}",
                context=ErrorContext(component="resolution_context", operation=operation),
            )

    def sub_task(self, message: str):
        logger.debug(message)
        if self._progress is not None:
            self._progress(message, self.work_done)

    def worked(self, amount: int = 1):
        with self._lock:
            self.work_done += amount

    def add_repositories(self, repositories: List[MavenRepository]):
        """Receive repositories declared by active profiles.

        They are recorded for the caller; the registry's repository list is
        not changed.
        """
        with self._lock:
            for repository in repositories:
                logger.debug("Descriptor declares repository", repository=str(repository))
                self._declared_repositories.append(repository)

    @property
    def declared_repositories(self) -> List[MavenRepository]:
        with self._lock:
            return list(self._declared_repositories)

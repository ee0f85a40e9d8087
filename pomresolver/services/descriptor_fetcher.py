"""
Downloads remote descriptors into the local cache.

Content is streamed into a temporary file next to the target and renamed into
place only after the transfer completes, so an interrupted download never
leaves a file that looks complete.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

import requests

from ..config.settings import Settings, get_settings
from ..core.exceptions import ErrorContext, FetchError
from ..core.logging_config import get_logger
from .resolution_context import ResolutionContext

logger = get_logger("descriptor_fetcher")


class DescriptorFetcher:
    """HTTP transport for descriptor files."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", self.settings.user_agent)
        self.fetch_count = 0
        self._count_lock = threading.Lock()

    def open_stream(self, url: str) -> requests.Response:
        """Open a streamed response; raises FetchError when it cannot be opened."""
        try:
            response = self.session.get(url, stream=True, timeout=self.settings.request_timeout_seconds)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            raise FetchError(
                f"Can't open {url}: {e}",
                url=url,
                context=ErrorContext(component="descriptor_fetcher", operation="open_stream"),
                cause=e,
            ) from e

    def download(self, url: str, target: Path, context: ResolutionContext) -> Path:
        """Fetch ``url`` into ``target``."""
        context.check_cancelled(f"fetch {url}")
        with self._count_lock:
            self.fetch_count += 1

        folder = target.parent
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(
                f"Can't create cache folder '{folder}'",
                url=url,
                context=ErrorContext(component="descriptor_fetcher", operation="create_cache_folder"),
                cause=e,
            ) from e

        logger.info("Downloading descriptor", url=url, target=str(target))
        fd, temp_name = tempfile.mkstemp(dir=str(folder), prefix=f".{target.name}.", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as out, self.open_stream(url) as response:
                for chunk in response.iter_content(chunk_size=self.settings.fetch_chunk_size):
                    context.check_cancelled(f"fetch {url}")
                    if chunk:
                        out.write(chunk)
            os.replace(temp_name, target)
        except requests.RequestException as e:
            self._discard(temp_name)
            raise FetchError(
                f"Transfer of {url} failed: {e}",
                url=url,
                context=ErrorContext(component="descriptor_fetcher", operation="download"),
                cause=e,
            ) from e
        except OSError as e:
            self._discard(temp_name)
            raise FetchError(
                f"Can't write '{target}': {e}",
                url=url,
                context=ErrorContext(component="descriptor_fetcher", operation="download", file_path=str(target)),
                cause=e,
            ) from e
        except BaseException:
            self._discard(temp_name)
            raise
        return target

    @staticmethod
    def _discard(temp_name: str):
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass

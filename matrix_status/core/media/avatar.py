"""
Avatar resolution

Turns ``mxc://`` content URIs into thumbnail URLs and loads the images through
the memory and disk cache tiers before touching the network.
"""

import asyncio
import logging
import time
from collections.abc import Coroutine

from ..client.errors import MatrixClientError, RequestCancelledError
from ..client.http_client import MatrixHTTPClient
from ..config import MatrixStatusConfig, normalize_homeserver
from .cache_store import CacheStore

logger = logging.getLogger("matrix_status.avatar")

THUMBNAIL_PARAMS = "width=64&height=64&method=crop"

# Servers differ in which media API they serve; tried in this order.
MEDIA_PATH_V1 = "/_matrix/client/v1/media/thumbnail/"
MEDIA_PATH_FALLBACKS = (
    "/_matrix/media/v3/thumbnail/",
    "/_matrix/media/r0/thumbnail/",
)

DIRECT_FALLBACK_ICON = "avatar-default-symbolic"
GROUP_FALLBACK_ICON = "system-users-symbolic"

PRUNE_INTERVAL = 60 * 60


def fallback_icon_name(is_direct: bool) -> str:
    """Icon shown when no avatar image could be loaded."""
    return DIRECT_FALLBACK_ICON if is_direct else GROUP_FALLBACK_ICON


def thumbnail_candidates(url: str) -> list[str]:
    """The URL itself followed by its rewrites onto older media API shapes."""
    if MEDIA_PATH_V1 not in url:
        return [url]
    rewrites = [url.replace(MEDIA_PATH_V1, path, 1) for path in MEDIA_PATH_FALLBACKS]
    return [url, *rewrites]


class AvatarResolver:
    """
    Resolves and loads avatar thumbnails

    Background work (disk writes, revalidation of memory hits) runs as tasks
    tracked here so that ``cancel_pending()`` can stop them at teardown.
    """

    def __init__(self, client: MatrixHTTPClient, cache: CacheStore):
        self.client = client
        self.cache = cache
        self._tasks: set[asyncio.Task] = set()
        self._revalidating: set[str] = set()
        self._last_prune: float | None = None

    @staticmethod
    def resolve(content_uri: str | None, homeserver: str | None) -> str | None:
        """
        Build the thumbnail URL for a content URI

        Args:
            content_uri: ``mxc://<server>/<media id>``
            homeserver: Homeserver base URL, normalized here

        Returns:
            Thumbnail URL, or None for malformed input or missing homeserver
        """
        if not content_uri or not isinstance(content_uri, str):
            return None
        if not content_uri.startswith("mxc://"):
            return None
        homeserver = normalize_homeserver(homeserver or "")
        if not homeserver:
            return None

        parts = content_uri[len("mxc://"):].split("/")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            return None
        server_name, media_id = parts[0], parts[1]

        return (
            f"{homeserver}{MEDIA_PATH_V1}{server_name}/{media_id}?{THUMBNAIL_PARAMS}"
        )

    async def load_avatar(
        self, url: str, config: MatrixStatusConfig | None = None
    ) -> bytes | None:
        """
        Load the image behind a thumbnail URL

        Args:
            url: Thumbnail URL as returned by ``resolve``
            config: Configuration snapshot supplying the bearer token

        Returns:
            Image bytes, or None when neither cache nor network has the image
        """
        if not url:
            return None
        token = config.access_token if config else None

        cached = self.cache.get_memory(url)
        if cached is not None:
            if url not in self._revalidating:
                self._revalidating.add(url)
                self._spawn(
                    self._revalidate(url, token),
                    on_done=lambda _: self._revalidating.discard(url),
                )
            return cached

        if await asyncio.to_thread(self.cache.is_fresh, url):
            data = await asyncio.to_thread(self.cache.read_disk, url)
            if data is not None:
                self.cache.put_memory(url, data)
                return data

        try:
            data = await self._fetch(url, token)
        except RequestCancelledError:
            logger.debug(f"Avatar fetch cancelled: {url}")
            return None

        if data is not None:
            self._store(url, data)
            return data

        stale = await asyncio.to_thread(self.cache.read_disk, url)
        if stale is not None:
            logger.debug(f"Serving stale cached avatar for {url}")
            self.cache.put_memory(url, stale)
            return stale

        logger.warning(f"Avatar unavailable: {url}")
        return None

    async def _fetch(self, url: str, token: str | None) -> bytes | None:
        """Walk the media path fallback chain, one attempt per shape."""
        for candidate in thumbnail_candidates(url):
            try:
                return await self.client.download(candidate, token)
            except RequestCancelledError:
                raise
            except MatrixClientError as e:
                logger.debug(f"Avatar fetch failed for {candidate}: {e}")
            except Exception as e:
                logger.debug(f"Avatar fetch error for {candidate}: {e}")
        return None

    async def _revalidate(self, url: str, token: str | None) -> None:
        if await asyncio.to_thread(self.cache.is_fresh, url):
            return
        try:
            data = await self._fetch(url, token)
        except RequestCancelledError:
            return
        if data is not None:
            self._store(url, data)

    def _store(self, url: str, data: bytes) -> None:
        self.cache.put_memory(url, data)
        self._spawn(
            asyncio.to_thread(self.cache.write_disk, url, data),
            on_done=self._log_failure,
        )
        self._maybe_prune()

    def _maybe_prune(self) -> None:
        now = time.monotonic()
        if self._last_prune is not None and now - self._last_prune < PRUNE_INTERVAL:
            return
        self._last_prune = now
        self._spawn(asyncio.to_thread(self.cache.prune), on_done=self._log_failure)

    def _log_failure(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Avatar cache maintenance failed: {task.exception()}")

    def _spawn(self, coro: Coroutine, on_done=None) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if on_done is not None:
            task.add_done_callback(on_done)
        return task

    async def wait_pending(self) -> None:
        """Wait for background writes and revalidations to settle."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in list(self._tasks):
            task.cancel()

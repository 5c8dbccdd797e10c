"""
Status indicator

Composition root of the status layer: owns the room store, the sync manager,
the avatar pipeline and the HTTP client, and tells a renderer when the visible
room list changes. The renderer never touches the state directly.
"""

import asyncio
import logging
from typing import Protocol

from .client.errors import MatrixClientError, RequestCancelledError
from .client.event_types import Room
from .client.http_client import MatrixHTTPClient
from .config import MatrixStatusConfig
from .media.avatar import AvatarResolver, fallback_icon_name
from .media.cache_store import CacheStore
from .rooms.change_detector import lists_equal
from .rooms.room_store import RoomStateStore
from .sync.sync_manager import MatrixSyncManager
from .utils.links import client_url, qr_code_url

logger = logging.getLogger("matrix_status.indicator")


class RoomListObserver(Protocol):
    def on_visible_list_changed(self, rooms: list[Room]) -> None: ...

    def on_unread_state_changed(self, any_unread: bool) -> None: ...


class StatusIndicator:
    def __init__(
        self,
        config: MatrixStatusConfig,
        observer: RoomListObserver | None = None,
        client: MatrixHTTPClient | None = None,
        cache: CacheStore | None = None,
    ):
        self.config = config
        self.observer = observer
        self.client = client or MatrixHTTPClient()
        self.cache = cache or CacheStore(config.cache_dir)
        self.room_store = RoomStateStore()
        self.sync_manager = MatrixSyncManager(self.client, self.room_store)
        self.avatars = AvatarResolver(self.client, self.cache)

        self.last_rooms: list[Room] = []
        self.any_unread = False
        self.open_room_id: str | None = None

        self._running = False
        self._wakeup = asyncio.Event()
        self._sync_task: asyncio.Task | None = None

    def update_config(self, config: MatrixStatusConfig) -> None:
        """Swap in a new configuration snapshot"""
        account_changed = (
            config.homeserver != self.config.homeserver
            or config.access_token != self.config.access_token
        )
        self.config = config
        if account_changed:
            logger.info("Account settings changed, starting a fresh sync")
            self.sync_manager.reset()
            self.room_store.clear()
            self._publish([])
            if self.any_unread:
                self.any_unread = False
                if self.observer is not None:
                    self.observer.on_unread_state_changed(False)
        # restart the wait so a new interval applies immediately
        self._wakeup.set()

    async def refresh(self) -> bool:
        """
        Sync once and notify the observer when the visible list changed

        Returns:
            True if the observer was notified of a new room list
        """
        rooms = await self.sync_manager.refresh(self.config, self.open_room_id)
        if rooms is None:
            return False

        any_unread = self.room_store.any_unread
        if any_unread != self.any_unread:
            self.any_unread = any_unread
            if self.observer is not None:
                self.observer.on_unread_state_changed(any_unread)

        # avoid rebuilding the menu when nothing visible changed
        if lists_equal(self.last_rooms, rooms):
            return False
        self._publish(rooms)
        return True

    def _publish(self, rooms: list[Room]) -> None:
        self.last_rooms = rooms
        if self.observer is not None:
            self.observer.on_visible_list_changed(rooms)

    async def run(self) -> None:
        """
        Refresh at the configured interval until ``stop()`` or ``close()``

        A tick that fails never ends the loop.
        """
        self._running = True
        self._sync_task = asyncio.current_task()
        logger.info(f"Polling every {self.config.sync_interval}s")
        await asyncio.to_thread(self.cache.prune)

        while self._running:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in sync loop: {e}")

            self._wakeup.clear()
            try:
                await asyncio.wait_for(
                    self._wakeup.wait(), timeout=self.config.sync_interval
                )
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._running = False
        self._wakeup.set()

    async def close(self) -> None:
        """Tear down: stop polling and cancel every outstanding request"""
        self.stop()
        self.avatars.cancel_pending()
        await self.client.cancel()
        task = self._sync_task
        if (
            task is not None
            and task is not asyncio.current_task()
            and not task.done()
        ):
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._sync_task = None

    # avatars

    async def load_room_avatar(self, room: Room) -> bytes | None:
        if not room.avatar_url:
            return None
        return await self.avatars.load_avatar(room.avatar_url, self.config)

    @staticmethod
    def fallback_icon(room: Room) -> str:
        return fallback_icon_name(room.is_direct)

    # interaction panel

    def toggle_panel(self, room_id: str) -> bool:
        """
        Open the interaction panel of a room, or close it if already open

        Only one panel is open at a time. The open room stays visible even
        without unread messages.

        Returns:
            Whether the panel of ``room_id`` is open afterwards
        """
        if self.open_room_id == room_id:
            self.open_room_id = None
        else:
            self.open_room_id = room_id

        rooms = self.room_store.visible_rooms(self.open_room_id)
        if not lists_equal(self.last_rooms, rooms):
            self._publish(rooms)
        return self.open_room_id == room_id

    def open_room_uri(self, room_id: str | None = None) -> str:
        """URI opening a room (or just the client) in the preferred client"""
        return client_url(self.config.client_type, room_id)

    async def fetch_qr_code(self, room: Room) -> bytes | None:
        """QR image of the room's matrix.to link, None if it could not be made"""
        try:
            return await self.client.download(qr_code_url(room))
        except RequestCancelledError:
            logger.debug("QR code request cancelled")
        except MatrixClientError as e:
            logger.warning(f"QR generation failed: {e}")
        except Exception as e:
            logger.error(f"QR generation error: {e}")
        return None

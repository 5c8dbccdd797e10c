"""
Matrix Sync Manager
Owns the sync cursor and turns one ``/sync`` round trip into a room list update
"""

import asyncio
import logging

from ..client.errors import MatrixAPIError, RequestCancelledError
from ..client.event_types import Room
from ..client.http_client import MatrixHTTPClient
from ..config import MatrixStatusConfig
from ..rooms.room_store import RoomStateStore

logger = logging.getLogger("matrix_status.sync")

LONG_POLL_TIMEOUT = 30000

STATE_TYPES = [
    "m.room.name",
    "m.room.member",
    "m.room.canonical_alias",
    "m.room.encryption",
    "m.room.avatar",
]


def build_sync_filter() -> dict:
    """
    Minimal filter: only the latest event per room and the state needed for
    names, avatars, encryption and favourite tags
    """
    return {
        "room": {
            "state": {"types": list(STATE_TYPES), "lazy_load_members": True},
            "timeline": {"limit": 1},
            "account_data": {"types": ["m.tag"]},
        },
    }


class MatrixSyncManager:
    """
    Performs sync requests and feeds the responses to the room store

    ``refresh()`` is meant to be driven by a timer. It never raises for
    request failures; a failed tick leaves the room store untouched.
    """

    def __init__(
        self,
        client: MatrixHTTPClient,
        room_store: RoomStateStore,
        long_poll_timeout: int = LONG_POLL_TIMEOUT,
    ):
        """
        Initialize sync manager

        Args:
            client: Matrix HTTP client
            room_store: Store receiving each sync response
            long_poll_timeout: Long-poll timeout in milliseconds once a
                cursor exists
        """
        self.client = client
        self.room_store = room_store
        self.long_poll_timeout = long_poll_timeout

        # Sync state
        self._next_batch: str | None = None
        self._user_id: str | None = None
        self._in_flight = False
        # bumped by reset(); responses from an older generation are dropped
        self._generation = 0

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def get_next_batch(self) -> str | None:
        """Get the current sync batch token"""
        return self._next_batch

    def set_next_batch(self, batch: str | None):
        """Set the sync batch token (for resuming sync)"""
        self._next_batch = batch

    def reset(self) -> None:
        """Forget cursor and identity, e.g. after the account changed"""
        self._next_batch = None
        self._user_id = None
        self._generation += 1

    async def refresh(
        self, config: MatrixStatusConfig, open_room_id: str | None = None
    ) -> list[Room] | None:
        """
        Run one sync round trip

        Args:
            config: Configuration snapshot for this tick
            open_room_id: Room whose interaction panel is open

        Returns:
            Visible room list after merging, or None when nothing was applied
        """
        if not config.is_complete:
            logger.debug("Homeserver or access token not configured, skipping sync")
            return None
        if self._in_flight:
            logger.debug("Previous sync still in flight, skipping this tick")
            return None

        self._in_flight = True
        try:
            return await self._sync_once(config, open_room_id)
        finally:
            self._in_flight = False

    async def _sync_once(
        self, config: MatrixStatusConfig, open_room_id: str | None
    ) -> list[Room] | None:
        homeserver = config.homeserver
        generation = self._generation
        timeout = self.long_poll_timeout if self._next_batch else 0

        try:
            response = await self.client.sync(
                homeserver,
                config.access_token,
                since=self._next_batch,
                timeout=timeout,
                sync_filter=build_sync_filter(),
            )
        except MatrixAPIError as e:
            if generation != self._generation:
                return None
            if e.is_auth_error:
                self._next_batch = None
                logger.warning(
                    f"Sync rejected with status {e.status}, cursor reset: {e}"
                )
            else:
                logger.warning(f"Sync failed with status: {e.status}")
            return None
        except RequestCancelledError:
            logger.debug("Sync request cancelled")
            return None
        except asyncio.CancelledError:
            logger.debug("Sync task cancelled")
            raise
        except Exception as e:
            logger.error(f"Sync error: {e}")
            return None

        if generation != self._generation:
            logger.debug("Account changed during sync, dropping response")
            return None

        next_batch = response.get("next_batch")
        if isinstance(next_batch, str) and next_batch:
            self._next_batch = next_batch

        if self._user_id is None:
            await self._resolve_user_id(homeserver, config.access_token, generation)
            if generation != self._generation:
                return None

        return self.room_store.apply_delta(
            response,
            homeserver=homeserver,
            own_user_id=self._user_id,
            open_room_id=open_room_id,
        )

    async def _resolve_user_id(
        self, homeserver: str, access_token: str, generation: int
    ) -> None:
        # only used to keep ourselves out of DM avatar candidates
        try:
            data = await self.client.whoami(homeserver, access_token)
        except RequestCancelledError:
            logger.debug("whoami request cancelled")
            return
        except Exception as e:
            logger.debug(f"whoami failed, will retry on next sync: {e}")
            return

        user_id = data.get("user_id")
        if generation != self._generation:
            return
        if isinstance(user_id, str) and user_id:
            self._user_id = user_id
            logger.info(f"Signed in as {user_id}")

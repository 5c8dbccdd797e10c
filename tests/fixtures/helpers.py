"""Test helpers.

Sync payload factories and a fake homeserver served with aiohttp's test
server, shared by the unit tests.
"""

from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

# ============================================================
# Sync payload factories
# ============================================================


def make_room(
    unread: int = 0,
    highlight: int = 0,
    name: str | None = None,
    heroes: list[str] | None = None,
    members: dict[str, dict] | None = None,
    encrypted: bool = False,
    avatar: str | None = None,
    alias: str | None = None,
    favorite: bool = False,
    ts: int | None = None,
    is_direct: bool | None = None,
    counters: bool = True,
) -> dict[str, Any]:
    """Build one ``rooms.join`` entry of a sync response.

    Args:
        unread: notification_count
        highlight: highlight_count
        name: m.room.name content name
        heroes: m.heroes of the room summary
        members: user id -> member event content
        encrypted: Include an m.room.encryption event
        avatar: m.room.avatar content url
        alias: m.room.canonical_alias content alias
        favorite: Include an m.favourite tag
        ts: origin_server_ts of the single timeline event
        is_direct: Explicit is_direct flag
        counters: Include unread_notifications at all

    Returns:
        dict: Joined-room payload
    """
    state: list[dict] = []
    if name is not None:
        state.append({"type": "m.room.name", "state_key": "", "content": {"name": name}})
    if alias is not None:
        state.append(
            {
                "type": "m.room.canonical_alias",
                "state_key": "",
                "content": {"alias": alias},
            }
        )
    if encrypted:
        state.append(
            {
                "type": "m.room.encryption",
                "state_key": "",
                "content": {"algorithm": "m.megolm.v1.aes-sha2"},
            }
        )
    if avatar is not None:
        state.append({"type": "m.room.avatar", "state_key": "", "content": {"url": avatar}})
    for user_id, content in (members or {}).items():
        state.append(
            {
                "type": "m.room.member",
                "state_key": user_id,
                "content": {"membership": "join", **content},
            }
        )

    room: dict[str, Any] = {
        "state": {"events": state},
        "timeline": {"events": []},
        "account_data": {"events": []},
    }
    if counters:
        room["unread_notifications"] = {
            "notification_count": unread,
            "highlight_count": highlight,
        }
    if heroes is not None:
        room["summary"] = {"m.heroes": heroes}
    if favorite:
        room["account_data"]["events"].append(
            {"type": "m.tag", "content": {"tags": {"m.favourite": {"order": 0.5}}}}
        )
    if ts is not None:
        room["timeline"]["events"].append(
            {
                "type": "m.room.message",
                "event_id": f"$ev{ts}",
                "origin_server_ts": ts,
                "content": {"msgtype": "m.text", "body": "hi"},
            }
        )
    if is_direct is not None:
        room["is_direct"] = is_direct
    return room


def make_sync(rooms: dict[str, dict] | None = None, next_batch: str = "s1") -> dict:
    """Wrap joined rooms into a full sync response."""
    return {"next_batch": next_batch, "rooms": {"join": rooms or {}}}


# ============================================================
# Fake homeserver
# ============================================================


@dataclass
class FakeHomeserver:
    """Minimal homeserver with scripted responses.

    ``sync_responses`` is consumed in order, each item either a payload dict
    or a ``(status, body)`` tuple; the last item repeats once the list is
    exhausted. ``media`` maps a request path to ``(status, bytes)``.
    """

    sync_responses: list = field(default_factory=lambda: [make_sync()])
    whoami_status: int = 200
    user_id: str = "@me:example.org"
    media: dict[str, tuple[int, bytes]] = field(default_factory=dict)
    requests: list = field(default_factory=list)

    def paths(self, prefix: str = "") -> list[str]:
        return [r.path for r in self.requests if r.path.startswith(prefix)]

    def sync_requests(self):
        return [r for r in self.requests if r.path == "/_matrix/client/v3/sync"]

    async def _record(self, request: web.Request) -> None:
        self.requests.append(request)

    async def handle_sync(self, request: web.Request) -> web.StreamResponse:
        await self._record(request)
        if len(self.sync_responses) > 1:
            item = self.sync_responses.pop(0)
        else:
            item = self.sync_responses[0]
        if isinstance(item, tuple):
            status, body = item
            if isinstance(body, dict):
                return web.json_response(body, status=status)
            return web.Response(status=status, text=body)
        return web.json_response(item)

    async def handle_whoami(self, request: web.Request) -> web.StreamResponse:
        await self._record(request)
        if self.whoami_status != 200:
            return web.json_response(
                {"errcode": "M_UNKNOWN", "error": "nope"}, status=self.whoami_status
            )
        return web.json_response({"user_id": self.user_id})

    async def handle_media(self, request: web.Request) -> web.StreamResponse:
        await self._record(request)
        status, body = self.media.get(request.path, (404, b""))
        return web.Response(status=status, body=body, content_type="image/png")

    async def handle_qr(self, request: web.Request) -> web.StreamResponse:
        await self._record(request)
        return web.Response(body=b"QRPNG", content_type="image/png")

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/_matrix/client/v3/sync", self.handle_sync)
        app.router.add_get("/_matrix/client/v3/account/whoami", self.handle_whoami)
        app.router.add_get("/_matrix/client/v1/media/thumbnail/{tail:.*}", self.handle_media)
        app.router.add_get("/_matrix/media/{version}/thumbnail/{tail:.*}", self.handle_media)
        app.router.add_get("/v1/create-qr-code/", self.handle_qr)
        return app

"""
Room state store

Keeps the canonical room map and merges one sync response at a time into it.
Fields missing from a delta keep their previous value; the encryption and
favourite flags only ever turn on.
"""

import dataclasses
import logging
from typing import Any

from ..client.event_types import Room
from ..media.avatar import AvatarResolver

logger = logging.getLogger("matrix_status.rooms")


def _events(section: Any) -> list[dict]:
    if not isinstance(section, dict):
        return []
    events = section.get("events")
    if not isinstance(events, list):
        return []
    return [e for e in events if isinstance(e, dict)]


def _content(event: dict | None) -> dict:
    content = (event or {}).get("content")
    return content if isinstance(content, dict) else {}


def _find_state(state_events: list[dict], event_type: str) -> dict | None:
    """Last state event of a type; later events supersede earlier ones."""
    found = None
    for event in state_events:
        if event.get("type") == event_type:
            found = event
    return found


def _member_event(state_events: list[dict], user_id: str) -> dict | None:
    found = None
    for event in state_events:
        if event.get("type") == "m.room.member" and event.get("state_key") == user_id:
            found = event
    return found


def _local_part(user_id: str) -> str:
    return user_id.split(":")[0].replace("@", "")


def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(value, 0)


class RoomStateStore:
    """Canonical map of room id to ``Room``"""

    def __init__(self):
        self.rooms: dict[str, Room] = {}
        # rooms whose name / avatar came from room state rather than members
        self._explicit_names: set[str] = set()
        self._explicit_avatars: set[str] = set()

    @property
    def total_unread(self) -> int:
        return sum(room.unread for room in self.rooms.values())

    @property
    def any_unread(self) -> bool:
        return any(room.unread > 0 for room in self.rooms.values())

    def get(self, room_id: str) -> Room | None:
        return self.rooms.get(room_id)

    def clear(self) -> None:
        self.rooms.clear()
        self._explicit_names.clear()
        self._explicit_avatars.clear()

    def apply_delta(
        self,
        payload: dict,
        homeserver: str | None = None,
        own_user_id: str | None = None,
        open_room_id: str | None = None,
    ) -> list[Room]:
        """
        Merge a sync response into the room map

        Args:
            payload: Parsed ``/sync`` response
            homeserver: Homeserver used to build avatar thumbnail URLs
            own_user_id: Our user id, excluded from DM avatar candidates
            open_room_id: Room whose interaction panel is open

        Returns:
            Visible rooms, newest first
        """
        rooms = payload.get("rooms") if isinstance(payload, dict) else None
        joined = rooms.get("join") if isinstance(rooms, dict) else None
        if isinstance(joined, dict):
            for room_id, room_data in joined.items():
                if isinstance(room_data, dict):
                    self._merge_room(
                        room_id, room_data, homeserver, own_user_id, open_room_id
                    )

        return self.visible_rooms(open_room_id)

    def visible_rooms(self, open_room_id: str | None = None) -> list[Room]:
        """Rooms with unread messages, favourites and the open panel room."""
        visible = [
            dataclasses.replace(room)
            for room in self.rooms.values()
            if room.unread > 0 or room.is_favorite or room.id == open_room_id
        ]
        # sort() is stable, equal timestamps keep first-seen order
        visible.sort(key=lambda room: room.timestamp, reverse=True)
        return visible

    def _merge_room(
        self,
        room_id: str,
        room_data: dict,
        homeserver: str | None,
        own_user_id: str | None,
        open_room_id: str | None,
    ) -> None:
        counters = room_data.get("unread_notifications")
        unread = None
        if isinstance(counters, dict):
            unread = _count(counters.get("notification_count")) + _count(
                counters.get("highlight_count")
            )

        has_favorite_tag = any(
            event.get("type") == "m.tag"
            and isinstance(_content(event).get("tags"), dict)
            and "m.favourite" in _content(event)["tags"]
            for event in _events(room_data.get("account_data"))
        )

        previous = self.rooms.get(room_id)
        if (
            previous is None
            and not unread
            and not has_favorite_tag
            and room_id != open_room_id
        ):
            return

        room = previous or Room(id=room_id)
        state_events = _events(room_data.get("state"))
        timeline_events = _events(room_data.get("timeline"))

        if unread is not None:
            room.unread = unread

        name_event = _find_state(state_events, "m.room.name")
        if name_event is not None:
            name = _content(name_event).get("name")
            if isinstance(name, str) and name:
                room.name = name
                room.dm_partner_id = None
                self._explicit_names.add(room_id)
            else:
                self._explicit_names.discard(room_id)

        alias_event = _find_state(state_events, "m.room.canonical_alias")
        if alias_event is not None:
            alias = _content(alias_event).get("alias")
            room.canonical_alias = alias if isinstance(alias, str) and alias else None

        if _find_state(state_events, "m.room.encryption") is not None:
            room.encrypted = True

        summary = room_data.get("summary")
        heroes = summary.get("m.heroes") if isinstance(summary, dict) else None
        if not isinstance(heroes, list):
            heroes = []
        heroes = [hero for hero in heroes if isinstance(hero, str)]

        if heroes and room_id not in self._explicit_names:
            room.dm_partner_id = heroes[0] if len(heroes) == 1 else None
            if room.dm_partner_id:
                room.is_direct = True
            room.name = ", ".join(
                self._hero_name(state_events, hero) for hero in heroes
            )

        explicit_direct = room_data.get("is_direct")
        if isinstance(explicit_direct, bool):
            room.is_direct = explicit_direct

        avatar_event = _find_state(state_events, "m.room.avatar")
        if avatar_event is not None:
            room.avatar_url = AvatarResolver.resolve(
                _content(avatar_event).get("url"), homeserver
            )
            if room.avatar_url:
                self._explicit_avatars.add(room_id)
            else:
                self._explicit_avatars.discard(room_id)
        elif room.is_direct and room_id not in self._explicit_avatars:
            member_avatar = self._dm_avatar(
                state_events, heroes, own_user_id, homeserver
            )
            if member_avatar:
                room.avatar_url = member_avatar

        if timeline_events:
            ts = timeline_events[-1].get("origin_server_ts")
            if isinstance(ts, int) and not isinstance(ts, bool):
                room.timestamp = max(room.timestamp, ts)

        room.is_favorite = room.is_favorite or has_favorite_tag

        if previous is None:
            logger.debug(f"Tracking room {room_id} ({room.name})")
        self.rooms[room_id] = room

    @staticmethod
    def _hero_name(state_events: list[dict], hero: str) -> str:
        displayname = _content(_member_event(state_events, hero)).get("displayname")
        if isinstance(displayname, str) and displayname:
            return displayname
        return _local_part(hero)

    @staticmethod
    def _dm_avatar(
        state_events: list[dict],
        heroes: list[str],
        own_user_id: str | None,
        homeserver: str | None,
    ) -> str | None:
        """Avatar of the conversation partner: a hero first, then any member."""
        candidates = [h for h in heroes if h != own_user_id]
        for hero in candidates:
            url = AvatarResolver.resolve(
                _content(_member_event(state_events, hero)).get("avatar_url"),
                homeserver,
            )
            if url:
                return url

        for event in state_events:
            if event.get("type") != "m.room.member":
                continue
            if event.get("state_key") == own_user_id:
                continue
            url = AvatarResolver.resolve(_content(event).get("avatar_url"), homeserver)
            if url:
                return url
        return None

"""Tests for lists_equal."""

from dataclasses import replace

import pytest

from matrix_status.core.client.event_types import Room
from matrix_status.core.rooms.change_detector import lists_equal


@pytest.fixture
def rooms():
    return [
        Room(id="!a:x", name="A", unread=2, timestamp=20),
        Room(id="!b:x", name="B", unread=0, is_favorite=True, timestamp=10),
    ]


def test_equal_lists(rooms):
    assert lists_equal(rooms, [replace(r) for r in rooms])


def test_empty_lists_are_equal():
    assert lists_equal([], [])


def test_length_differs(rooms):
    assert not lists_equal(rooms, rooms[:1])


def test_order_differs(rooms):
    assert not lists_equal(rooms, list(reversed(rooms)))


@pytest.mark.parametrize(
    "change",
    [
        {"unread": 3},
        {"name": "A2"},
        {"encrypted": True},
        {"avatar_url": "https://hs/_matrix/client/v1/media/thumbnail/x/y"},
    ],
)
def test_rendered_field_differs(rooms, change):
    changed = [replace(rooms[0], **change), rooms[1]]
    assert not lists_equal(rooms, changed)


def test_timestamp_only_change_is_not_a_change(rooms):
    changed = [replace(rooms[0], timestamp=999), rooms[1]]
    assert lists_equal(rooms, changed)

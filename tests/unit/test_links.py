"""Tests for client link helpers."""

from urllib.parse import unquote

import pytest

from matrix_status.core.client.event_types import Room
from matrix_status.core.config import ClientType
from matrix_status.core.utils.links import (
    client_url,
    element_url,
    fractal_url,
    matrix_to_url,
    pretty_id,
    qr_code_url,
    web_url,
)


class TestFractalUrl:
    def test_room_with_server_name(self):
        assert (
            fractal_url("!abc:example.org")
            == "matrix:roomid/abc%3Aexample.org?action=join&via=example.org"
        )

    def test_room_without_server_name(self):
        assert fractal_url("!abc") == "matrix:roomid/abc?action=join"

    def test_no_room(self):
        assert fractal_url(None) == "matrix:"


class TestClientUrls:
    def test_web(self):
        assert web_url("!a:x") == "https://matrix.to/#/!a:x"
        assert web_url() == "https://matrix.to"

    def test_element(self):
        assert element_url("!a:x") == "element://vector/webapp/#/room/!a:x"
        assert element_url() == "element://"

    @pytest.mark.parametrize(
        "client_type, expected",
        [
            (ClientType.WEB, "https://matrix.to/#/!a:x"),
            (ClientType.ELEMENT, "element://vector/webapp/#/room/!a:x"),
            (ClientType.FRACTAL, "matrix:roomid/a%3Ax?action=join&via=x"),
        ],
    )
    def test_dispatch(self, client_type, expected):
        assert client_url(client_type, "!a:x") == expected


class TestPrettyId:
    def test_prefers_dm_partner(self):
        room = Room(id="!a:x", dm_partner_id="@bob:x", canonical_alias="#a:x")
        assert pretty_id(room) == "@bob:x"

    def test_then_alias(self):
        room = Room(id="!a:x", canonical_alias="#a:x")
        assert pretty_id(room) == "#a:x"

    def test_then_id(self):
        assert pretty_id(Room(id="!a:x")) == "!a:x"

    def test_matrix_to_url(self):
        assert matrix_to_url(Room(id="!a:x", canonical_alias="#a:x")) == (
            "https://matrix.to/#/#a:x"
        )

    def test_qr_code_url(self):
        url = qr_code_url(Room(id="!a:x", canonical_alias="#a:x"))

        assert url.startswith(
            "https://api.qrserver.com/v1/create-qr-code/?size=180x180&data="
        )
        data = url.split("&data=", 1)[1]
        assert "#" not in data
        assert unquote(data) == "https://matrix.to/#/#a:x"

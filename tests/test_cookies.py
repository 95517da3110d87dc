"""Tests for Cookie header parsing and Set-Cookie serialization."""

from __future__ import annotations

import datetime

from kit_session.transport.cookies import CookieDirective, parse_cookie_header


class TestParseCookieHeader:
    def test_multiple_cookies(self) -> None:
        assert parse_cookie_header("a=1; b=2;c=3") == {"a": "1", "b": "2", "c": "3"}

    def test_value_keeps_inner_equals(self) -> None:
        assert parse_cookie_header("kit.session=abc==&id=2") == {"kit.session": "abc==&id=2"}

    def test_percent_encoded_value_is_decoded(self) -> None:
        assert parse_cookie_header("kit.session=abc%3D%3D%26id%3D2")["kit.session"] == "abc==&id=2"

    def test_quoted_value(self) -> None:
        assert parse_cookie_header('a="quoted"') == {"a": "quoted"}

    def test_first_occurrence_wins(self) -> None:
        assert parse_cookie_header("a=1; a=2") == {"a": "1"}

    def test_pairs_without_equals_are_skipped(self) -> None:
        assert parse_cookie_header("flag; a=1; =orphan") == {"a": "1"}

    def test_empty_header(self) -> None:
        assert parse_cookie_header("") == {}


class TestCookieDirective:
    def test_full_serialization(self) -> None:
        directive = CookieDirective(
            name="kit.session",
            value="abc==&id=2",
            http_only=True,
            path="/",
            same_site="lax",
            secure=True,
            domain="example.com",
            max_age=3600,
        )
        assert directive.serialize() == (
            "kit.session=abc%3D%3D%26id%3D2; Max-Age=3600; Domain=example.com; "
            "Path=/; HttpOnly; Secure; SameSite=Lax"
        )

    def test_expires_attribute(self) -> None:
        directive = CookieDirective(
            name="kit.session",
            value="0",
            http_only=False,
            path="/",
            same_site="strict",
            secure=False,
            expires=datetime.datetime(1970, 1, 1, tzinfo=datetime.UTC),
        )
        assert str(directive) == (
            "kit.session=0; Path=/; Expires=Thu, 01 Jan 1970 00:00:00 GMT; SameSite=Strict"
        )

    def test_round_trips_through_parser(self) -> None:
        directive = CookieDirective(
            name="kit.session", value="x/y+z==&id=7", http_only=True, path="/", same_site="lax", secure=False
        )
        pair = directive.serialize().split(";", 1)[0]
        assert parse_cookie_header(pair) == {"kit.session": "x/y+z==&id=7"}

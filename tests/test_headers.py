"""Tests for perch.http.headers: case-insensitive request and response headers."""

import pytest

from perch.http.headers import Headers, MutableHeaders


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = _h(("Content-Type", "text/html"))
        assert h["content-type"] == "text/html"
        assert h["CONTENT-TYPE"] == "text/html"

    def test_missing_key_raises(self) -> None:
        h = _h(("Accept", "*/*"))
        with pytest.raises(KeyError):
            h["X-Missing"]

    def test_contains(self) -> None:
        h = _h(("Accept", "*/*"))
        assert "accept" in h
        assert "x-missing" not in h
        assert 42 not in h

    def test_get_default(self) -> None:
        assert _h().get("x-missing", "fallback") == "fallback"

    def test_multiple_values(self) -> None:
        h = _h(("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"))
        assert h["set-cookie"] == "a=1"
        assert h.get_list("set-cookie") == ["a=1", "b=2"]
        assert len(h) == 1
        assert list(h) == ["set-cookie"]


class TestMutableHeaders:
    def test_names_stored_lowercase(self) -> None:
        h = MutableHeaders(((b"X-Token", b"abc"),))
        assert h.raw == ((b"x-token", b"abc"),)

    def test_set_replaces_all_values(self) -> None:
        h = MutableHeaders()
        h.add("Vary", "Origin")
        h.add("Vary", "Accept")
        h.set("vary", "Cookie")
        assert h.get_list("vary") == ["Cookie"]

    def test_add_keeps_existing(self) -> None:
        h = MutableHeaders()
        h.add("Set-Cookie", "a=1")
        h.add("Set-Cookie", "b=2")
        assert h.get_list("set-cookie") == ["a=1", "b=2"]

    def test_delete_and_missing(self) -> None:
        h = MutableHeaders()
        h.set("Allow", "GET")
        h.delete("allow")
        h.delete("not-there")
        assert "allow" not in h

    def test_clear(self) -> None:
        h = MutableHeaders()
        h.set("Allow", "GET")
        h.set("Content-Type", "text/plain")
        h.clear()
        assert len(h) == 0
        assert h.raw == ()

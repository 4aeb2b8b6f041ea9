"""Case-insensitive HTTP headers.

``Headers`` is the immutable view a ``Request`` carries, built from the
raw byte pairs of the ASGI scope. ``MutableHeaders`` is what a response
writer exposes: handlers, middleware, and the interceptor all edit the
same instance until the status line is flushed.
"""

from collections.abc import Iterator, Mapping


def _key(name: str) -> bytes:
    return name.lower().encode("latin-1")


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive request headers.

    ``__getitem__`` returns the first matching value, ``get_list`` all of them.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    def __getitem__(self, key: str) -> str:
        wanted = _key(key)
        for name, value in self._raw:
            if name.lower() == wanted:
                return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        wanted = _key(key)
        return any(name.lower() == wanted for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            key = name.decode("latin-1").lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        wanted = _key(key)
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == wanted]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        return self._raw


class MutableHeaders(Headers):
    """Response headers under construction.

    Names are stored lower-cased, in insertion order, as the ASGI
    ``http.response.start`` message expects them.
    """

    __slots__ = ()

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        super().__init__(tuple((name.lower(), value) for name, value in raw))

    def set(self, name: str, value: str) -> None:
        """Replace every value of *name* with a single *value*."""
        wanted = _key(name)
        kept = tuple(pair for pair in self._raw if pair[0] != wanted)
        object.__setattr__(self, "_raw", (*kept, (wanted, value.encode("latin-1"))))

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping existing ones (e.g. ``Set-Cookie``)."""
        object.__setattr__(self, "_raw", (*self._raw, (_key(name), value.encode("latin-1"))))

    def delete(self, name: str) -> None:
        """Remove every value of *name*. Missing names are ignored."""
        wanted = _key(name)
        object.__setattr__(self, "_raw", tuple(pair for pair in self._raw if pair[0] != wanted))

    def clear(self) -> None:
        """Remove every header."""
        object.__setattr__(self, "_raw", ())

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"MutableHeaders({{{items}}})"

"""Case-insensitive HTTP headers.

``Headers`` is the immutable view over the raw byte pairs of an ASGI
scope. ``MutableHeaders`` is the response-side counterpart owned by
``ResponseWriter`` and cleared on every Context reset.
"""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Read-only view over the header pairs of an ASGI scope.

    Names match case-insensitively. Repeated headers keep their wire
    order and lookups return the first value.
    """

    __slots__ = ("_pairs", "_raw")

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        self._raw = raw
        # Decoded once: lowercased name, value
        self._pairs = tuple(
            (name.decode("latin-1").lower(), value.decode("latin-1")) for name, value in raw
        )

    def __getitem__(self, key: str) -> str:
        name = key.lower()
        for candidate, value in self._pairs:
            if candidate == name:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and any(name == key.lower() for name, _ in self._pairs)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._pairs))

    def __len__(self) -> int:
        return len(dict.fromkeys(name for name, _ in self._pairs))

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """The byte pairs exactly as the server delivered them."""
        return self._raw

    def dump(self) -> list[str]:
        """``name: value`` lines in wire order, original name casing kept."""
        return [f"{name.decode('latin-1')}: {value.decode('latin-1')}" for name, value in self._raw]


class MutableHeaders:
    """Ordered, case-insensitive response headers.

    Names are stored lower-cased, the form ASGI sends on the wire.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[tuple[str, str]] = []

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower()
        return any(name == key_lower for name, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MutableHeaders({self._items!r})"

    def get(self, key: str, default: str | None = None) -> str | None:
        key_lower = key.lower()
        for name, value in self._items:
            if name == key_lower:
                return value
        return default

    def set(self, key: str, value: str) -> None:
        """Replace every value of *key* with *value*."""
        self.delete(key)
        self._items.append((key.lower(), value))

    def add(self, key: str, value: str) -> None:
        """Append a value, keeping existing ones (e.g. ``Vary``)."""
        self._items.append((key.lower(), value))

    def delete(self, key: str) -> None:
        key_lower = key.lower()
        self._items = [item for item in self._items if item[0] != key_lower]

    def clear(self) -> None:
        self._items.clear()

    def items(self) -> list[tuple[str, str]]:
        return list(self._items)

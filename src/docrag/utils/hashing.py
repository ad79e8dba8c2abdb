"""Content fingerprints used for change detection."""

from __future__ import annotations

import hashlib
from typing import Protocol


class ContentHasher(Protocol):
    """Strategy turning document content into an equality token."""

    name: str

    def hash(self, content: str) -> str: ...


class Sha256Hasher:
    name = "sha256"

    def hash(self, content: str) -> str:
        return hashlib.sha256(content.encode("utf-8")).hexdigest()


class RollingHasher:
    """Cheap 32-bit ``h * 31 + c`` rolling hash.

    Collisions are possible; a false "unchanged" only leaves a stale chunk behind.
    """

    name = "rolling"

    def hash(self, content: str) -> str:
        value = 0
        for char in content:
            value = (value * 31 + ord(char)) & 0xFFFFFFFF
        # Interpret as a signed 32-bit integer
        if value & 0x80000000:
            value -= 1 << 32
        return format(abs(value), "x")


_HASHERS = {
    Sha256Hasher.name: Sha256Hasher,
    RollingHasher.name: RollingHasher,
}


def get_hasher(name: str = Sha256Hasher.name) -> ContentHasher:
    """Return a hasher instance by name."""
    try:
        return _HASHERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown hash algorithm {name!r}, expected one of: {', '.join(sorted(_HASHERS))}"
        ) from None

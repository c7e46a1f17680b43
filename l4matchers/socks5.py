"""Match SOCKSv5 greetings (RFC 1928)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

AUTH_NO_AUTH = 0
AUTH_GSSAPI = 1
AUTH_USERNAME_PASSWORD = 2


class _Readable(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


def _read_exactly(stream: _Readable, size: int) -> bytes:
    """Read exactly ``size`` bytes or raise EOFError."""
    data = bytearray()
    while len(data) < size:
        chunk = stream.read(size - len(data))
        if not chunk:
            raise EOFError(f"expected {size} bytes, got {len(data)}")
        data += chunk
    return bytes(data)


@dataclass
class Socks5Matcher:
    """Matches SOCKSv5 greetings whose auth methods are all acceptable.

    By default NO AUTH, GSSAPI and USERNAME/PASSWORD are accepted.
    """

    auth_methods: list[int] = field(default_factory=list)

    def provision(self) -> None:
        """Apply the default set of acceptable auth methods."""
        if not self.auth_methods:
            self.auth_methods = [AUTH_NO_AUTH, AUTH_GSSAPI, AUTH_USERNAME_PASSWORD]

    def match(self, stream: _Readable) -> bool:
        """Return True if the stream looks like an acceptable SOCKSv5 greeting."""
        if _read_exactly(stream, 1)[0] != 5:
            return False
        count = _read_exactly(stream, 1)[0]
        methods = _read_exactly(stream, count)
        return all(method in self.auth_methods for method in methods)
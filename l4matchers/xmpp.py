"""Match XMPP connections by looking for the jabber namespace."""

from __future__ import annotations

from typing import Protocol

XMPP_WORD = b"jabber"
MIN_XMPP_LENGTH = 50


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


class MatchXMPP:
    """Matches connections that look like XMPP."""

    def match(self, stream: _Readable) -> bool:
        """Return True if the first bytes mention the jabber namespace."""
        # At least this many bytes are needed for some clients.
        return XMPP_WORD in _read_exactly(stream, MIN_XMPP_LENGTH)
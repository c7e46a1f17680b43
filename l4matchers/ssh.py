"""Match SSH connections by their identification prefix."""

from __future__ import annotations

from typing import Protocol

SSH_PREFIX = b"SSH-"


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


class MatchSSH:
    """Matches connections that look like SSH."""

    def match(self, stream: _Readable) -> bool:
        """Return True if the stream starts with the SSH prefix."""
        return _read_exactly(stream, len(SSH_PREFIX)) == SSH_PREFIX
"""Match connections that begin with a TLS ClientHello."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from l4matchers.clienthello import ClientHelloInfo
from l4matchers.parsehello import parse_raw_client_hello

logger = logging.getLogger(__name__)

RECORD_HEADER_LEN = 5
RECORD_TYPE_HANDSHAKE = 0x16
HANDSHAKE_TYPE_CLIENT_HELLO = 1
MAX_MATCHING_BYTES = 8 * 1024


class _Readable(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


class HelloMatcher(Protocol):
    def match(self, hello: ClientHelloInfo) -> bool: ...


def _read_exactly(stream: _Readable, size: int) -> bytes:
    """Read exactly ``size`` bytes or raise EOFError."""
    data = bytearray()
    while len(data) < size:
        chunk = stream.read(size - len(data))
        if not chunk:
            raise EOFError(f"expected {size} bytes, got {len(data)}")
        data += chunk
    return bytes(data)


def _read_continuation(stream: _Readable, have: int) -> bytes | None:
    """Read the next handshake record's body, or None if it is not a handshake."""
    header = _read_exactly(stream, RECORD_HEADER_LEN)
    if header[0] != RECORD_TYPE_HANDSHAKE:
        return None
    length = int.from_bytes(header[3:5], "big")
    if have + length > MAX_MATCHING_BYTES:
        raise ValueError(f"TLS records too large: {have + length} > {MAX_MATCHING_BYTES}")
    return _read_exactly(stream, length)


def read_client_hello(stream: _Readable) -> bytes | None:
    """Read a handshake message that may span several TLS records.

    Returns None when the first record is not a handshake. Raises EOFError on
    a short stream and ValueError when the message exceeds the size limit.
    """
    header = _read_exactly(stream, RECORD_HEADER_LEN)
    if header[0] != RECORD_TYPE_HANDSHAKE:
        return None
    # The record version in header[1:3] is ignored.
    raw = bytearray(_read_exactly(stream, int.from_bytes(header[3:5], "big")))

    # At least the 4-byte handshake header is needed to know the length.
    while len(raw) < 4:
        more = _read_continuation(stream, len(raw))
        if more is None:
            break
        raw += more

    if len(raw) >= 4 and raw[0] == HANDSHAKE_TYPE_CLIENT_HELLO:
        handshake_len = int.from_bytes(raw[1:4], "big")
        if handshake_len > MAX_MATCHING_BYTES:
            raise ValueError(f"ClientHello too large: {handshake_len} > {MAX_MATCHING_BYTES}")
        while len(raw) < handshake_len + 4:
            more = _read_continuation(stream, len(raw))
            if more is None:
                break
            raw += more

    return bytes(raw)


@dataclass
class MatchTLS:
    """Matches TLS handshakes whose ClientHello satisfies every matcher."""

    matchers: list[HelloMatcher] = field(default_factory=list)

    def match(self, stream: _Readable) -> bool:
        """Return True if the stream starts with an acceptable ClientHello."""
        raw = read_client_hello(stream)
        if raw is None:
            return False
        hello = parse_raw_client_hello(raw)
        if not all(matcher.match(hello) for matcher in self.matchers):
            return False
        logger.debug("matched TLS handshake, server_name=%s", hello.server_name)
        return True
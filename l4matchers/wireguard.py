"""Match WireGuard handshake initiation and keepalive messages."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

POLY1305_TAG_SIZE = 16

MESSAGE_INITIATION_BYTES_TOTAL = 148
MESSAGE_RESPONSE_BYTES_TOTAL = 92
MESSAGE_COOKIE_REPLY_BYTES_TOTAL = 64
MESSAGE_TRANSPORT_BYTES_MIN = 32

RESERVED_ZERO_FILTER = 0xFFFFFF00

_INITIATION = struct.Struct(f"<II32s{32 + POLY1305_TAG_SIZE}s{12 + POLY1305_TAG_SIZE}s16s16s")
_TRANSPORT_HEADER = struct.Struct("<IIQ")


class MessageType(IntEnum):
    INITIATION = 1
    RESPONSE = 2
    COOKIE_REPLY = 3
    TRANSPORT = 4


class _Readable(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


@dataclass
class MessageInitiation:
    """The first handshake message sent by the initiator."""

    type: int = 0
    sender: int = 0
    ephemeral: bytes = bytes(32)
    static: bytes = bytes(32 + POLY1305_TAG_SIZE)
    timestamp: bytes = bytes(12 + POLY1305_TAG_SIZE)
    mac1: bytes = bytes(16)
    mac2: bytes = bytes(16)

    @classmethod
    def from_bytes(cls, src: bytes) -> MessageInitiation:
        """Decode a message; trailing bytes are ignored."""
        if len(src) < _INITIATION.size:
            raise ValueError(
                f"not enough bytes for an initiation message: {len(src)} < {_INITIATION.size}"
            )
        return cls(*_INITIATION.unpack_from(src))

    def to_bytes(self) -> bytes:
        """Encode the message in wire format."""
        for name, size in (
            ("ephemeral", 32),
            ("static", 32 + POLY1305_TAG_SIZE),
            ("timestamp", 12 + POLY1305_TAG_SIZE),
            ("mac1", 16),
            ("mac2", 16),
        ):
            if len(getattr(self, name)) != size:
                raise ValueError(f"{name} must be {size} bytes long")
        return _INITIATION.pack(
            self.type, self.sender, self.ephemeral, self.static,
            self.timestamp, self.mac1, self.mac2,
        )


@dataclass
class MessageTransport:
    """A data message exchanged after a successful handshake."""

    type: int = 0
    receiver: int = 0
    counter: int = 0
    content: bytes = b""

    @classmethod
    def from_bytes(cls, src: bytes) -> MessageTransport:
        """Decode a message; everything after the header is content."""
        if len(src) < _TRANSPORT_HEADER.size:
            raise ValueError(
                f"not enough bytes for a transport message: {len(src)} < {_TRANSPORT_HEADER.size}"
            )
        msg_type, receiver, counter = _TRANSPORT_HEADER.unpack_from(src)
        return cls(msg_type, receiver, counter, bytes(src[_TRANSPORT_HEADER.size:]))

    def to_bytes(self) -> bytes:
        """Encode the message in wire format."""
        return _TRANSPORT_HEADER.pack(self.type, self.receiver, self.counter) + self.content


@dataclass
class MatchWireGuard:
    """Matches WireGuard connections.

    ``zero`` allows the reserved bytes of the type field to carry non-zero
    values, e.g. 0xFF770000 matches initiations starting with 01 00 77 FF.
    """

    zero: int = 0

    def provision(self) -> None:
        """Validate the configuration."""
        if not 0 <= self.zero <= 0xFFFFFFFF:
            raise ValueError(f"zero must fit in 32 bits: {self.zero}")

    def match(self, stream: _Readable) -> bool:
        """Return True if the first read looks like an initiation or a keepalive."""
        data = stream.read(MESSAGE_INITIATION_BYTES_TOTAL + 1)
        if not data:
            raise EOFError("no data to match")

        reserved = self.zero & RESERVED_ZERO_FILTER
        if len(data) == MESSAGE_INITIATION_BYTES_TOTAL:
            try:
                initiation = MessageInitiation.from_bytes(data)
            except ValueError:
                return False
            return initiation.type == reserved | MessageType.INITIATION
        if len(data) == MESSAGE_TRANSPORT_BYTES_MIN:
            try:
                transport = MessageTransport.from_bytes(data)
            except ValueError:
                return False
            return transport.type == reserved | MessageType.TRANSPORT
        return False
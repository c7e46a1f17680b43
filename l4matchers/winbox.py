"""Match Winbox management connections by their first authentication message."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Protocol

MESSAGE_AUTH_PUBLIC_KEY_BYTES_TOTAL = 32
MESSAGE_AUTH_USERNAME_BYTES_MAX = 255  # no limit is documented, this one is assumed
MESSAGE_AUTH_USERNAME_BYTES_MIN = 1
MESSAGE_AUTH_USERNAME_ROMON_SUFFIX = "+r"
MESSAGE_AUTH_BYTES_MAX = (
    4 + MESSAGE_AUTH_USERNAME_BYTES_MAX + 1 + MESSAGE_AUTH_PUBLIC_KEY_BYTES_TOTAL + 1
)
MESSAGE_AUTH_BYTES_MIN = (
    2 + MESSAGE_AUTH_USERNAME_BYTES_MIN + 1 + MESSAGE_AUTH_PUBLIC_KEY_BYTES_TOTAL + 1
)
MESSAGE_CHUNK_BYTES_MIN = 1
MESSAGE_CHUNK_BYTES_MAX = 255

MESSAGE_CHUNK_BYTES_DELIMITER = 0x00
MESSAGE_CHUNK_TYPE_AUTH = 0x06
MESSAGE_CHUNK_TYPE_PREV = 0xFF

MODE_STANDARD = "standard"
MODE_ROMON = "romon"

USERNAME_PATTERN = re.compile(r"[0-9A-Za-z](?:[-#.0-9@A-Z_a-z]+[0-9A-Za-z])?")

INVALID_MODE = "invalid mode"
INCORRECT_SOURCE_BYTES = "incorrect source bytes"
NOT_ENOUGH_SOURCE_BYTES = "not enough source bytes"


class WinboxError(ValueError):
    """Raised for malformed Winbox messages and invalid matcher settings."""


class _Readable(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


def _read_at_least(stream: _Readable, minimum: int, capacity: int) -> bytes:
    """Read at least ``minimum`` and at most ``capacity`` bytes, or raise EOFError."""
    data = bytearray()
    while len(data) < minimum:
        chunk = stream.read(capacity - len(data))
        if not chunk:
            raise EOFError(f"expected at least {minimum} bytes, got {len(data)}")
        data += chunk
    return bytes(data)


@dataclass
class MessageChunk:
    """A part of a larger message, holding no more than 255 bytes."""

    data: bytes
    length: int
    type: int


@dataclass
class MessageAuth:
    """The first message a client sends: a username and a public key.

    A ``+r`` suffix on the username requests RoMON mode.
    """

    username: str = ""
    public_key_bytes: bytes = b""
    public_key_parity: int = 0

    @property
    def romon(self) -> bool:
        """Whether RoMON mode is requested."""
        return self.username.endswith(MESSAGE_AUTH_USERNAME_ROMON_SUFFIX)

    @property
    def base_username(self) -> str:
        """The username without the RoMON suffix."""
        if self.romon:
            return self.username[: -len(MESSAGE_AUTH_USERNAME_ROMON_SUFFIX)]
        return self.username

    @property
    def public_key(self) -> tuple[bytes, int]:
        """The public key bytes and their parity."""
        return self.public_key_bytes, self.public_key_parity

    def enable_romon(self) -> None:
        """Request RoMON mode by adding the suffix to the username."""
        if not self.romon:
            self.username += MESSAGE_AUTH_USERNAME_ROMON_SUFFIX

    def disable_romon(self) -> None:
        """Drop the RoMON suffix from the username."""
        if self.romon:
            self.username = self.base_username

    @classmethod
    def from_bytes(cls, src: bytes) -> MessageAuth:
        """Decode a message from its chunked wire form."""
        src = bytes(src)
        total = len(src)
        if total < MESSAGE_AUTH_BYTES_MIN:
            raise WinboxError(NOT_ENOUGH_SOURCE_BYTES)

        stride = MESSAGE_CHUNK_BYTES_MAX + 2
        count = total // stride + 1
        chunks = []
        for index, offset in enumerate(range(0, count * stride, stride)):
            if offset >= total:
                raise WinboxError(INCORRECT_SOURCE_BYTES)
            length = src[offset]
            is_last = index == count - 1
            if (
                (not is_last and length != MESSAGE_CHUNK_BYTES_MAX)
                or total < offset + 2 + length
                or length < MESSAGE_CHUNK_BYTES_MIN
            ):
                raise WinboxError(INCORRECT_SOURCE_BYTES)

            chunk_type = src[offset + 1]
            expected = MESSAGE_CHUNK_TYPE_AUTH if index == 0 else MESSAGE_CHUNK_TYPE_PREV
            if chunk_type != expected:
                raise WinboxError(INCORRECT_SOURCE_BYTES)

            chunks.append(MessageChunk(src[offset + 2 : offset + 2 + length], length, chunk_type))

        return cls.from_chunks(chunks)

    @classmethod
    def from_chunks(cls, chunks: list[MessageChunk]) -> MessageAuth:
        """Decode a message from its chunks."""
        for chunk in chunks:
            if chunk.type not in (MESSAGE_CHUNK_TYPE_AUTH, MESSAGE_CHUNK_TYPE_PREV):
                raise WinboxError(INCORRECT_SOURCE_BYTES)

        payload = b"".join(chunk.data[: chunk.length] for chunk in chunks)
        delimiter = payload.find(bytes([MESSAGE_CHUNK_BYTES_DELIMITER]))
        if delimiter < 0:
            raise WinboxError(INCORRECT_SOURCE_BYTES)
        try:
            username = payload[:delimiter].decode("ascii")
        except UnicodeDecodeError as exc:
            raise WinboxError(INCORRECT_SOURCE_BYTES) from exc

        msg = cls(username, payload[delimiter + 1 : -1], payload[-1])
        if (
            not msg.username
            or len(msg.public_key_bytes) != MESSAGE_AUTH_PUBLIC_KEY_BYTES_TOTAL
            or msg.public_key_parity > 1
            or USERNAME_PATTERN.fullmatch(msg.base_username) is None
        ):
            raise WinboxError(INCORRECT_SOURCE_BYTES)
        return msg

    def to_chunks(self) -> list[MessageChunk]:
        """Split the encoded message into chunks of at most 255 bytes."""
        payload = (
            self.username.encode("utf-8")
            + bytes([MESSAGE_CHUNK_BYTES_DELIMITER])
            + self.public_key_bytes
            + bytes([self.public_key_parity])
        )
        chunks = []
        for offset in range(0, len(payload), MESSAGE_CHUNK_BYTES_MAX):
            data = payload[offset : offset + MESSAGE_CHUNK_BYTES_MAX]
            chunk_type = MESSAGE_CHUNK_TYPE_AUTH if offset == 0 else MESSAGE_CHUNK_TYPE_PREV
            chunks.append(MessageChunk(data, len(data), chunk_type))
        return chunks

    def to_bytes(self) -> bytes:
        """Encode the message in its chunked wire form."""
        return b"".join(
            bytes([chunk.length, chunk.type]) + chunk.data for chunk in self.to_chunks()
        )


@dataclass
class MatchWinbox:
    """Matches connections that start like a Winbox login.

    ``modes`` lists acceptable modes (``standard``, ``romon``); empty accepts
    both. ``username`` must equal the login name when set; otherwise
    ``username_regexp``, when set, must be found in it.
    """

    modes: list[str] = field(default_factory=list)
    username: str = ""
    username_regexp: str = ""

    _accept_standard: bool = field(default=False, init=False, repr=False)
    _accept_romon: bool = field(default=False, init=False, repr=False)
    _compiled: re.Pattern[str] | None = field(default=None, init=False, repr=False)

    def provision(self) -> None:
        """Compile the username pattern and resolve the acceptable modes."""
        compiled = re.compile(self.username_regexp)
        if self.modes:
            standard = romon = False
            for mode in self.modes:
                mode = mode.lower()
                if mode == MODE_STANDARD:
                    standard = True
                elif mode == MODE_ROMON:
                    romon = True
                else:
                    raise WinboxError(INVALID_MODE)
        else:
            standard = romon = True
        self._compiled = compiled
        self._accept_standard, self._accept_romon = standard, romon

    def match(self, stream: _Readable) -> bool:
        """Return True if the stream starts with an acceptable auth message."""
        if self._compiled is None:
            raise RuntimeError("matcher has not been provisioned")

        header = _read_at_least(stream, 2, 2)
        if header[0] < MESSAGE_AUTH_BYTES_MIN - 2 or header[1] != MESSAGE_CHUNK_TYPE_AUTH:
            return False

        # Only expect more than one chunk when the first one is full.
        limit = header[0]
        if limit == MESSAGE_CHUNK_BYTES_MAX:
            limit = MESSAGE_AUTH_BYTES_MAX - 2

        body = _read_at_least(stream, header[0], limit + 1)
        if len(body) > limit:
            return False

        try:
            msg = MessageAuth.from_bytes(header + body)
        except WinboxError:
            return False

        if msg.romon:
            if not self._accept_romon:
                return False
        elif not self._accept_standard:
            return False

        name = msg.base_username
        if self.username:
            return self.username == name
        if self.username_regexp and self._compiled.search(name) is None:
            return False
        return True
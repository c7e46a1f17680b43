"""Match connections whose first bytes satisfy a regular expression."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Protocol

MIN_COUNT = 4
MAX_COUNT = 0xFFFF


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
class MatchRegexp:
    """Matches a fixed number of leading bytes against a regular expression."""

    pattern: str = ""
    count: int = 0

    _compiled: re.Pattern[bytes] | None = field(default=None, init=False, repr=False)

    def provision(self) -> None:
        """Apply the default byte count and compile the pattern."""
        if not 0 <= self.count <= MAX_COUNT:
            raise ValueError(f"count must be between 0 and {MAX_COUNT}: {self.count}")
        if self.count == 0:
            self.count = MIN_COUNT
        self._compiled = re.compile(self.pattern.encode("utf-8"))

    def match(self, stream: _Readable) -> bool:
        """Return True if the first ``count`` bytes match the pattern."""
        if self._compiled is None:
            raise RuntimeError("matcher has not been provisioned")
        data = _read_exactly(stream, self.count)
        return self._compiled.search(data) is not None
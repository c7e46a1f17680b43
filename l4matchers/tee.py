"""Replicate a connection's reads into a concurrently running branch of handlers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

logger = logging.getLogger(__name__)


class _Readable(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


class Handler(Protocol):
    def handle(self, stream: Any, next_handler: Callable[[Any], Any]) -> Any: ...


class _Pipe:
    """A synchronous pipe: a write returns only once the reader took the data."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._buffer = b""
        self._closed = False
        self._reader_closed = False

    def write(self, data: bytes) -> None:
        with self._cond:
            if self._reader_closed or self._closed:
                return
            self._buffer = bytes(data)
            self._cond.notify_all()
            while self._buffer and not self._reader_closed:
                self._cond.wait()

    def read(self, size: int = -1) -> bytes:
        with self._cond:
            while not self._buffer and not self._closed and not self._reader_closed:
                self._cond.wait()
            if not self._buffer:
                return b""
            if size < 0 or size >= len(self._buffer):
                chunk, self._buffer = self._buffer, b""
            else:
                chunk, self._buffer = self._buffer[:size], self._buffer[size:]
            self._cond.notify_all()
            return chunk

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def close_reader(self) -> None:
        with self._cond:
            self._reader_closed = True
            self._buffer = b""
            self._cond.notify_all()


class _Delegating:
    def __init__(self, stream: Any) -> None:
        self._stream = stream

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._stream, name)


class TeeStream(_Delegating):
    """The main branch's stream: every read is copied into the side branch."""

    def __init__(self, stream: _Readable, pipe: _Pipe) -> None:
        super().__init__(stream)
        self._pipe = pipe

    def read(self, size: int = -1) -> bytes:
        """Read from the connection and hand the same bytes to the branch."""
        data = self._stream.read(size)
        if data:
            self._pipe.write(data)
        else:
            self._pipe.close()
        return data

    def close(self) -> None:
        """Close the pipe to the branch and the underlying stream, if closable."""
        self._pipe.close()
        closer = getattr(self._stream, "close", None)
        if closer is not None:
            closer()


class _BranchStream(_Delegating):
    """The side branch's stream: reads come from the pipe, the rest from the connection."""

    def __init__(self, stream: Any, pipe: _Pipe) -> None:
        super().__init__(stream)
        self._pipe = pipe

    def read(self, size: int = -1) -> bytes:
        return self._pipe.read(size)


def _link(handler: Handler, next_handler: Callable[[Any], Any]) -> Callable[[Any], Any]:
    return lambda stream: handler.handle(stream, next_handler)


def _compile(handlers: Sequence[Handler]) -> Callable[[Any], Any]:
    chain: Callable[[Any], Any] = lambda stream: None
    for handler in reversed(handlers):
        chain = _link(handler, chain)
    return chain


@dataclass
class Tee:
    """Runs ``branch`` handlers concurrently on a copy of the connection.

    Reads happen in lock-step: the main chain's reads block until the branch
    has taken the same bytes. Do all connection matching before teeing.
    """

    branch: list[Handler] = field(default_factory=list)

    def handle(self, stream: _Readable, next_handler: Callable[[Any], Any]) -> Any:
        """Start the branch in the background and pass the stream on."""
        pipe = _Pipe()
        chain = _compile(self.branch)
        branch_stream = _BranchStream(stream, pipe)

        def run_branch() -> None:
            try:
                chain(branch_stream)
            except Exception:
                logger.exception("handling connection in branch")
            finally:
                pipe.close_reader()

        threading.Thread(target=run_branch, name="tee-branch", daemon=True).start()
        return next_handler(TeeStream(stream, pipe))
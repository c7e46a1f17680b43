"""Match SOCKSv4 connection requests."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Protocol, Union

_Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

COMMAND_CONNECT = 1
COMMAND_BIND = 2
_COMMANDS = {"CONNECT": COMMAND_CONNECT, "BIND": COMMAND_BIND}


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


def _parse_network(expression: str) -> _Network:
    """Parse an IP address or CIDR expression into a network."""
    if "/" in expression:
        return ipaddress.ip_network(expression, strict=False)
    return ipaddress.ip_network(ipaddress.ip_address(expression))


@dataclass
class Socks4Matcher:
    """Matches SOCKSv4 requests, optionally filtered by command, port and network.

    By default CONNECT and BIND requests to any destination are matched.
    """

    commands: list[str] = field(default_factory=list)
    networks: list[str] = field(default_factory=list)
    ports: list[int] = field(default_factory=list)

    _command_codes: set[int] = field(default_factory=set, init=False, repr=False)
    _cidrs: list[_Network] = field(default_factory=list, init=False, repr=False)

    def provision(self) -> None:
        """Resolve command names and parse the destination networks."""
        if not self.commands:
            codes = {COMMAND_CONNECT, COMMAND_BIND}
        else:
            codes = set()
            for command in self.commands:
                code = _COMMANDS.get(command.upper())
                if code is None:
                    raise ValueError(
                        f'unknown command "{command}" has to be one of ["CONNECT", "BIND"]'
                    )
                codes.add(code)
        for port in self.ports:
            if not 0 <= port <= 0xFFFF:
                raise ValueError(f"invalid port: {port}")
        self._cidrs = [_parse_network(network) for network in self.networks]
        self._command_codes = codes

    def match(self, stream: _Readable) -> bool:
        """Return True if the stream looks like an acceptable SOCKSv4 request."""
        header = _read_exactly(stream, 8)

        if header[0] != 4:
            return False
        if header[1] not in self._command_codes:
            return False
        if self.ports and int.from_bytes(header[2:4], "big") not in self.ports:
            return False
        if self._cidrs:
            destination = ipaddress.IPv4Address(header[4:8])
            if not any(destination in cidr for cidr in self._cidrs):
                return False
        return True
"""Match connections whose remote address is listed in a monitored file."""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Union

from l4matchers.iplist import IPAddress, IPList

logger = logging.getLogger(__name__)

RemoteAddress = Union[str, tuple]


def _split_host_port(hostport: str) -> str:
    """Return the host part of ``host:port``; raise ValueError if malformed."""
    colon = hostport.rfind(":")
    if colon < 0:
        raise ValueError(f"missing port in address: {hostport}")
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address: {hostport}")
        if end + 1 == len(hostport):
            raise ValueError(f"missing port in address: {hostport}")
        if end + 1 != colon:
            raise ValueError(f"malformed address: {hostport}")
        host = hostport[1:end]
        if "[" in hostport[1:] or "]" in hostport[end + 1 :]:
            raise ValueError(f"unexpected bracket in address: {hostport}")
    else:
        host = hostport[:colon]
        if ":" in host:
            raise ValueError(f"too many colons in address: {hostport}")
        if "[" in host or "]" in host:
            raise ValueError(f"unexpected bracket in address: {hostport}")
    if "[" in hostport[colon + 1 :] or "]" in hostport[colon + 1 :]:
        raise ValueError(f"unexpected bracket in address: {hostport}")
    return host


def _remote_ip(remote_addr: RemoteAddress) -> IPAddress:
    if isinstance(remote_addr, tuple):
        host = str(remote_addr[0])
    else:
        try:
            host = _split_host_port(remote_addr)
        except ValueError:
            host = remote_addr
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        raise ValueError(f"invalid remote IP address: {host}") from None


@dataclass
class RemoteIPList:
    """Matches connections from addresses listed in ``remote_ip_file``."""

    remote_ip_file: str = ""

    _ip_list: IPList | None = field(default=None, init=False, repr=False)

    @property
    def running(self) -> bool:
        """Whether the IP file is being monitored."""
        return self._ip_list is not None and self._ip_list.running

    def provision(self) -> None:
        """Create the IP list and start monitoring its file."""
        try:
            ip_list = IPList(self.remote_ip_file)
        except FileNotFoundError as exc:
            logger.error("error creating a new IP list: %s", exc)
            raise
        ip_list.start_monitoring()
        self._ip_list = ip_list

    def match(self, remote_addr: RemoteAddress) -> bool:
        """Return True if the remote address is in the list.

        ``remote_addr`` is ``"host:port"``, a bare IP, or a socket address tuple.
        """
        if self._ip_list is None:
            raise RuntimeError("matcher has not been provisioned")
        remote_ip = _remote_ip(remote_addr)
        logger.debug("received request from %s", remote_ip)
        if self._ip_list.is_matched(remote_ip):
            logger.info("matched IP found: %s", remote_ip)
            return True
        return False

    def cleanup(self) -> None:
        """Stop monitoring the IP file."""
        if self._ip_list is not None:
            self._ip_list.stop_monitoring()
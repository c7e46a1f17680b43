"""A file-backed list of IP networks that reloads when the file changes."""

from __future__ import annotations

import ipaddress
import logging
import os
import stat
import threading
from typing import Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

logger = logging.getLogger(__name__)


def parse_cidr_expression(expression: str) -> IPNetwork:
    """Parse an IP address or a CIDR expression into a network.

    A bare address becomes a single-address network. Raises ValueError.
    """
    if "/" in expression:
        return ipaddress.ip_network(expression, strict=False)
    address = ipaddress.ip_address(expression)
    if isinstance(address, ipaddress.IPv6Address) and address.scope_id:
        address = ipaddress.IPv6Address(int(address))
    return ipaddress.ip_network(address)


def _path_key(path: str) -> str:
    directory, name = os.path.split(path)
    return os.path.join(os.path.realpath(directory or "."), name)


def _contains(network: IPNetwork, address: IPAddress) -> bool:
    if network.version != address.version:
        return False
    if isinstance(address, ipaddress.IPv6Address) and address.scope_id:
        return False
    return address in network


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, ip_list: IPList) -> None:
        super().__init__()
        self._ip_list = ip_list

    def on_created(self, event: FileSystemEvent) -> None:
        self._ip_list._notice_change(os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        self._ip_list._notice_change(os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        self._ip_list._notice_change(os.fsdecode(event.dest_path))


class IPList:
    """Networks read from a file, reloaded on first use after the file changes.

    Lines that are not addresses or CIDR expressions (comments, for example)
    are ignored. A missing file means an empty list.
    """

    def __init__(self, ip_file: str | os.PathLike[str]) -> None:
        self.ip_file = os.fspath(ip_file)
        self._key = _path_key(self.ip_file)
        self._networks: list[IPNetwork] = []
        self._lock = threading.Lock()
        self._reload_needed = True
        self._observer: Observer | None = None
        self._monitor_lock = threading.Lock()
        # Without the directory the watcher cannot work.
        if not self._directory_exists():
            raise FileNotFoundError(
                f"could not find the directory containing the IP file to monitor: {self.ip_file}"
            )

    @property
    def directory(self) -> str:
        """The directory holding the IP file."""
        return os.path.dirname(self.ip_file) or "."

    @property
    def running(self) -> bool:
        """Whether the file is being monitored."""
        return self._observer is not None

    def __enter__(self) -> IPList:
        self.start_monitoring()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop_monitoring()

    def is_matched(self, ip: str | IPAddress) -> bool:
        """Return True if the address is in one of the listed networks."""
        if not self.running:
            logger.warning("match called but monitoring of IP file is not active")

        address = ipaddress.ip_address(ip) if isinstance(ip, str) else ip

        with self._lock:
            if self._reload_needed:
                try:
                    self._networks = self._load()
                except OSError as exc:
                    logger.error("could not load IP addresses: %s", exc)
                else:
                    self._reload_needed = False
                    logger.debug("reloaded IP addresses")
            networks = self._networks

        return any(_contains(network, address) for network in networks)

    def start_monitoring(self) -> None:
        """Start watching the IP file's directory for changes."""
        with self._monitor_lock:
            if self._observer is not None:
                return
            if not self._directory_exists():
                logger.error("directory containing the IP file to monitor does not exist")
                return
            observer = Observer()
            try:
                observer.schedule(_ChangeHandler(self), self.directory, recursive=False)
                observer.start()
            except OSError as exc:
                logger.error("error watching the file: %s", exc)
                return
            self._observer = observer

    def stop_monitoring(self) -> None:
        """Stop watching the IP file."""
        with self._monitor_lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            logger.debug("stop called")
            observer.stop()
            observer.join()

    def _notice_change(self, path: str) -> None:
        if _path_key(path) == self._key:
            with self._lock:
                self._reload_needed = True

    def _directory_exists(self) -> bool:
        try:
            return stat.S_ISDIR(os.lstat(self.directory).st_mode)
        except OSError:
            return False

    def _file_exists(self) -> bool:
        try:
            return not stat.S_ISDIR(os.lstat(self.ip_file).st_mode)
        except OSError:
            return False

    def _load(self) -> list[IPNetwork]:
        if not self._file_exists():
            logger.debug("ip file not found, nothing to monitor")
            return []

        with open(self.ip_file, "rb") as file:
            content = file.read()

        networks = []
        for raw_line in content.split(b"\n"):
            line = raw_line.removesuffix(b"\r").decode("utf-8", errors="replace")
            try:
                networks.append(parse_cidr_expression(line))
            except ValueError:
                continue
        return networks
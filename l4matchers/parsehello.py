"""A lenient parser for raw TLS ClientHello handshake messages.

Parsing stops at the first malformed field; whatever was read until then is
kept in the returned ClientHelloInfo.
"""

from __future__ import annotations

from typing import Callable

from l4matchers.clienthello import ClientHelloInfo, KeyShare, PSKIdentity

VERSION_TLS10 = 0x0301
VERSION_TLS11 = 0x0302
VERSION_TLS12 = 0x0303
VERSION_TLS13 = 0x0304

ALL_KNOWN_VERSIONS = (VERSION_TLS13, VERSION_TLS12, VERSION_TLS11, VERSION_TLS10)

EXTENSION_SERVER_NAME = 0
EXTENSION_STATUS_REQUEST = 5
EXTENSION_SUPPORTED_CURVES = 10  # supported_groups in TLS 1.3
EXTENSION_SUPPORTED_POINTS = 11
EXTENSION_SIGNATURE_ALGORITHMS = 13
EXTENSION_ALPN = 16
EXTENSION_SCT = 18
EXTENSION_SESSION_TICKET = 35
EXTENSION_PRE_SHARED_KEY = 41
EXTENSION_EARLY_DATA = 42
EXTENSION_SUPPORTED_VERSIONS = 43
EXTENSION_COOKIE = 44
EXTENSION_PSK_MODES = 45
EXTENSION_CERTIFICATE_AUTHORITIES = 47
EXTENSION_SIGNATURE_ALGORITHMS_CERT = 50
EXTENSION_KEY_SHARE = 51
EXTENSION_RENEGOTIATION_INFO = 0xFF01

SCSV_RENEGOTIATION = 0x00FF
STATUS_TYPE_OCSP = 1


class _Reader:
    """A cursor over bytes; failed reads return None and consume nothing."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def empty(self) -> bool:
        return self._pos >= len(self._data)

    def read(self, size: int) -> bytes | None:
        end = self._pos + size
        if end > len(self._data):
            return None
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def read_uint(self, size: int) -> int | None:
        chunk = self.read(size)
        return None if chunk is None else int.from_bytes(chunk, "big")

    def read_prefixed(self, prefix_size: int) -> bytes | None:
        start = self._pos
        length = self.read_uint(prefix_size)
        if length is None:
            return None
        body = self.read(length)
        if body is None:
            self._pos = start
        return body

    def read_prefixed_reader(self, prefix_size: int) -> _Reader | None:
        body = self.read_prefixed(prefix_size)
        return None if body is None else _Reader(body)

    def read_rest(self) -> bytes:
        chunk = self._data[self._pos:]
        self._pos = len(self._data)
        return chunk


def supported_versions_from_max(max_version: int) -> list[int]:
    """Known versions not newer than a legacy maximum version, newest first."""
    return [version for version in ALL_KNOWN_VERSIONS if version <= max_version]


def _read_uint16_list(reader: _Reader, prefix_size: int, out: list[int]) -> bool:
    """Append a non-empty, length-prefixed list of uint16 values to ``out``."""
    items = reader.read_prefixed_reader(prefix_size)
    if items is None or items.empty():
        return False
    while not items.empty():
        value = items.read_uint(2)
        if value is None:
            return False
        out.append(value)
    return True


def _server_name(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    names = data.read_prefixed_reader(2)
    if names is None or names.empty():
        return False
    while not names.empty():
        name_type = names.read_uint(1)
        if name_type is None:
            return False
        name = names.read_prefixed(2)
        if not name:
            return False
        if name_type != 0:
            continue
        if info.server_name:
            return False  # several names of the same type are prohibited
        info.server_name = name.decode("utf-8", errors="replace")
        if info.server_name.endswith("."):
            return False
    return True


def _status_request(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    status_type = data.read_uint(1)
    if status_type is None or data.read_prefixed(2) is None or data.read_prefixed(2) is None:
        return False
    info.ocsp_stapling = status_type == STATUS_TYPE_OCSP
    return True


def _supported_curves(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    return _read_uint16_list(data, 2, info.supported_curves)


def _supported_points(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    points = data.read_prefixed(1)
    if points is None:
        return False
    info.supported_points = points
    return bool(points)


def _session_ticket(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    info.ticket_supported = True
    info.session_ticket = data.read_rest()
    return True


def _signature_algorithms(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    return _read_uint16_list(data, 2, info.signature_schemes)


def _signature_algorithms_cert(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    return _read_uint16_list(data, 2, info.supported_schemes_cert)


def _renegotiation_info(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    renegotiation = data.read_prefixed(1)
    if renegotiation is None:
        return False
    info.secure_renegotiation = renegotiation
    info.secure_renegotiation_supported = True
    return True


def _alpn(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    protos = data.read_prefixed_reader(2)
    if protos is None or protos.empty():
        return False
    while not protos.empty():
        proto = protos.read_prefixed(1)
        if not proto:
            return False
        info.supported_protos.append(proto.decode("utf-8", errors="replace"))
    return True


def _sct(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    info.scts = True
    return True


def _supported_versions(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    return _read_uint16_list(data, 1, info.supported_versions)


def _cookie(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    cookie = data.read_prefixed(2)
    if cookie is None:
        return False
    info.cookie = cookie
    return bool(cookie)


def _key_share(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    shares = data.read_prefixed_reader(2)
    if shares is None:
        return False
    while not shares.empty():
        group = shares.read_uint(2)
        if group is None:
            return False
        key = shares.read_prefixed(2)
        if not key:
            return False
        info.key_shares.append(KeyShare(group, key))
    return True


def _early_data(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    info.early_data = True
    return True


def _psk_modes(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    modes = data.read_prefixed(1)
    if modes is None:
        return False
    info.psk_modes = modes
    return True


def _pre_shared_key(info: ClientHelloInfo, data: _Reader, rest: _Reader) -> bool:
    if not rest.empty():
        return False  # pre_shared_key must be the last extension
    identities = data.read_prefixed_reader(2)
    if identities is None or identities.empty():
        return False
    while not identities.empty():
        label = identities.read_prefixed(2)
        if label is None:
            return False
        age = identities.read_uint(4)
        if age is None or not label:
            return False
        info.psk_identities.append(PSKIdentity(label, age))
    binders = data.read_prefixed_reader(2)
    if binders is None or binders.empty():
        return False
    while not binders.empty():
        binder = binders.read_prefixed(1)
        if not binder:
            return False
        info.psk_binders.append(binder)
    return True


_ExtensionParser = Callable[[ClientHelloInfo, _Reader, _Reader], bool]

_EXTENSION_PARSERS: dict[int, _ExtensionParser] = {
    EXTENSION_SERVER_NAME: _server_name,
    EXTENSION_STATUS_REQUEST: _status_request,
    EXTENSION_SUPPORTED_CURVES: _supported_curves,
    EXTENSION_SUPPORTED_POINTS: _supported_points,
    EXTENSION_SESSION_TICKET: _session_ticket,
    EXTENSION_SIGNATURE_ALGORITHMS: _signature_algorithms,
    EXTENSION_SIGNATURE_ALGORITHMS_CERT: _signature_algorithms_cert,
    EXTENSION_RENEGOTIATION_INFO: _renegotiation_info,
    EXTENSION_ALPN: _alpn,
    EXTENSION_SCT: _sct,
    EXTENSION_SUPPORTED_VERSIONS: _supported_versions,
    EXTENSION_COOKIE: _cookie,
    EXTENSION_KEY_SHARE: _key_share,
    EXTENSION_EARLY_DATA: _early_data,
    EXTENSION_PSK_MODES: _psk_modes,
    EXTENSION_PRE_SHARED_KEY: _pre_shared_key,
}


def _parse_into(info: ClientHelloInfo, s: _Reader) -> None:
    if s.read(4) is None:  # message type and uint24 length
        return
    version = s.read_uint(2)
    if version is None:
        return
    info.version = version
    random = s.read(32)
    if random is None:
        return
    info.random = random
    session_id = s.read_prefixed(1)
    if session_id is None:
        return
    info.session_id = session_id

    suites = s.read_prefixed_reader(2)
    if suites is None:
        return
    while not suites.empty():
        suite = suites.read_uint(2)
        if suite is None:
            return
        if suite == SCSV_RENEGOTIATION:
            info.secure_renegotiation_supported = True
        info.cipher_suites.append(suite)

    compression = s.read_prefixed(1)
    if compression is None:
        return
    info.compression_methods = compression

    if s.empty():
        return  # extensions are optional

    extensions = s.read_prefixed_reader(2)
    if extensions is None or not s.empty():
        return

    while not extensions.empty():
        extension = extensions.read_uint(2)
        if extension is None:
            return
        ext_data = extensions.read_prefixed_reader(2)
        if ext_data is None:
            return
        info.extensions.append(extension)

        parser = _EXTENSION_PARSERS.get(extension)
        if parser is None:
            continue  # unknown extensions are ignored
        if not parser(info, ext_data, extensions) or not ext_data.empty():
            return


def parse_raw_client_hello(data: bytes) -> ClientHelloInfo:
    """Parse a ClientHello handshake message, header included."""
    info = ClientHelloInfo()
    _parse_into(info, _Reader(data))
    if not info.supported_versions:
        info.supported_versions = supported_versions_from_max(info.version)
    return info
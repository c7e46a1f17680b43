import pytest

from l4matchers.clienthello import KeyShare, PSKIdentity
from l4matchers.parsehello import parse_raw_client_hello, supported_versions_from_max


def u8p(body):
    return bytes([len(body)]) + body


def u16p(body):
    return len(body).to_bytes(2, "big") + body


def u16s(*values):
    return b"".join(v.to_bytes(2, "big") for v in values)


def build_hello(*, version=0x0303, random=bytes(range(32)), session_id=b"",
                suites=(0x1301,), compression=b"\x00", extensions=None):
    body = version.to_bytes(2, "big") + random + u8p(session_id)
    body += u16p(u16s(*suites)) + u8p(compression)
    if extensions is not None:
        body += u16p(b"".join(t.to_bytes(2, "big") + u16p(d) for t, d in extensions))
    return b"\x01" + len(body).to_bytes(3, "big") + body


def sni(name):
    return u16p(b"\x00" + u16p(name))


def alpn(*protos):
    return u16p(b"".join(u8p(p) for p in protos))


def test_basic_fields_without_extensions():
    random = bytes(range(32))
    info = parse_raw_client_hello(
        build_hello(random=random, session_id=b"abcd", suites=(0x1301, 0x1302), compression=b"\x00")
    )
    assert info.version == 0x0303
    assert info.random == random
    assert info.session_id == b"abcd"
    assert info.cipher_suites == [0x1301, 0x1302]
    assert info.compression_methods == b"\x00"
    assert info.extensions == []
    assert info.supported_versions == [0x0303, 0x0302, 0x0301]


def test_server_name_and_alpn():
    info = parse_raw_client_hello(
        build_hello(extensions=[(0, sni(b"example.com")), (16, alpn(b"h2", b"http/1.1"))])
    )
    assert info.server_name == "example.com"
    assert info.supported_protos == ["h2", "http/1.1"]
    assert info.extensions == [0, 16]


def test_supported_versions_extension_takes_precedence():
    info = parse_raw_client_hello(build_hello(extensions=[(43, u8p(u16s(0x0304, 0x0303)))]))
    assert info.supported_versions == [0x0304, 0x0303]


def test_scsv_marks_secure_renegotiation():
    info = parse_raw_client_hello(build_hello(suites=(0x1301, 0x00FF)))
    assert info.secure_renegotiation_supported is True
    assert info.cipher_suites == [0x1301, 0x00FF]


def test_renegotiation_info_extension():
    info = parse_raw_client_hello(build_hello(extensions=[(0xFF01, u8p(b""))]))
    assert info.secure_renegotiation_supported is True
    assert info.secure_renegotiation == b""


def test_trailing_dot_in_server_name_stops_parsing():
    info = parse_raw_client_hello(
        build_hello(extensions=[(0, sni(b"example.com.")), (16, alpn(b"h2"))])
    )
    assert info.server_name == "example.com."
    assert info.supported_protos == []
    assert info.extensions == [0]


def test_leftover_extension_data_stops_parsing():
    info = parse_raw_client_hello(build_hello(extensions=[(18, b"x"), (16, alpn(b"h2"))]))
    assert info.scts is True
    assert info.supported_protos == []


def test_truncated_message_keeps_partial_fields():
    info = parse_raw_client_hello(build_hello()[:10])
    assert info.version == 0x0303
    assert info.random == b""
    assert info.supported_versions == [0x0303, 0x0302, 0x0301]


def test_empty_input():
    info = parse_raw_client_hello(b"")
    assert info.version == 0
    assert info.supported_versions == []


def test_key_share_and_psk():
    key_share = u16p((29).to_bytes(2, "big") + u16p(b"\x01\x02"))
    psk = u16p(u16p(b"ticket") + (7).to_bytes(4, "big")) + u16p(u8p(b"binder"))
    info = parse_raw_client_hello(
        build_hello(extensions=[(51, key_share), (45, u8p(b"\x01")), (42, b""), (41, psk)])
    )
    assert info.key_shares == [KeyShare(29, b"\x01\x02")]
    assert info.psk_modes == b"\x01"
    assert info.early_data is True
    assert info.psk_identities == [PSKIdentity(b"ticket", 7)]
    assert info.psk_binders == [b"binder"]


def test_pre_shared_key_must_be_last():
    psk = u16p(u16p(b"ticket") + (7).to_bytes(4, "big")) + u16p(u8p(b"binder"))
    info = parse_raw_client_hello(build_hello(extensions=[(41, psk), (16, alpn(b"h2"))]))
    assert info.extensions == [41]
    assert info.psk_identities == []
    assert info.supported_protos == []


def test_session_ticket_status_request_and_cookie():
    info = parse_raw_client_hello(
        build_hello(extensions=[
            (35, b"abc"),
            (5, b"\x01" + u16p(b"") + u16p(b"")),
            (44, u16p(b"cookie")),
        ])
    )
    assert info.ticket_supported is True
    assert info.session_ticket == b"abc"
    assert info.ocsp_stapling is True
    assert info.cookie == b"cookie"


def test_signature_schemes_curves_and_points():
    info = parse_raw_client_hello(
        build_hello(extensions=[
            (13, u16p(u16s(0x0403, 0x0804))),
            (50, u16p(u16s(0x0403))),
            (10, u16p(u16s(29, 23))),
            (11, u8p(b"\x00")),
        ])
    )
    assert info.signature_schemes == [0x0403, 0x0804]
    assert info.supported_schemes_cert == [0x0403]
    assert info.supported_curves == [29, 23]
    assert info.supported_points == b"\x00"


def test_unknown_extension_is_recorded_and_skipped():
    info = parse_raw_client_hello(build_hello(extensions=[(0x1234, b"junk"), (0, sni(b"example.com"))]))
    assert info.extensions == [0x1234, 0]
    assert info.server_name == "example.com"


@pytest.mark.parametrize(
    "maximum, expected",
    [
        (0x0304, [0x0304, 0x0303, 0x0302, 0x0301]),
        (0x0301, [0x0301]),
        (0, []),
    ],
)
def test_supported_versions_from_max(maximum, expected):
    assert supported_versions_from_max(maximum) == expected
import io

import pytest

from l4matchers.wireguard import (
    MESSAGE_COOKIE_REPLY_BYTES_TOTAL,
    MESSAGE_INITIATION_BYTES_TOTAL,
    MESSAGE_RESPONSE_BYTES_TOTAL,
    MESSAGE_TRANSPORT_BYTES_MIN,
    MatchWireGuard,
    MessageInitiation,
    MessageTransport,
    MessageType,
)

PACKET_00000001 = bytes([MessageType.INITIATION, 0x00, 0x00, 0x00])
PACKET_00000002 = bytes([MessageType.RESPONSE, 0x00, 0x00, 0x00])
PACKET_00000003 = bytes([MessageType.COOKIE_REPLY, 0x00, 0x00, 0x00])
PACKET_00000004 = bytes([MessageType.TRANSPORT, 0x00, 0x00, 0x00])
PACKET_010077FF = bytes([MessageType.INITIATION, 0x00, 0x77, 0xFF])


def _pad(packet, total):
    return packet + bytes(total - len(packet))


@pytest.mark.parametrize(
    "packet",
    [
        _pad(PACKET_00000001, MESSAGE_INITIATION_BYTES_TOTAL),
        _pad(PACKET_010077FF, MESSAGE_INITIATION_BYTES_TOTAL),
    ],
)
def test_message_initiation_round_trip(packet):
    assert MessageInitiation.from_bytes(packet).to_bytes() == packet


@pytest.mark.parametrize(
    "packet",
    [
        _pad(PACKET_00000004, MESSAGE_TRANSPORT_BYTES_MIN),
        _pad(PACKET_00000004, MESSAGE_TRANSPORT_BYTES_MIN + 160),
    ],
)
def test_message_transport_round_trip(packet):
    assert MessageTransport.from_bytes(packet).to_bytes() == packet


@pytest.mark.parametrize(
    "zero, data, should_match",
    [
        (0, PACKET_00000001, False),
        (0, _pad(PACKET_00000001, MESSAGE_INITIATION_BYTES_TOTAL), True),
        (0, _pad(PACKET_00000001, MESSAGE_INITIATION_BYTES_TOTAL + 1), False),
        (0, PACKET_00000002, False),
        (0, _pad(PACKET_00000002, MESSAGE_INITIATION_BYTES_TOTAL), False),
        (0, _pad(PACKET_00000002, MESSAGE_RESPONSE_BYTES_TOTAL), False),
        (0, PACKET_00000003, False),
        (0, _pad(PACKET_00000003, MESSAGE_INITIATION_BYTES_TOTAL), False),
        (0, _pad(PACKET_00000003, MESSAGE_COOKIE_REPLY_BYTES_TOTAL), False),
        (0, PACKET_00000004, False),
        (0, _pad(PACKET_00000004, MESSAGE_INITIATION_BYTES_TOTAL), False),
        (0, _pad(PACKET_00000004, MESSAGE_TRANSPORT_BYTES_MIN), True),
        (0, PACKET_010077FF, False),
        (0, _pad(PACKET_010077FF, MESSAGE_INITIATION_BYTES_TOTAL), False),
        (4285988864, _pad(PACKET_010077FF, MESSAGE_INITIATION_BYTES_TOTAL), True),
    ],
)
def test_match_table(zero, data, should_match):
    matcher = MatchWireGuard(zero=zero)
    matcher.provision()
    assert matcher.match(io.BytesIO(data)) is should_match


def test_initiation_fields_decoded():
    msg = MessageInitiation.from_bytes(_pad(PACKET_010077FF, MESSAGE_INITIATION_BYTES_TOTAL))
    assert msg.type == 0xFF770001


def test_transport_content_split():
    packet = _pad(PACKET_00000004, MESSAGE_TRANSPORT_BYTES_MIN)
    msg = MessageTransport.from_bytes(packet)
    assert msg.type == MessageType.TRANSPORT
    assert msg.content == packet[16:]


def test_short_initiation_raises():
    with pytest.raises(ValueError):
        MessageInitiation.from_bytes(PACKET_00000001)


def test_short_transport_raises():
    with pytest.raises(ValueError):
        MessageTransport.from_bytes(PACKET_00000004)


def test_bad_field_length_raises_on_encode():
    with pytest.raises(ValueError):
        MessageInitiation(ephemeral=b"\x00").to_bytes()


def test_empty_stream_raises_eof():
    with pytest.raises(EOFError):
        MatchWireGuard().match(io.BytesIO(b""))


def test_zero_out_of_range_raises():
    with pytest.raises(ValueError):
        MatchWireGuard(zero=1 << 32).provision()
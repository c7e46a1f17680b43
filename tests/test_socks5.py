import io

import pytest

from l4matchers.socks5 import Socks5Matcher

CURL_SOCKS5_EXAMPLE1 = bytes([0x05, 0x02, 0x00, 0x01])
CURL_SOCKS5_EXAMPLE2 = bytes([0x05, 0x03, 0x00, 0x01, 0x02])
FIREFOX_SOCKS5_EXAMPLE = bytes([0x05, 0x01, 0x00])


@pytest.mark.parametrize(
    "auth_methods, data, should_match",
    [
        ([], CURL_SOCKS5_EXAMPLE1, True),
        ([], CURL_SOCKS5_EXAMPLE2, True),
        ([], FIREFOX_SOCKS5_EXAMPLE, True),
        ([], b"Hello World", False),
        ([0], CURL_SOCKS5_EXAMPLE1, False),
        ([0], CURL_SOCKS5_EXAMPLE2, False),
        ([0], FIREFOX_SOCKS5_EXAMPLE, True),
        ([129], CURL_SOCKS5_EXAMPLE1, False),
        ([129], FIREFOX_SOCKS5_EXAMPLE, False),
        ([129], bytes([0x05, 0x01, 0x81]), True),
    ],
)
def test_match_table(auth_methods, data, should_match):
    matcher = Socks5Matcher(auth_methods=list(auth_methods))
    matcher.provision()
    assert matcher.match(io.BytesIO(data)) is should_match


def test_default_auth_methods():
    matcher = Socks5Matcher()
    matcher.provision()
    assert matcher.auth_methods == [0, 1, 2]


def test_truncated_methods_raise_eof():
    matcher = Socks5Matcher()
    matcher.provision()
    with pytest.raises(EOFError):
        matcher.match(io.BytesIO(bytes([0x05, 0x03, 0x00])))


def test_missing_count_raises_eof():
    matcher = Socks5Matcher()
    matcher.provision()
    with pytest.raises(EOFError):
        matcher.match(io.BytesIO(bytes([0x05])))
from l4matchers.alpn import MatchALPN
from l4matchers.clienthello import ClientHelloInfo


def test_matches_offered_protocol():
    hello = ClientHelloInfo(supported_protos=["h2", "http/1.1"])
    assert MatchALPN(["http/1.1"]).match(hello) is True


def test_any_of_several_protocols_matches():
    hello = ClientHelloInfo(supported_protos=["h2"])
    assert MatchALPN(["h3", "h2"]).match(hello) is True


def test_no_common_protocol():
    hello = ClientHelloInfo(supported_protos=["h2", "http/1.1"])
    assert MatchALPN(["h3"]).match(hello) is False


def test_empty_lists_do_not_match():
    assert MatchALPN([]).match(ClientHelloInfo(supported_protos=["h2"])) is False
    assert MatchALPN(["h2"]).match(ClientHelloInfo()) is False
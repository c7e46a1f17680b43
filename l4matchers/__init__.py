"""Layer 4 protocol matchers (TLS, SSH, XMPP, SOCKS, WireGuard, Winbox, regexp,
remote IP lists) and stream handlers for throttling and teeing connections."""

__version__ = "0.1.0"

__all__ = [
    "alpn",
    "clienthello",
    "iplist",
    "parsehello",
    "regexp_matcher",
    "remote_ip_list",
    "socks4",
    "socks5",
    "ssh",
    "tee",
    "throttle",
    "tls_matcher",
    "winbox",
    "wireguard",
    "xmpp",
]
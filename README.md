# l4matchers

Protocol matchers and stream handlers for layer 4 (raw TCP/UDP) traffic.
A matcher reads the first bytes of a connection and decides whether they look
like a given protocol. You can then send the connection on to the right place
without ending TLS or parsing the whole application protocol.

## Installation

```
pip install l4matchers
```

With the test dependencies:

```
pip install "l4matchers[test]"
```

## Stream matchers

These matchers have a `match(stream)` method. It reads from a binary stream
that has a `read(size)` method, such as `io.BytesIO` or a socket file, and
returns `True` or `False`. If the stream ends before enough bytes arrive,
`match` raises `EOFError`. Where a class has a `provision()` method, call it
once before the first `match`: it applies defaults, checks the settings and
raises `ValueError` (or `WinboxError`, a `ValueError`) for bad ones.

| Module                       | Class            | Recognises                                              | `provision()` |
|------------------------------|------------------|---------------------------------------------------------|---------------|
| `l4matchers.regexp_matcher`  | `MatchRegexp`    | the first `count` bytes (default 4) searched with `pattern` | yes       |
| `l4matchers.ssh`             | `MatchSSH`       | the `SSH-` banner                                       | no            |
| `l4matchers.xmpp`            | `MatchXMPP`      | the word `jabber` in the first 50 bytes                 | no            |
| `l4matchers.socks4`          | `Socks4Matcher`  | SOCKSv4/4a requests, by `commands`, `ports`, `networks` | yes           |
| `l4matchers.socks5`          | `Socks5Matcher`  | SOCKSv5 greetings whose auth methods are all in `auth_methods` | yes    |
| `l4matchers.wireguard`       | `MatchWireGuard` | WireGuard handshake initiations and keepalives          | yes           |
| `l4matchers.winbox`          | `MatchWinbox`    | Winbox auth messages, by `modes`, `username`, `username_regexp` | yes   |
| `l4matchers.tls_matcher`     | `MatchTLS`       | a TLS ClientHello accepted by every one of its `matchers` | no          |

Defaults: `Socks4Matcher` accepts CONNECT and BIND to any address and port;
`Socks5Matcher` accepts methods 0 (no auth), 1 (GSSAPI) and 2
(username/password); `MatchWinbox` accepts both the `standard` and `romon`
modes and any valid username.

### Example

```python
import io

from l4matchers.socks5 import Socks5Matcher
from l4matchers.ssh import MatchSSH

ssh = MatchSSH()
print(ssh.match(io.BytesIO(b"SSH-2.0-OpenSSH_9.6\r\n")))   # True

socks = Socks5Matcher(auth_methods=[0])
socks.provision()
print(socks.match(io.BytesIO(bytes([0x05, 0x01, 0x00]))))   # True
```

### Message types

`l4matchers.wireguard` has `MessageInitiation` and `MessageTransport`, and
`l4matchers.winbox` has `MessageAuth` and `MessageChunk`. Each has a
`from_bytes` class method and a `to_bytes` method that round-trip the wire
format. `MessageAuth` also has `from_chunks`, `to_chunks`, `enable_romon()`,
`disable_romon()` and the properties `romon`, `base_username` and
`public_key`.

### TLS ClientHello

`l4matchers.tls_matcher.read_client_hello(stream)` reads TLS records from a
stream and puts a handshake message back together. It returns `None` if the
first record is not a handshake and raises `ValueError` if the message is
larger than 8 KiB. `l4matchers.parsehello.parse_raw_client_hello(data)`
parses the message into a `ClientHelloInfo` (from `l4matchers.clienthello`)
holding the server name, ALPN protocols, cipher suites, supported versions,
key shares, PSK identities and more. It stops at the first malformed field
and keeps what it read up to there.

`MatchTLS` combines the two with handshake matchers: any object with a
`match(hello)` method, such as `l4matchers.alpn.MatchALPN`:

```python
from l4matchers.alpn import MatchALPN
from l4matchers.tls_matcher import MatchTLS

matcher = MatchTLS(matchers=[MatchALPN(["h2", "http/1.1"])])
```

`ClientHelloInfo.fill_tls_client_config(cfg)` copies what the client offered
into a `TLSClientConfig`, filling only the fields that are still unset.

## Remote IP lists

`l4matchers.remote_ip_list.RemoteIPList` matches by the connection's remote
address rather than its bytes: its `match(remote_addr)` takes
`"host:port"`, a bare IP address, or a socket address tuple. The addresses
and CIDR ranges come from a file, one per line; lines that do not parse, such
as comments, are skipped. The file may be missing (nothing matches), but the
directory that holds it must exist, or `provision()` raises
`FileNotFoundError`. The directory is watched, and the file is read again on
the first match after it changes.

```python
from l4matchers.remote_ip_list import RemoteIPList

matcher = RemoteIPList(remote_ip_file="/etc/l4/blocked-ips")
matcher.provision()
try:
    matcher.match("192.0.2.10:51234")
finally:
    matcher.cleanup()
```

The file handling lives in `l4matchers.iplist.IPList`, which can also be used
directly, as a context manager that starts and stops the watching.
`parse_cidr_expression` in the same module turns an address or CIDR string
into a network.

## Handlers

A handler has `handle(stream, next_handler)`: it does its work and then
calls `next_handler` with the stream to use from then on.

- `l4matchers.throttle.Throttle` limits read rates for each connection
  (`read_bytes_per_second`, `read_burst_size`) and across all connections
  (`total_read_bytes_per_second`, `total_read_burst_size`), using
  token-bucket `RateLimiter`s. A burst size of zero defaults to the rate plus
  one. `latency` is a delay in seconds before the stream is passed on.
  Call `provision()` first; `wrap(stream)` returns a `ThrottledStream`
  without calling anything further.
- `l4matchers.tee.Tee` runs its `branch` handlers in a background thread on a
  copy of the connection. Everything the main chain reads through the
  `TeeStream` it receives is handed to the branch as well, in lock-step: a
  read on the main chain returns only once the branch has taken the bytes.
  Do all matching before teeing.

## What this package does not do

It contains no listener, server or routing: you accept connections and call
the matchers and handlers from your own code. There is no configuration file
format. It recognises SOCKS greetings but does not serve SOCKS, and it
recognises TLS ClientHellos but does not terminate TLS.

## Running the tests

```
pytest
```
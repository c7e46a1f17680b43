"""Match TLS ClientHellos by the application protocols they offer."""

from __future__ import annotations

from dataclasses import dataclass, field

from l4matchers.clienthello import ClientHelloInfo


@dataclass
class MatchALPN:
    """Matches a ClientHello that offers at least one of ``protocols``."""

    protocols: list[str] = field(default_factory=list)

    def match(self, hello: ClientHelloInfo) -> bool:
        """Return True if the client offers any of the protocols."""
        offered = hello.supported_protos
        return any(protocol in offered for protocol in self.protocols)
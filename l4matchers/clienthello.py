"""Information gathered from a TLS ClientHello message."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KeyShare:
    """A TLS 1.3 key share (RFC 8446, section 4.2.8)."""

    group: int
    data: bytes


@dataclass
class PSKIdentity:
    """A TLS 1.3 pre-shared key identity (RFC 8446, section 4.2.11)."""

    label: bytes
    obfuscated_ticket_age: int


@dataclass
class TLSClientConfig:
    """The client-side TLS settings that a ClientHello can fill in.

    ``None`` and zero mean "not set".
    """

    server_name: str = ""
    next_protos: list[str] | None = None
    cipher_suites: list[int] | None = None
    curve_preferences: list[int] | None = None
    min_version: int = 0
    max_version: int = 0


@dataclass
class ClientHelloInfo:
    """Everything the ClientHello parser collects."""

    server_name: str = ""
    cipher_suites: list[int] = field(default_factory=list)
    supported_curves: list[int] = field(default_factory=list)
    supported_points: bytes = b""
    signature_schemes: list[int] = field(default_factory=list)
    supported_protos: list[str] = field(default_factory=list)
    supported_versions: list[int] = field(default_factory=list)

    version: int = 0
    random: bytes = b""
    session_id: bytes = b""
    secure_renegotiation_supported: bool = False
    secure_renegotiation: bytes = b""
    compression_methods: bytes = b""

    extensions: list[int] = field(default_factory=list)

    ocsp_stapling: bool = False
    ticket_supported: bool = False
    session_ticket: bytes = b""
    supported_schemes_cert: list[int] = field(default_factory=list)
    scts: bool = False
    cookie: bytes = b""
    key_shares: list[KeyShare] = field(default_factory=list)
    early_data: bool = False
    psk_modes: bytes = b""
    psk_identities: list[PSKIdentity] = field(default_factory=list)
    psk_binders: list[bytes] = field(default_factory=list)

    def fill_tls_client_config(self, cfg: TLSClientConfig) -> None:
        """Fill the unset fields of ``cfg`` from this ClientHello."""
        if cfg.next_protos is None:
            cfg.next_protos = list(self.supported_protos)
        if not cfg.server_name:
            cfg.server_name = self.server_name
        if cfg.cipher_suites is None:
            cfg.cipher_suites = list(self.cipher_suites)
        if cfg.curve_preferences is None:
            cfg.curve_preferences = list(self.supported_curves)
        min_version = min(self.supported_versions, default=0)
        max_version = max(self.supported_versions, default=0)
        if cfg.min_version == 0:
            cfg.min_version = min_version
        if cfg.max_version == 0:
            cfg.max_version = max_version
from l4matchers.clienthello import ClientHelloInfo, TLSClientConfig


def _hello():
    return ClientHelloInfo(
        server_name="example.com",
        cipher_suites=[0x1301, 0x1302],
        supported_curves=[29, 23],
        supported_protos=["h2", "http/1.1"],
        supported_versions=[0x0303, 0x0304, 0x0302],
    )


def test_fill_empty_config():
    cfg = TLSClientConfig()
    _hello().fill_tls_client_config(cfg)
    assert cfg.server_name == "example.com"
    assert cfg.next_protos == ["h2", "http/1.1"]
    assert cfg.cipher_suites == [0x1301, 0x1302]
    assert cfg.curve_preferences == [29, 23]
    assert cfg.min_version == 0x0302
    assert cfg.max_version == 0x0304


def test_fill_does_not_overwrite_set_fields():
    cfg = TLSClientConfig(
        server_name="other.example.com",
        next_protos=["h3"],
        cipher_suites=[0x1303],
        curve_preferences=[24],
        min_version=0x0303,
        max_version=0x0303,
    )
    _hello().fill_tls_client_config(cfg)
    assert cfg.server_name == "other.example.com"
    assert cfg.next_protos == ["h3"]
    assert cfg.cipher_suites == [0x1303]
    assert cfg.curve_preferences == [24]
    assert (cfg.min_version, cfg.max_version) == (0x0303, 0x0303)


def test_fill_without_versions_leaves_zero():
    cfg = TLSClientConfig()
    ClientHelloInfo().fill_tls_client_config(cfg)
    assert (cfg.min_version, cfg.max_version) == (0, 0)
    assert cfg.server_name == ""


def test_fill_copies_lists():
    hello = _hello()
    cfg = TLSClientConfig()
    hello.fill_tls_client_config(cfg)
    cfg.next_protos.append("h3")
    assert hello.supported_protos == ["h2", "http/1.1"]
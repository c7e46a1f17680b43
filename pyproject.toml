[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "l4matchers"
version = "0.1.0"
description = "Layer 4 connection matchers and stream handlers: TLS, SSH, XMPP, SOCKS, WireGuard, Winbox, regexp, remote IP lists, throttling and tee."
requires-python = ">=3.10"
dependencies = [
    "watchdog",
]
keywords = [
    "layer4",
    "tcp",
    "protocol detection",
    "tls",
    "clienthello",
    "socks",
    "wireguard",
    "matcher",
    "rate limiting",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Internet :: Proxy Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["l4matchers"]

[tool.hatch.build.targets.sdist]
include = ["l4matchers", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true

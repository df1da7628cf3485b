"""TOML + environment configuration loading."""

from __future__ import annotations

import pytest

from tlspin.config import FABRICATED_PIN, ISRG_ROOT_X1_PIN, load_config
from tlspin.errors import ConfigError
from tlspin.models.config import StrategyName


def _write(tmp_path, text: str):
    p = tmp_path / "tlspin.toml"
    p.write_text(text)
    return p


def test_defaults_without_file(monkeypatch):
    monkeypatch.delenv("TLSPIN_TIMEOUT", raising=False)
    cfg = load_config()

    assert cfg.timeout == 10.0
    assert cfg.ca_bundle == ""
    strategies = {r.name: r.strategy for r in cfg.requests}
    assert strategies["HTTPS"] is StrategyName.NONE
    assert strategies["Registry pinning"] is StrategyName.REGISTRY
    wrong = next(r for r in cfg.requests if r.name == "Wrong key pinning")
    assert wrong.pins == [FABRICATED_PIN]
    assert cfg.pinned_domains[0].public_key_hashes == [ISRG_ROOT_X1_PIN, FABRICATED_PIN]


def test_file_values(tmp_path):
    path = _write(tmp_path, f"""
[client]
timeout = 3.5
ca_bundle = "~/ca.pem"

[[requests]]
name = "pinned"
url = "https://example.test"
pins = ["{FABRICATED_PIN}"]

[[requests]]
name = "global"
url = "https://api.example.test"
strategy = "registry"

[pinned_domains."example.test"]
public_key_hashes = ["{FABRICATED_PIN}", "{ISRG_ROOT_X1_PIN}"]
include_subdomains = true
enforce = false
""")
    cfg = load_config(path)

    assert cfg.timeout == 3.5
    assert cfg.ca_bundle.endswith("ca.pem") and "~" not in cfg.ca_bundle
    assert [r.strategy for r in cfg.requests] == [StrategyName.HASH, StrategyName.REGISTRY]
    domain = cfg.pinned_domains[0]
    assert domain.hostname == "example.test"
    assert domain.include_subdomains and not domain.enforce


def test_env_overrides_file(tmp_path, monkeypatch):
    path = _write(tmp_path, "[client]\ntimeout = 3\n")
    monkeypatch.setenv("TLSPIN_TIMEOUT", "7")
    monkeypatch.setenv("TLSPIN_LOG_LEVEL", "debug")

    cfg = load_config(path)

    assert cfg.timeout == 7.0
    assert cfg.log_level == "debug"


@pytest.mark.parametrize("body, message", [
    ('[[requests]]\nurl = "https://x.test"\n', "missing 'name'"),
    ('[[requests]]\nname = "a"\nurl = "https://x.test"\nstrategy = "magic"\n', "not a valid"),
    ('[[requests]]\nname = "a"\nurl = "https://x.test"\nstrategy = "hash"\n', "at least one pin"),
    ("[client]\ntimeout = -1\n", "positive"),
    ("[client\n", "tlspin.toml"),
])
def test_invalid_config(tmp_path, body, message):
    with pytest.raises(ConfigError, match=message):
        load_config(_write(tmp_path, body))


def test_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.toml")

"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from tlspin.errors import ConfigError
from tlspin.models.config import AppConfig, PinnedDomainSpec, RequestSpec, StrategyName

ISRG_ROOT_X1_PIN = "C5+lpZ7tcVwmwQIMcRtPbsQtWLABXhQzejna0wHFr8M="
# Well-formed but matches no real key
FABRICATED_PIN = "ABCABCABCABCABCABCABCABCABCABCABCABCABCABCA="

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_requests() -> list[RequestSpec]:
    """Built-in demo catalog used when no [[requests]] are configured."""
    return [
        RequestSpec("Plain HTTP", "http://amiusing.httptoolkit.tech"),
        RequestSpec("HTTPS", "https://amiusing.httptoolkit.tech"),
        RequestSpec(
            "Root key pinning", "https://ecc384.badssl.com",
            strategy=StrategyName.HASH, pins=[ISRG_ROOT_X1_PIN],
        ),
        RequestSpec(
            "Wrong key pinning", "https://ecc384.badssl.com",
            strategy=StrategyName.HASH, pins=[FABRICATED_PIN],
        ),
        RequestSpec(
            "Registry pinning", "https://ecc256.badssl.com",
            strategy=StrategyName.REGISTRY,
        ),
    ]


def default_pinned_domains() -> list[PinnedDomainSpec]:
    return [
        PinnedDomainSpec(
            hostname="ecc256.badssl.com",
            # The backup pin is required, so add a dud
            public_key_hashes=[ISRG_ROOT_X1_PIN, FABRICATED_PIN],
        ),
    ]


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "TLSPIN_",
) -> AppConfig:
    """Load configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (TLSPIN_TIMEOUT, etc.)
        2. TOML config file
        3. Defaults from AppConfig and the built-in demo catalog
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if not p.exists():
            raise ConfigError(f"config file not found: {p}")
        try:
            with open(p, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"{p}: {exc}") from exc

    cfg = AppConfig()

    # ── Client section ─────────────────────────────────────
    client = raw.get("client", {})
    if v := client.get("timeout"):
        cfg.timeout = _positive_float(v, "client.timeout")
    if v := client.get("ca_bundle"):
        cfg.ca_bundle = str(v)
    if v := client.get("log_level"):
        cfg.log_level = str(v)

    # ── Requests ───────────────────────────────────────────
    if "requests" in raw:
        cfg.requests = [_request_spec(i, r) for i, r in enumerate(raw["requests"])]
    else:
        cfg.requests = default_requests()

    # ── Pinned domains (registry) ──────────────────────────
    if "pinned_domains" in raw:
        cfg.pinned_domains = [
            PinnedDomainSpec(
                hostname=host,
                public_key_hashes=list(entry.get("public_key_hashes", [])),
                include_subdomains=bool(entry.get("include_subdomains", False)),
                enforce=bool(entry.get("enforce", True)),
            )
            for host, entry in raw["pinned_domains"].items()
        ]
    else:
        cfg.pinned_domains = default_pinned_domains()

    # ── Environment variable overrides (highest priority) ──
    if timeout := os.environ.get(f"{env_prefix}TIMEOUT"):
        cfg.timeout = _positive_float(timeout, f"{env_prefix}TIMEOUT")
    if bundle := os.environ.get(f"{env_prefix}CA_BUNDLE"):
        cfg.ca_bundle = bundle
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level

    if cfg.log_level.upper() not in LOG_LEVELS:
        raise ConfigError(f"unknown log level {cfg.log_level!r}")
    if cfg.ca_bundle:
        cfg.ca_bundle = str(Path(cfg.ca_bundle).expanduser())

    return cfg


def _positive_float(value, name: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if result <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return result


def _request_spec(index: int, entry: dict) -> RequestSpec:
    try:
        name = str(entry["name"])
        url = str(entry["url"])
    except KeyError as exc:
        raise ConfigError(f"requests[{index}] is missing {exc.args[0]!r}") from exc

    pins = [str(p) for p in entry.get("pins", [])]
    default = StrategyName.HASH if pins else StrategyName.NONE
    try:
        strategy = StrategyName(entry.get("strategy", default.value))
    except ValueError as exc:
        raise ConfigError(f"requests[{index}]: {exc}") from exc
    if strategy is StrategyName.HASH and not pins:
        raise ConfigError(f"requests[{index}]: strategy 'hash' needs at least one pin")
    return RequestSpec(name=name, url=url, strategy=strategy, pins=pins)

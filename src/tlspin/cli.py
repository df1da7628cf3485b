"""CLI entry point for tlspin."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
import httpx

from tlspin.catalog import CatalogEntry, build_catalog, select
from tlspin.client.executor import PinnedRequestExecutor, parse_url
from tlspin.client.transport import PinningTransport, create_ssl_context
from tlspin.config import load_config
from tlspin.errors import MalformedURLError, TlsPinError, TrustRejectedError
from tlspin.interfaces.executor import RequestExecutor
from tlspin.models.config import AppConfig, StrategyName
from tlspin.models.pins import CertificateChain
from tlspin.models.state import RequestPhase, StateSnapshot
from tlspin.pinning.registry import initialize_registry, reset_registry
from tlspin.pinning.validator import Decision, spki_pin

_PHASE_MARKS = {
    RequestPhase.IDLE: " ",
    RequestPhase.LOADING: "…",
    RequestPhase.SUCCEEDED: "✓",
    RequestPhase.FAILED: "✗",
}


def _load(ctx: click.Context) -> AppConfig:
    try:
        cfg = load_config(ctx.obj["config_path"])
    except TlsPinError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if not ctx.obj["verbose"]:
        logging.getLogger("tlspin").setLevel(cfg.log_level.upper())
    return cfg


def _catalog(cfg: AppConfig) -> list[CatalogEntry]:
    """Initialize the pin registry (if any entry uses it) and build the catalog."""
    try:
        if any(r.strategy is StrategyName.REGISTRY for r in cfg.requests):
            initialize_registry(cfg.pinned_domains)
        return build_catalog(cfg)
    except (TlsPinError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """tlspin - run HTTP requests under TLS public-key pinning."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show effective configuration."""
    cfg = _load(ctx)
    click.echo(f"Timeout:    {cfg.timeout:g}s")
    click.echo(f"CA bundle:  {cfg.ca_bundle or '(certifi)'}")
    click.echo(f"Log level:  {cfg.log_level}")
    click.echo(f"Requests:   {len(cfg.requests)}")
    click.echo(f"Registry:   {', '.join(d.hostname for d in cfg.pinned_domains) or '(empty)'}")


@cli.command("list")
@click.pass_context
def list_requests(ctx: click.Context) -> None:
    """List the request catalog."""
    cfg = _load(ctx)
    entries = _catalog(cfg)
    try:
        width = max((len(e.name) for e in entries), default=0)
        for entry in entries:
            click.echo(f"{entry.name:<{width}}  {entry.definition.url}  [{entry.strategy.label}]")
    finally:
        reset_registry()


# ── Requests ───────────────────────────────────────────


@cli.command()
@click.argument("names", nargs=-1)
@click.pass_context
def run(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Execute catalog requests concurrently (all of them if NAMES is empty)."""
    cfg = _load(ctx)
    entries = _catalog(cfg)
    try:
        selected = select(entries, names)
    except TlsPinError as exc:
        reset_registry()
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if ctx.obj["verbose"]:
        for entry in selected:
            entry.state.subscribe(_phase_printer(entry.name))

    executor: RequestExecutor = PinnedRequestExecutor(timeout=cfg.timeout, ca_bundle=cfg.ca_bundle)
    try:
        results = asyncio.run(executor.execute_all(
            (e.definition, e.state, e.strategy) for e in selected
        ))
    finally:
        reset_registry()

    width = max((len(e.name) for e in selected), default=0)
    for entry, result in zip(selected, results):
        mark = _PHASE_MARKS[entry.state.phase]
        if result.ok:
            detail = f"HTTP {result.status_code} ({result.duration_ms}ms)"
        else:
            detail = f"{result.error.kind.value}: {result.error.message}"
        click.echo(f"{mark} {entry.name:<{width}}  {detail}")

    if not all(r.ok for r in results):
        sys.exit(1)


def _phase_printer(name: str):
    def observer(snap: StateSnapshot) -> None:
        click.echo(f"  {name}: {snap.phase.value}", err=True)
    return observer


@cli.command()
@click.argument("url")
@click.pass_context
def pins(ctx: click.Context, url: str) -> None:
    """Print the SPKI pin of every certificate URL's server presents."""
    cfg = _load(ctx)
    try:
        parsed = parse_url(url)
    except MalformedURLError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    if parsed.scheme != "https":
        click.echo("Error: pins can only be read from an https URL", err=True)
        sys.exit(1)

    seen: list[CertificateChain] = []

    def record(hostname: str, chain: CertificateChain) -> Decision:
        seen.append(chain)
        return Decision.ACCEPT

    async def _fetch() -> None:
        transport = PinningTransport(record, create_ssl_context(cfg.ca_bundle))
        async with httpx.AsyncClient(transport=transport, timeout=cfg.timeout) as client:
            await client.head(parsed)

    try:
        asyncio.run(_fetch())
    except (httpx.HTTPError, TrustRejectedError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not seen:
        click.echo("Error: no TLS handshake took place", err=True)
        sys.exit(1)
    for depth, cert_der in enumerate(seen[0]):
        try:
            click.echo(f"{depth}  {spki_pin(cert_der)}")
        except ValueError as exc:
            click.echo(f"{depth}  (unreadable: {exc})")

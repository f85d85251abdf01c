"""Typer-based command line interface for the key-provider."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer

from .backends import create_backend
from .backends.base import KMSBackend
from .config import AppConfig, dump_default_config, load_config
from .errors import ConfigurationError, KeyProviderError
from .logging import configure_logging
from .models import OverridePolicy
from .operations import KeyProvider
from .paths import default_config_path
from .resolver import ParameterResolver

EXIT_FAILURE = 1
EXIT_CONFIG = 2

app = typer.Typer(help="OCI image key-provider backed by a KMS")
logger = structlog.get_logger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", metavar="PATH", help="Configuration file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging verbosity"),
    backend: Optional[str] = typer.Option(None, "--backend", help="KMS backend: gcpkms|local"),
    adc: Optional[Path] = typer.Option(
        None, "--adc", envvar="KMS_KEYPROVIDER_ADC", help="Path to ADC credentials file"
    ),
    kms_uri: Optional[str] = typer.Option(
        None, "--kms-uri", envvar="KMS_KEYPROVIDER_KEY_URI", help="Pin the KMS key URI for every request"
    ),
    override_policy: Optional[OverridePolicy] = typer.Option(
        None, "--override-policy", help="Whether --kms-uri replaces or backs up request parameters"
    ),
    provider_name: Optional[str] = typer.Option(
        None, "--provider-name", help="Provider name used as the parameters key"
    ),
) -> None:
    try:
        app_config = load_config(config)
        app_config = app_config.with_overrides(
            "kms",
            backend=backend,
            credentials_file=adc,
            key_uri=kms_uri,
            override_policy=override_policy,
            provider_name=provider_name,
        )
        app_config = app_config.with_overrides("logging", level=log_level)
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_CONFIG)
    configure_logging(app_config.logging.normalized_level())
    ctx.obj = app_config


def _build_backend(config: AppConfig) -> KMSBackend:
    try:
        return create_backend(config.kms)
    except ConfigurationError as exc:
        logger.error("cli.backend_error", error=str(exc))
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_CONFIG)


def build_resolver(config: AppConfig) -> ParameterResolver:
    return ParameterResolver(
        config.kms.provider_name,
        override=config.kms.key_uri,
        policy=config.kms.override_policy,
    )


@app.command()
def plugin(ctx: typer.Context) -> None:
    """Handle one protocol request from stdin and write the response to stdout."""

    config: AppConfig = ctx.obj
    payload = sys.stdin.buffer.read()
    with _build_backend(config) as backend:
        provider = KeyProvider(backend, build_resolver(config))
        try:
            response = provider.process(payload)
        except KeyProviderError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=EXIT_FAILURE)
    sys.stdout.buffer.write(response)
    sys.stdout.buffer.flush()


@app.command()
def serve(
    ctx: typer.Context,
    listen: Optional[str] = typer.Option(None, "--listen", help="gRPC listen address, e.g. :50051"),
) -> None:
    """Run the gRPC key-provider service."""

    from .rpc.server import KeyProviderServer

    config: AppConfig = ctx.obj
    try:
        config = config.with_overrides("server", listen=listen)
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_CONFIG)
    if config.kms.key_uri is None:
        logger.warning("cli.serve.no_pinned_key", hint="requests must carry the key URI")
    with _build_backend(config) as backend:
        server = KeyProviderServer(
            KeyProvider(backend, build_resolver(config)),
            listen=config.server.listen,
            max_concurrent_streams=config.server.max_concurrent_streams,
            grace_period=config.server.grace_period,
        )
        try:
            asyncio.run(server.serve_forever())
        except ConfigurationError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=EXIT_CONFIG)
        except KeyboardInterrupt:
            pass


@app.command("init-config")
def init_config(
    destination: Path = typer.Option(default_config_path(), "--destination", help="Where to write the file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write the default configuration as YAML."""

    if destination.exists() and not force:
        typer.echo(f"{destination} already exists; use --force to overwrite", err=True)
        raise typer.Exit(code=EXIT_FAILURE)
    dump_default_config(destination)
    typer.echo(f"Configuration written to {destination}")


@app.command()
def version() -> None:
    from .version import __version__

    typer.echo(__version__)


if __name__ == "__main__":  # pragma: no cover
    app()

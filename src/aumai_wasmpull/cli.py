"""CLI entry point for aumai-wasmpull."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import click

from .core import RegistryPuller, fetch_catalog
from .errors import ConfigError, WasmPullError
from .models import ENV_VARS, PullConfig

logger = logging.getLogger("aumai_wasmpull")

_EXIT_FAILURE = 1
_EXIT_CONFIG = 2


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s: %(message)s",
    )


@click.group()
@click.version_option(package_name="aumai-wasmpull")
def main() -> None:
    """AumAI WasmPull: download WebAssembly artifacts from an OCI registry."""


@main.command("pull")
@click.option("--registry", default=None, help="Registry host:port [env: REGISTRY].")
@click.option(
    "--namespace", default=None, help="Package namespace [env: PKG_NAMESPACE]."
)
@click.option("--name", default=None, help="Package name [env: PKG_NAME].")
@click.option(
    "--version", "pkg_version", default=None, help="Package version [env: PKG_VERSION]."
)
@click.option(
    "--output-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory in which <name>-<version>/ is created.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug details.")
def pull_command(
    registry: str | None,
    namespace: str | None,
    name: str | None,
    pkg_version: str | None,
    output_root: Path,
    verbose: bool,
) -> None:
    """Fetch a manifest and download every blob it references."""
    _configure_logging(verbose)
    try:
        config = PullConfig.from_env(
            os.environ,
            output_root=output_root,
            registry=registry,
            namespace=namespace,
            name=name,
            version=pkg_version,
        )
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(_EXIT_CONFIG)

    puller = RegistryPuller(config)
    try:
        result = asyncio.run(puller.pull())
    except WasmPullError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(_EXIT_FAILURE)

    logger.debug(
        "Pulled %s:%s (%d blob(s))", config.repository, config.version, len(result.blobs)
    )


@main.command("catalog")
@click.option("--registry", default=None, help="Registry host:port [env: REGISTRY].")
@click.option("--verbose", "-v", is_flag=True, help="Log debug details.")
def catalog_command(registry: str | None, verbose: bool) -> None:
    """List the repositories a registry serves."""
    _configure_logging(verbose)
    if registry is None:
        registry = os.environ.get(ENV_VARS["registry"])
    if registry is None:
        click.echo(f"Error: {ConfigError(ENV_VARS['registry'])}", err=True)
        sys.exit(_EXIT_CONFIG)

    try:
        catalog = asyncio.run(fetch_catalog(registry))
    except WasmPullError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(_EXIT_FAILURE)

    click.echo(json.dumps(catalog, indent=2))


if __name__ == "__main__":
    main()

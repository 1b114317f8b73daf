"""Core logic for aumai-wasmpull."""

from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath
from typing import Any

import click
import httpx

from .errors import (
    BlobDownloadError,
    ManifestParseError,
    OutputError,
    RegistryConnectionError,
    RegistryHTTPError,
    WasmPullError,
)
from .models import (
    BlobTarget,
    Descriptor,
    DownloadedBlob,
    OCIManifest,
    PullConfig,
    PullResult,
)

__all__ = [
    "MANIFEST_ACCEPT",
    "RegistryPuller",
    "fetch_catalog",
    "list_catalog",
    "pretty_filename",
    "resolve_blobs",
    "write_pretty_copy",
]

logger = logging.getLogger(__name__)

MANIFEST_MEDIA_TYPES = (
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.wasm.config.v0+json",
)
MANIFEST_ACCEPT = ", ".join(MANIFEST_MEDIA_TYPES)

WASM_MEDIA_TYPE = "application/wasm"
TITLE_ANNOTATION = "org.opencontainers.image.title"

_MANIFEST_FILENAME = "manifest.json"
_CONFIG_FILENAME = "config.json"
_JSON_SUFFIX = ".json"
_PRETTY_SUFFIX = "_pretty.json"


# ------------------------------------------------------------------
# Manifest interpretation
# ------------------------------------------------------------------


def _title_filename(descriptor: Descriptor) -> str | None:
    """Final path segment of the title annotation, if it names a file."""
    title = descriptor.annotations.get(TITLE_ANNOTATION)
    if not isinstance(title, str):
        return None
    name = PurePosixPath(title).name
    if name in ("", ".", ".."):
        return None
    return name


def resolve_blobs(manifest: OCIManifest) -> list[BlobTarget]:
    """
    Select the blobs to download from *manifest*, in manifest order.

    A ``layers`` array wins; entries without a digest are skipped. Only a
    manifest with no ``layers`` array at all falls back to its config blob,
    saved as ``config.json``.
    """
    if manifest.layers is not None:
        targets: list[BlobTarget] = []
        for index, layer in enumerate(manifest.layers):
            if layer.digest is None:
                logger.debug("Skipping layer %d: no digest", index)
                continue
            is_wasm = layer.media_type == WASM_MEDIA_TYPE
            filename = _title_filename(layer)
            if filename is None:
                filename = f"module_{index}.wasm" if is_wasm else f"blob_{index}"
            targets.append(
                BlobTarget(
                    index=index,
                    digest=layer.digest,
                    filename=filename,
                    media_type=layer.media_type,
                    is_wasm=is_wasm,
                )
            )
        return targets

    config = manifest.config
    if config is not None and config.digest is not None:
        return [
            BlobTarget(
                index=0,
                digest=config.digest,
                filename=_CONFIG_FILENAME,
                media_type=config.media_type,
                kind="config",
            )
        ]
    return []


# ------------------------------------------------------------------
# Pretty-printed JSON siblings
# ------------------------------------------------------------------


def pretty_filename(filename: str) -> str:
    """Name of the pretty copy: ``config.json`` -> ``config_pretty.json``."""
    stem = filename
    while stem.endswith(_JSON_SUFFIX):
        stem = stem[: -len(_JSON_SUFFIX)]
    return f"{stem}{_PRETTY_SUFFIX}"


def _dump_json(document: Any) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def _write_output(path: Path, data: bytes) -> None:
    try:
        path.write_bytes(data)
    except (OSError, ValueError) as exc:
        raise OutputError(f"Failed to write {path}: {exc}") from exc


def write_pretty_copy(data: bytes, filename: str, output_dir: Path) -> Path | None:
    """
    Write an indented copy of *data* next to the blob when it looks like JSON.

    A blob looks like JSON when *filename* ends in ``.json`` or its first byte
    is ``{``. Blobs that turn out not to be UTF-8 JSON are left alone with a
    warning.
    """
    if not (filename.endswith(_JSON_SUFFIX) or data[:1] == b"{"):
        return None
    try:
        text = _dump_json(json.loads(data.decode("utf-8")))
    except (ValueError, RecursionError) as exc:
        logger.warning("Not writing pretty JSON for %s: %s", filename, exc)
        return None

    pretty_path = output_dir / pretty_filename(filename)
    _write_output(pretty_path, text.encode("utf-8"))
    return pretty_path


# ------------------------------------------------------------------
# HTTP
# ------------------------------------------------------------------


def _catalog_url(registry: str) -> str:
    return f"http://{registry}/v2/_catalog"


async def _get(
    client: httpx.AsyncClient,
    url: str,
    failure: str,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    try:
        return await client.get(url, headers=headers)
    except (httpx.RequestError, httpx.InvalidURL) as exc:
        raise RegistryConnectionError(f"{failure}: {exc}") from exc


async def list_catalog(client: httpx.AsyncClient, registry: str) -> Any:
    """Return the parsed ``/v2/_catalog`` listing of *registry*."""
    url = _catalog_url(registry)
    response = await _get(client, url, "Failed to list repositories")
    if not response.is_success:
        raise RegistryHTTPError(response.status_code, response.text)
    try:
        return response.json()
    except ValueError as exc:
        raise WasmPullError(f"Catalog response is not valid JSON: {exc}") from exc


async def fetch_catalog(
    registry: str, transport: httpx.AsyncBaseTransport | None = None
) -> Any:
    """Open a client and list the repositories of *registry*."""
    async with httpx.AsyncClient(transport=transport) as client:
        return await list_catalog(client, registry)


class RegistryPuller:
    """
    Downloads an OCI artifact's manifest and blobs into ``<name>-<version>``.

    Requests are issued one at a time; the first failure aborts the pull and
    leaves whatever was already written on disk.
    """

    def __init__(
        self,
        config: PullConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    @property
    def manifest_url(self) -> str:
        cfg = self.config
        return f"{cfg.base_url}/{cfg.repository}/manifests/{cfg.version}"

    def blob_url(self, digest: str) -> str:
        cfg = self.config
        return f"{cfg.base_url}/{cfg.repository}/blobs/{digest}"

    async def pull(self) -> PullResult:
        """Fetch the manifest, save it, then download every resolved blob."""
        output_dir = self.config.output_dir
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as exc:
            raise OutputError(
                f"Failed to create output directory {output_dir}: {exc}"
            ) from exc

        async with httpx.AsyncClient(transport=self._transport) as client:
            document = await self.fetch_manifest(client)
            try:
                text = _dump_json(document)
            except RecursionError as exc:
                raise ManifestParseError(
                    f"Manifest is nested too deeply to save: {exc}"
                ) from exc
            manifest_path = output_dir / _MANIFEST_FILENAME
            _write_output(manifest_path, text.encode("utf-8"))
            click.echo(f"Saved manifest to {manifest_path}")

            manifest = OCIManifest.from_json(document)
            if manifest.layers is not None:
                click.echo(f"\nFound {len(manifest.layers)} layer(s) in the manifest")
            else:
                click.echo(
                    "No layers found in the manifest. "
                    "Checking for other content references..."
                )

            result = PullResult(output_dir=output_dir, manifest_path=manifest_path)
            for target in resolve_blobs(manifest):
                if target.kind == "config":
                    click.echo(
                        f"Downloading config blob ({target.media_type or 'unknown'}): "
                        f"{target.digest}"
                    )
                else:
                    kind = "WASM module" if target.is_wasm else "other content"
                    click.echo(
                        f"Downloading layer {target.index}: {target.filename} ({kind})"
                    )
                blob = await self.download_blob(
                    client, target.digest, target.filename, output_dir
                )
                result.blobs.append(blob)

        click.echo(f"\nContent downloaded successfully to {output_dir}")
        return result

    async def fetch_manifest(self, client: httpx.AsyncClient) -> Any:
        """
        GET the manifest and return the parsed JSON document.

        On a non-success status the registry catalog is listed for diagnostics
        before ``RegistryHTTPError`` is raised.
        """
        url = self.manifest_url
        click.echo(f"Fetching manifest from: {url}")

        response = await _get(
            client, url, "Failed to send request", headers={"Accept": MANIFEST_ACCEPT}
        )
        click.echo(f"Response status: {response.status_code} {response.reason_phrase}")
        logger.debug("Response headers: %s", dict(response.headers))

        if not response.is_success:
            body = response.text
            await self._report_catalog(client)
            raise RegistryHTTPError(response.status_code, body)

        try:
            return response.json()
        except (ValueError, RecursionError) as exc:
            raise ManifestParseError(f"Failed to parse manifest JSON: {exc}") from exc

    async def _report_catalog(self, client: httpx.AsyncClient) -> None:
        cfg = self.config
        click.echo("\nDEBUG INFO:")
        click.echo(
            "1. If you got a 404, check if the registry implements "
            "the OCI Distribution Spec"
        )
        click.echo("2. Try listing repositories with: GET /v2/_catalog")
        click.echo(f"3. Try listing tags with: GET /v2/{cfg.repository}/tags/list")

        click.echo("\nAttempting to list available repositories...")
        try:
            catalog = await list_catalog(client, cfg.registry)
        except RegistryHTTPError as exc:
            click.echo(f"Failed to list repositories: {exc.status_code}")
        except RegistryConnectionError as exc:
            click.echo(f"Error listing repositories: {exc}")
        except WasmPullError as exc:
            logger.warning("%s", exc)
        else:
            click.echo(f"Available repositories: {_dump_json(catalog)}")

    async def download_blob(
        self,
        client: httpx.AsyncClient,
        digest: str,
        filename: str,
        output_dir: Path,
    ) -> DownloadedBlob:
        """Save the blob *digest* as ``output_dir / filename``."""
        url = self.blob_url(digest)
        click.echo(f"  Fetching from: {url}")

        response = await _get(client, url, f"Failed to download blob: {digest}")
        if not response.is_success:
            raise BlobDownloadError(digest, response.status_code, response.text)

        data = response.content
        path = output_dir / filename
        _write_output(path, data)
        click.echo(f"  Saved to {path} ({len(data)} bytes)")

        pretty_path = write_pretty_copy(data, filename, output_dir)
        if pretty_path is not None:
            click.echo(f"  Also saved pretty JSON to {pretty_path}")

        return DownloadedBlob(
            digest=digest, path=path, size=len(data), pretty_path=pretty_path
        )

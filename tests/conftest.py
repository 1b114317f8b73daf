"""Shared test fixtures for aumai-wasmpull."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from urllib.parse import unquote

import httpx
import pytest

from aumai_wasmpull.core import RegistryPuller
from aumai_wasmpull.models import PullConfig

REGISTRY = "registry.test:5000"
NAMESPACE = "acme"
NAME = "hello"
VERSION = "1.0.0"

WASM_DIGEST = "sha256:" + "a" * 64
JSON_DIGEST = "sha256:" + "b" * 64
TEXT_DIGEST = "sha256:" + "c" * 64
CONFIG_DIGEST = "sha256:" + "d" * 64

WASM_BYTES = b"\x00asm\x01\x00\x00\x00"


def manifest_path(version: str = VERSION) -> str:
    return f"/v2/{NAMESPACE}/{NAME}/manifests/{version}"


def blob_path(digest: str) -> str:
    return f"/v2/{NAMESPACE}/{NAME}/blobs/{digest}"


# ---------------------------------------------------------------------------
# Fake registry
# ---------------------------------------------------------------------------


class FakeRegistry:
    """Answers registry paths from a table and records every request."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, response: httpx.Response | Callable[..., Any]) -> None:
        if isinstance(response, httpx.Response):
            self.routes[path] = lambda request, r=response: r
        else:
            self.routes[path] = response

    def add_json(self, path: str, document: Any, status_code: int = 200) -> None:
        self.add(path, httpx.Response(status_code, json=document))

    def add_bytes(self, path: str, data: bytes, status_code: int = 200) -> None:
        self.add(path, httpx.Response(status_code, content=data))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(unquote(request.url.path))
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)

    @property
    def paths(self) -> list[str]:
        return [unquote(r.url.path) for r in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture()
def registry() -> FakeRegistry:
    return FakeRegistry()


# ---------------------------------------------------------------------------
# Manifests
# ---------------------------------------------------------------------------


@pytest.fixture()
def wasm_manifest() -> dict[str, Any]:
    """A wasm artifact with one titled module, one JSON blob and one text blob."""
    return {
        "schemaVersion": 2,
        "mediaType": "application/vnd.oci.image.manifest.v1+json",
        "config": {
            "mediaType": "application/vnd.wasm.config.v0+json",
            "digest": CONFIG_DIGEST,
            "size": 2,
        },
        "layers": [
            {
                "mediaType": "application/wasm",
                "digest": WASM_DIGEST,
                "size": len(WASM_BYTES),
                "annotations": {"org.opencontainers.image.title": "dist/hello.wasm"},
            },
            {
                "mediaType": "application/vnd.acme.metadata+json",
                "digest": JSON_DIGEST,
                "size": 16,
            },
            {
                "mediaType": "text/plain",
                "digest": TEXT_DIGEST,
                "size": 5,
            },
        ],
    }


@pytest.fixture()
def served_registry(
    registry: FakeRegistry, wasm_manifest: dict[str, Any]
) -> FakeRegistry:
    """The fake registry serving ``wasm_manifest`` and all of its blobs."""
    registry.add_json(manifest_path(), wasm_manifest)
    registry.add_bytes(blob_path(WASM_DIGEST), WASM_BYTES)
    registry.add_bytes(
        blob_path(JSON_DIGEST), json.dumps({"name": "hello", "exports": ["run"]}).encode()
    )
    registry.add_bytes(blob_path(TEXT_DIGEST), b"hello")
    return registry


# ---------------------------------------------------------------------------
# Config and puller
# ---------------------------------------------------------------------------


@pytest.fixture()
def env() -> dict[str, str]:
    return {
        "REGISTRY": REGISTRY,
        "PKG_NAMESPACE": NAMESPACE,
        "PKG_NAME": NAME,
        "PKG_VERSION": VERSION,
    }


@pytest.fixture()
def pull_config(tmp_path: Path) -> PullConfig:
    return PullConfig(
        registry=REGISTRY,
        namespace=NAMESPACE,
        name=NAME,
        version=VERSION,
        output_root=tmp_path,
    )


@pytest.fixture()
def output_dir(pull_config: PullConfig) -> Path:
    return pull_config.output_dir


@pytest.fixture()
def make_puller(
    pull_config: PullConfig, registry: FakeRegistry
) -> Callable[[], RegistryPuller]:
    def _make() -> RegistryPuller:
        return RegistryPuller(pull_config, transport=registry.transport)

    return _make

"""
aumai-wasmpull quickstart: resolve a manifest, then pull from an in-process registry.

Run directly:

    python examples/quickstart.py

No network access is needed: the registry is an ``httpx.MockTransport``.
All demos use a temporary directory and clean up after themselves.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import pathlib
import tempfile

import httpx

WASM_MODULE = b"\x00asm\x01\x00\x00\x00"
WASM_CONFIG = json.dumps({"runtime": "wasi", "exports": ["_start"]}).encode("utf-8")


def _digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def build_manifest() -> dict:
    return {
        "schemaVersion": 2,
        "mediaType": "application/vnd.oci.image.manifest.v1+json",
        "config": {
            "mediaType": "application/vnd.wasm.config.v0+json",
            "digest": _digest(WASM_CONFIG),
            "size": len(WASM_CONFIG),
        },
        "layers": [
            {
                "mediaType": "application/wasm",
                "digest": _digest(WASM_MODULE),
                "size": len(WASM_MODULE),
                "annotations": {"org.opencontainers.image.title": "target/hello.wasm"},
            },
            {
                "mediaType": "application/vnd.wasm.config.v0+json",
                "digest": _digest(WASM_CONFIG),
                "size": len(WASM_CONFIG),
            },
        ],
    }


# ---------------------------------------------------------------------------
# Demo 1: Resolve which blobs a manifest references
# ---------------------------------------------------------------------------

def demo_resolve() -> None:
    """Show the file each manifest entry would be saved as."""
    print("\n=== Demo 1: Resolve blobs ===")

    from aumai_wasmpull import OCIManifest, resolve_blobs

    for target in resolve_blobs(OCIManifest.from_json(build_manifest())):
        kind = "WASM module" if target.is_wasm else "other content"
        print(f"  [{target.index}] {target.filename:<20} {kind:<14} {target.digest[:23]}...")

    config_only = {"config": {"digest": _digest(WASM_CONFIG)}}
    targets = resolve_blobs(OCIManifest.from_json(config_only))
    print(f"\n  Without layers, falls back to: {[t.filename for t in targets]}")


# ---------------------------------------------------------------------------
# Demo 2: Pull from a fake registry
# ---------------------------------------------------------------------------

def demo_pull() -> None:
    """Serve the manifest and blobs in-process and pull them to disk."""
    print("\n=== Demo 2: Pull an artifact ===")

    from aumai_wasmpull import PullConfig, RegistryPuller

    manifest = build_manifest()
    blobs = {_digest(WASM_MODULE): WASM_MODULE, _digest(WASM_CONFIG): WASM_CONFIG}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/manifests/1.0.0"):
            return httpx.Response(200, json=manifest)
        digest = path.rsplit("/", 1)[-1]
        if digest in blobs:
            return httpx.Response(200, content=blobs[digest])
        return httpx.Response(404, text="blob unknown")

    with tempfile.TemporaryDirectory() as tmp:
        config = PullConfig(
            registry="localhost:5000",
            namespace="examples",
            name="hello",
            version="1.0.0",
            output_root=pathlib.Path(tmp),
        )
        puller = RegistryPuller(config, transport=httpx.MockTransport(handler))
        result = asyncio.run(puller.pull())

        print(f"\n  Output directory : {result.output_dir.name}")
        for path in sorted(result.output_dir.iterdir()):
            print(f"    {path.name:<24} {path.stat().st_size:>6} bytes")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    print("aumai-wasmpull quickstart demo")
    print("=" * 40)

    demo_resolve()
    demo_pull()

    print("\n" + "=" * 40)
    print("All demos completed successfully.")


if __name__ == "__main__":
    main()

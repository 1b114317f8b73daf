"""AumAI WasmPull: fetch WebAssembly artifacts from OCI registries."""

from __future__ import annotations

from .core import RegistryPuller, resolve_blobs
from .models import BlobTarget, OCIManifest, PullConfig, PullResult

__version__ = "0.1.0"

__all__ = [
    "BlobTarget",
    "OCIManifest",
    "PullConfig",
    "PullResult",
    "RegistryPuller",
    "resolve_blobs",
]

"""Pydantic models for aumai-wasmpull."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigError

__all__ = [
    "BlobTarget",
    "Descriptor",
    "DownloadedBlob",
    "OCIManifest",
    "PullConfig",
    "PullResult",
]

# Environment variable for each PullConfig field.
ENV_VARS: dict[str, str] = {
    "registry": "REGISTRY",
    "namespace": "PKG_NAMESPACE",
    "name": "PKG_NAME",
    "version": "PKG_VERSION",
}


class Descriptor(BaseModel):
    """
    An OCI content descriptor as found in a manifest's ``config`` or ``layers``.

    Every field is optional; registries in the wild omit or mistype them and
    resolution falls back to defaults instead of failing.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    media_type: str | None = Field(default=None, alias="mediaType")
    digest: str | None = None
    size: int | None = None
    annotations: dict[str, Any] = Field(default_factory=dict)

    @field_validator("media_type", "digest", mode="before")
    @classmethod
    def _strings_only(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None

    @field_validator("size", mode="before")
    @classmethod
    def _int_only(cls, v: Any) -> int | None:
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v

    @field_validator("annotations", mode="before")
    @classmethod
    def _mapping_only(cls, v: Any) -> dict[str, Any]:
        return dict(v) if isinstance(v, Mapping) else {}


class OCIManifest(BaseModel):
    """
    OCI Image Manifest as returned by ``/v2/<name>/manifests/<reference>``.

    ``layers`` stays ``None`` when the document has no ``layers`` array, which
    is different from an empty array: only the former falls back to the
    config blob.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schema_version: int | None = Field(default=None, alias="schemaVersion")
    media_type: str | None = Field(default=None, alias="mediaType")
    config: Descriptor | None = None
    layers: list[Descriptor] | None = None

    @field_validator("config", mode="before")
    @classmethod
    def _config_object(cls, v: Any) -> Any:
        return dict(v) if isinstance(v, Mapping) else None

    @field_validator("layers", mode="before")
    @classmethod
    def _layers_array(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return None
        # Non-object entries become descriptors without a digest.
        return [dict(item) if isinstance(item, Mapping) else {} for item in v]

    @field_validator("schema_version", mode="before")
    @classmethod
    def _int_only(cls, v: Any) -> int | None:
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v

    @field_validator("media_type", mode="before")
    @classmethod
    def _string_only(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None

    @classmethod
    def from_json(cls, document: Any) -> OCIManifest:
        """Build a manifest from any parsed JSON value; non-objects are empty."""
        if not isinstance(document, Mapping):
            return cls()
        return cls.model_validate(dict(document))


class BlobTarget(BaseModel):
    """A digest selected for download and the file it will be saved as."""

    index: int
    digest: str
    filename: str
    media_type: str | None = None
    is_wasm: bool = False
    kind: Literal["layer", "config"] = "layer"


class PullConfig(BaseModel):
    """Where to pull from and where to write to."""

    registry: str            # host[:port]
    namespace: str
    name: str
    version: str
    output_root: Path = Path(".")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str],
        output_root: Path | str | None = None,
        **overrides: str | None,
    ) -> PullConfig:
        """
        Resolve the configuration from *environ*.

        A non-``None`` value in *overrides* wins over the environment. Raises
        ``ConfigError`` naming the first variable that is not set.
        """
        values: dict[str, Any] = {}
        for field, variable in ENV_VARS.items():
            value = overrides.get(field)
            if value is None:
                value = environ.get(variable)
            if value is None:
                raise ConfigError(variable)
            values[field] = value
        if output_root is not None:
            values["output_root"] = Path(output_root)
        return cls(**values)

    @property
    def output_dir(self) -> Path:
        return self.output_root / f"{self.name}-{self.version}"

    @property
    def repository(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def base_url(self) -> str:
        return f"http://{self.registry}/v2"


class DownloadedBlob(BaseModel):
    """A blob that was written to disk."""

    digest: str
    path: Path
    size: int
    pretty_path: Path | None = None


class PullResult(BaseModel):
    """Everything a completed pull wrote."""

    output_dir: Path
    manifest_path: Path
    blobs: list[DownloadedBlob] = Field(default_factory=list)

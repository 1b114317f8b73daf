"""Exception types for aumai-wasmpull."""

from __future__ import annotations

__all__ = [
    "BlobDownloadError",
    "ConfigError",
    "ManifestParseError",
    "OutputError",
    "RegistryConnectionError",
    "RegistryHTTPError",
    "WasmPullError",
]


class WasmPullError(Exception):
    """Base exception for all aumai-wasmpull errors."""


class ConfigError(WasmPullError):
    """Raised when a required environment variable is not set."""

    def __init__(self, variable: str) -> None:
        self.variable = variable
        super().__init__(f"{variable} environment variable not set")


class RegistryConnectionError(WasmPullError):
    """Raised when a request to the registry could not be sent."""


class RegistryHTTPError(WasmPullError):
    """Raised when the registry answers with a non-success status."""

    def __init__(
        self, status_code: int, body: str = "", message: str | None = None
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"HTTP error {status_code}: {body}")


class BlobDownloadError(RegistryHTTPError):
    """Raised when a blob fetch answers with a non-success status."""

    def __init__(self, digest: str, status_code: int, body: str = "") -> None:
        self.digest = digest
        super().__init__(
            status_code, body, f"Failed to download blob {digest}: {status_code}"
        )


class ManifestParseError(WasmPullError):
    """Raised when the manifest body is not valid JSON."""


class OutputError(WasmPullError):
    """Raised when the output directory or a downloaded file cannot be written."""

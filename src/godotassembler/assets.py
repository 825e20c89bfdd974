"""Validation and storage of binary project assets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Iterator, Mapping

from .errors import FailureKind, OperationResult
from .folders import normalise_path

logger = logging.getLogger(__name__)

GLTF_MARKERS = ("glTF", '"asset"')

KNOWN_ASSET_TYPES = ("texture", "audio", "font", "model", "gltf", "other")

_EXTENSION_TYPES: Mapping[str, str] = {
    ".png": "texture",
    ".jpg": "texture",
    ".jpeg": "texture",
    ".webp": "texture",
    ".svg": "texture",
    ".bmp": "texture",
    ".tga": "texture",
    ".ogg": "audio",
    ".wav": "audio",
    ".mp3": "audio",
    ".ttf": "font",
    ".otf": "font",
    ".woff": "font",
    ".woff2": "font",
    ".gltf": "gltf",
    ".glb": "model",
    ".obj": "model",
    ".fbx": "model",
    ".blend": "model",
}


def infer_asset_type(path: str) -> str:
    """Guess the asset category from the file extension of ``path``."""

    return _EXTENSION_TYPES.get(PurePosixPath(path).suffix.lower(), "other")


@dataclass(frozen=True)
class Asset:
    """A validated binary asset; replacing one requires remove followed by add."""

    path: str
    type: str
    data: bytes
    original_name: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class AssetEvent:
    """Notification sent to registry observers."""

    kind: str
    path: str
    reason: str | None = None


AssetObserver = Callable[[AssetEvent], None]


class AssetRegistry:
    """Validates and stores assets keyed by their project path.

    Args:
        strict_mode: When ``True`` assets of unrecognised types are rejected
            instead of being accepted with a warning.
    """

    def __init__(self, *, strict_mode: bool = False) -> None:
        self.strict_mode = strict_mode
        self._assets: dict[str, Asset] = {}
        self._observers: list[AssetObserver] = []

    def subscribe(self, observer: AssetObserver) -> None:
        """Register ``observer`` for add/remove/invalid notifications."""

        self._observers.append(observer)

    def unsubscribe(self, observer: AssetObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def validate(self, asset_type: str, data: bytes) -> str | None:
        """Return a reason string when ``data`` is not acceptable for ``asset_type``."""

        if not data:
            return "asset payload is empty"

        if asset_type in ("texture", "audio", "font", "model", "other"):
            return None

        if asset_type == "gltf":
            try:
                text = bytes(data).decode("utf-8")
            except UnicodeDecodeError:
                return "glTF payload is not valid UTF-8 text"
            if not any(marker in text for marker in GLTF_MARKERS):
                return "glTF payload has no glTF marker or asset key"
            return None

        if self.strict_mode:
            return f"unknown asset type '{asset_type}'"
        logger.warning("Unknown asset type '%s'. Accepting by default.", asset_type)
        return None

    def add(self, path: str, asset_type: str, data: bytes) -> OperationResult:
        """Validate and store an asset at ``path``."""

        key = normalise_path(path)
        if not key:
            return OperationResult.fail(
                FailureKind.VALIDATION_FAILED, "Asset path must be a non-empty string"
            )
        if key in self._assets:
            logger.warning("Asset '%s' already exists.", key)
            return OperationResult.fail(
                FailureKind.ALREADY_EXISTS, f"Asset '{key}' already exists"
            )
        if not isinstance(data, (bytes, bytearray, memoryview)):
            return OperationResult.fail(
                FailureKind.VALIDATION_FAILED,
                f"Asset '{key}' payload must be bytes, got {type(data).__name__}",
            )

        payload = bytes(data)
        reason = self.validate(asset_type, payload)
        if reason is not None:
            logger.warning(
                "Asset '%s' failed validation for type '%s': %s", key, asset_type, reason
            )
            self._notify(AssetEvent("invalid", key, reason))
            return OperationResult.fail(
                FailureKind.VALIDATION_FAILED,
                f"Asset '{key}' failed validation: {reason}",
            )

        self._assets[key] = Asset(
            path=key,
            type=asset_type,
            data=payload,
            original_name=PurePosixPath(key).name,
        )
        self._notify(AssetEvent("added", key))
        return OperationResult.success(f"Asset '{key}' added")

    def remove(self, path: str) -> OperationResult:
        key = normalise_path(path)
        if key not in self._assets:
            return OperationResult.fail(
                FailureKind.NOT_FOUND, f"Asset '{key}' does not exist"
            )
        del self._assets[key]
        self._notify(AssetEvent("removed", key))
        return OperationResult.success(f"Asset '{key}' removed")

    def get(self, path: str) -> Asset | None:
        return self._assets.get(normalise_path(path))

    def paths(self) -> list[str]:
        return list(self._assets)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalise_path(path) in self._assets

    def __iter__(self) -> Iterator[Asset]:
        return iter(list(self._assets.values()))

    def __len__(self) -> int:
        return len(self._assets)

    def _notify(self, event: AssetEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:  # observers must not break registry bookkeeping
                logger.exception("Asset observer failed for %s event on %s", event.kind, event.path)


__all__ = [
    "Asset",
    "AssetEvent",
    "AssetObserver",
    "AssetRegistry",
    "GLTF_MARKERS",
    "KNOWN_ASSET_TYPES",
    "infer_asset_type",
]

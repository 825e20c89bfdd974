from __future__ import annotations

import logging

import pytest

from godotassembler.assets import AssetEvent, AssetRegistry, infer_asset_type
from godotassembler.errors import FailureKind

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
GLTF_BYTES = b'{"asset": {"version": "2.0"}, "scenes": []}'


def test_add_then_get_returns_stored_bytes_and_type() -> None:
    registry = AssetRegistry()

    result = registry.add("textures/a.png", "texture", PNG_BYTES)

    assert result
    asset = registry.get("textures/a.png")
    assert asset is not None
    assert asset.data == PNG_BYTES
    assert asset.type == "texture"
    assert asset.original_name == "a.png"
    assert asset.size == len(PNG_BYTES)


def test_duplicate_add_fails_without_mutating_first_entry() -> None:
    registry = AssetRegistry()
    registry.add("textures/a.png", "texture", PNG_BYTES)

    result = registry.add("textures/a.png", "audio", b"other")

    assert not result
    assert result.failure is FailureKind.ALREADY_EXISTS
    assert result.failure.category == "AlreadyExists"
    asset = registry.get("textures/a.png")
    assert asset.data == PNG_BYTES
    assert asset.type == "texture"


def test_empty_payload_is_rejected() -> None:
    registry = AssetRegistry()

    result = registry.add("sounds/empty.ogg", "audio", b"")

    assert result.failure is FailureKind.VALIDATION_FAILED
    assert "sounds/empty.ogg" not in registry


def test_gltf_requires_marker() -> None:
    registry = AssetRegistry()

    assert registry.add("models/ok.gltf", "gltf", GLTF_BYTES)
    rejected = registry.add("models/bad.gltf", "gltf", b"just some text")
    binary = registry.add("models/bin.gltf", "gltf", b"\xff\xfe\x00")

    assert rejected.failure is FailureKind.VALIDATION_FAILED
    assert binary.failure is FailureKind.VALIDATION_FAILED
    assert registry.paths() == ["models/ok.gltf"]


def test_unknown_type_is_accepted_with_warning_in_permissive_mode(
    caplog: pytest.LogCaptureFixture,
) -> None:
    registry = AssetRegistry()

    with caplog.at_level(logging.WARNING, logger="godotassembler.assets"):
        result = registry.add("data/blob.bin", "hologram", b"\x01")

    assert result
    assert "Unknown asset type 'hologram'" in caplog.text


def test_unknown_type_is_rejected_in_strict_mode() -> None:
    registry = AssetRegistry(strict_mode=True)

    result = registry.add("data/blob.bin", "hologram", b"\x01")

    assert result.failure is FailureKind.VALIDATION_FAILED
    assert len(registry) == 0


def test_non_bytes_payload_is_rejected() -> None:
    registry = AssetRegistry()

    result = registry.add("textures/a.png", "texture", "not bytes")  # type: ignore[arg-type]

    assert result.failure is FailureKind.VALIDATION_FAILED


def test_remove_reports_missing_assets() -> None:
    registry = AssetRegistry()
    registry.add("textures/a.png", "texture", PNG_BYTES)

    assert registry.remove("textures/a.png")
    missing = registry.remove("textures/a.png")

    assert missing.failure is FailureKind.NOT_FOUND
    assert registry.get("textures/a.png") is None


def test_observers_receive_events_and_failures_are_contained() -> None:
    registry = AssetRegistry()
    events: list[AssetEvent] = []

    def broken(event: AssetEvent) -> None:
        raise RuntimeError("observer failure")

    registry.subscribe(broken)
    registry.subscribe(events.append)

    registry.add("textures/a.png", "texture", PNG_BYTES)
    registry.add("textures/b.png", "texture", b"")
    registry.remove("textures/a.png")
    registry.unsubscribe(events.append)
    registry.add("textures/c.png", "texture", PNG_BYTES)

    assert [(event.kind, event.path) for event in events] == [
        ("added", "textures/a.png"),
        ("invalid", "textures/b.png"),
        ("removed", "textures/a.png"),
    ]
    assert events[1].reason == "asset payload is empty"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("a.PNG", "texture"),
        ("music/theme.ogg", "audio"),
        ("fonts/main.ttf", "font"),
        ("models/ship.glb", "model"),
        ("models/ship.gltf", "gltf"),
        ("notes.txt", "other"),
    ],
)
def test_infer_asset_type(path: str, expected: str) -> None:
    assert infer_asset_type(path) == expected

"""Smoke tests for the command-line interface."""

from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

from godotassembler import ProjectModel
from godotassembler.cli import main
from godotassembler.persistence import load_document, write_document


@pytest.fixture
def document(tmp_path: Path, populated_model: ProjectModel) -> Path:
    path = tmp_path / "demo.json"
    write_document(populated_model, path)
    return path


def test_export_writes_archive(
    tmp_path: Path, document: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = tmp_path / "dist"

    exit_code = main(["export", str(document), "--output", str(output)])

    assert exit_code == 0
    archive_path = output / "Demo.zip"
    with zipfile.ZipFile(archive_path) as bundle:
        names = set(bundle.namelist())
    assert "Demo/scenes/level.tscn" in names
    assert "Demo/Credits.tscn" in names
    assert "Demo/project.godot" not in names
    assert "Wrote 5 entries to Demo.zip" in capsys.readouterr().out


def test_export_with_name_and_project_config(tmp_path: Path, document: Path) -> None:
    output = tmp_path / "dist"

    exit_code = main(
        [
            "export",
            str(document),
            "--output",
            str(output),
            "--name",
            "Shipping",
            "--include-project-config",
        ]
    )

    assert exit_code == 0
    with zipfile.ZipFile(output / "Shipping.zip") as bundle:
        assert "Shipping/project.godot" in bundle.namelist()


def test_export_then_import_round_trip(
    tmp_path: Path, document: Path, populated_model: ProjectModel
) -> None:
    output = tmp_path / "dist"
    main(["export", str(document), "--output", str(output)])
    imported_path = tmp_path / "imported" / "demo.json"

    exit_code = main(["import", str(output / "Demo.zip"), "--output", str(imported_path)])

    assert exit_code == 0
    restored = load_document(imported_path)
    assert sorted(restored.scenes) == sorted(populated_model.scenes)
    assert restored.get_asset("textures/a.png").data == populated_model.get_asset(
        "textures/a.png"
    ).data


def test_missing_document_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = main(["export", str(tmp_path / "missing.json"), "--output", str(tmp_path)])

    assert exit_code == 1
    assert capsys.readouterr().err.startswith("error:")


def test_invalid_document_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"name": ""}), encoding="utf-8")

    exit_code = main(["export", str(path), "--output", str(tmp_path)])

    assert exit_code == 1
    assert "Invalid project payload" in capsys.readouterr().err


def test_invalid_environment_reports_error(
    tmp_path: Path,
    document: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("GODOTASSEMBLER_STRICT_MODE", "sometimes")

    exit_code = main(["export", str(document), "--output", str(tmp_path)])

    assert exit_code == 1
    assert "GODOTASSEMBLER_STRICT_MODE" in capsys.readouterr().err


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        main([])

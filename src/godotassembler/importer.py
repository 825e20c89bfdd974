"""Rebuild a :class:`ProjectModel` from an exported archive."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Sequence

from .archive import Archive, ZipArchive
from .assets import infer_asset_type
from .errors import SceneParseError
from .model import DEFAULT_PROJECT_NAME, ProjectModel
from .packager import (
    ASSETS_DIR,
    CREDITS_ENTRY,
    PROJECT_CONFIG_ENTRY,
    SCENE_EXTENSION,
    SCRIPTS_DIR,
)
from .scene_parser import is_balanced, load_parsed_scene, parse_scene, parse_value
from .values import to_plain

logger = logging.getLogger(__name__)

_SCRIPT_LANGUAGES = {".gd": "gdscript", ".cs": "csharp"}


@dataclass(frozen=True)
class ImportResult:
    """The reconstructed model and anything that could not be imported."""

    model: ProjectModel
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.warnings


def _common_prefix(entries: Sequence[str]) -> str:
    firsts = {entry.split("/", 1)[0] for entry in entries}
    if len(firsts) != 1 or any("/" not in entry for entry in entries):
        return ""
    return firsts.pop()


def _decode(data: bytes, entry: str, warnings: list[str]) -> str | None:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        warnings.append(f"{entry}: not valid UTF-8 text")
        return None


def apply_project_config(model: ProjectModel, text: str) -> list[str]:
    """Load ``project.godot`` sections into ``model.config``; return warnings.

    Values may span several lines, as Godot writes input action dictionaries.
    """

    warnings: list[str] = []
    section: str | None = None
    lines = text.splitlines()
    index = 0
    while index < len(lines):
        number = index + 1
        line = lines[index].strip()
        index += 1
        if not line or line.startswith(";"):
            continue
        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip()
            continue
        key, separator, raw_value = line.partition("=")
        if not separator:
            warnings.append(f"{PROJECT_CONFIG_ENTRY}:{number}: cannot parse '{line}'")
            continue
        while not is_balanced(raw_value) and index < len(lines):
            raw_value += "\n" + lines[index]
            index += 1
        if section is None:
            continue
        try:
            value: Any = to_plain(parse_value(raw_value, line=number))  # type: ignore[arg-type]
        except (SceneParseError, TypeError) as exc:
            warnings.append(f"{PROJECT_CONFIG_ENTRY}:{number}: {exc}")
            continue

        key = key.strip()
        if section == "application" and key.startswith("config/"):
            key = key[len("config/"):]
        if section == "input" and isinstance(value, dict):
            model.define_input_action(key, value.get("events") or [])
        else:
            model.set_config_value(section, key, value)
    return warnings


def import_archive(
    source: Archive | bytes,
    *,
    strict_mode: bool = False,
    project_name: str | None = None,
) -> ImportResult:
    """Reconstruct a project from ``source``.

    The archive layout mirrors :mod:`godotassembler.packager`. Entries that
    cannot be imported (unparseable scenes, invalid assets) are reported as
    warnings; the import itself does not raise for them.

    Raises:
        ValueError: If ``source`` is bytes that are not a ZIP archive.
    """

    archive = ZipArchive.from_bytes(source) if isinstance(source, (bytes, bytearray)) else source
    entries = list(archive.list_entries())
    prefix = _common_prefix(entries)
    name = project_name or prefix or DEFAULT_PROJECT_NAME
    model = ProjectModel(name, strict_mode=strict_mode)
    warnings: list[str] = []

    relative_entries = [
        (entry, entry[len(prefix) + 1:] if prefix else entry) for entry in entries
    ]

    config_entry = next(
        (entry for entry, relative in relative_entries if relative == PROJECT_CONFIG_ENTRY),
        None,
    )
    if config_entry is not None:
        text = _decode(archive.read_entry(config_entry), config_entry, warnings)
        if text is not None:
            warnings.extend(apply_project_config(model, text))
        if project_name:
            model.set_project_name(project_name)

    scenes: list[tuple[str, str]] = []
    for entry, relative in relative_entries:
        if relative in (PROJECT_CONFIG_ENTRY, CREDITS_ENTRY):
            continue
        data = archive.read_entry(entry)

        in_layout_dir = relative.startswith((f"{SCRIPTS_DIR}/", f"{ASSETS_DIR}/"))
        if in_layout_dir and relative.endswith(SCENE_EXTENSION):
            logger.warning("Import: %s is kept as a file, not loaded as a scene", entry)

        if relative.startswith(f"{SCRIPTS_DIR}/"):
            text = _decode(data, entry, warnings)
            if text is None:
                continue
            language = _SCRIPT_LANGUAGES.get(PurePosixPath(relative).suffix, "gdscript")
            result = model.create_script(relative, language, text)
        elif relative.startswith(f"{ASSETS_DIR}/"):
            asset_path = relative[len(ASSETS_DIR) + 1:]
            result = model.add_asset(asset_path, infer_asset_type(asset_path), data)
        elif relative.endswith(SCENE_EXTENSION):
            scenes.append((entry, relative))
            continue
        else:
            result = model.add_asset(relative, "other", data)

        if not result:
            warnings.append(f"{entry}: {result.message}")

    for entry, relative in scenes:
        text = _decode(archive.read_entry(entry), entry, warnings)
        if text is None:
            continue
        try:
            parsed = parse_scene(text)
        except SceneParseError as exc:
            warnings.append(f"{entry}: {exc}")
            continue
        result = load_parsed_scene(model, relative[: -len(SCENE_EXTENSION)], parsed)
        if not result:
            warnings.append(f"{entry}: {result.message}")

    for warning in warnings:
        logger.warning("Import: %s", warning)
    return ImportResult(model=model, warnings=tuple(warnings))


__all__ = ["ImportResult", "apply_project_config", "import_archive"]

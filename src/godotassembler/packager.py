"""Assemble a project into an exportable archive."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator

from .archive import Archive, ZipArchive
from .errors import ArchiveAssemblyError, ExportInProgressError
from .model import ASSETS_DIR, CREDITS_SCENE, SCRIPTS_DIR, ProjectModel, Script
from .serializer import (
    DEFAULT_CREDITS_TEXT,
    SceneSerializer,
    render_credits_scene,
    render_project_config,
)

logger = logging.getLogger(__name__)

SCENE_EXTENSION = ".tscn"
CREDITS_ENTRY = f"{CREDITS_SCENE}{SCENE_EXTENSION}"
PROJECT_CONFIG_ENTRY = "project.godot"

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class ExportResult:
    """A finished export: the archive, its encoded bytes and some metadata."""

    project_name: str
    filename: str
    archive: Archive
    content: bytes
    entries: tuple[str, ...]
    checksum: str
    generated_at: datetime
    warnings: tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return len(self.content)


def scene_entry(project_name: str, scene_path: str) -> str:
    if not scene_path.endswith(SCENE_EXTENSION):
        scene_path = f"{scene_path}{SCENE_EXTENSION}"
    return f"{project_name}/{scene_path}"


def script_entry(project_name: str, script: Script) -> str:
    return f"{project_name}/{script.location}"


def asset_entry(project_name: str, asset_path: str) -> str:
    return f"{project_name}/{ASSETS_DIR}/{asset_path}"


class Packager:
    """Write every scene, script and asset of a model into an :class:`Archive`.

    Exports run as three stages (scenes and scripts, asset bytes, archive
    finalisation) and only suspend between them. Only one export may run per
    model at a time, across every packager built on it; the model is read
    live, so callers must not mutate it while an export is in flight.

    Args:
        model: The project to export.
        archive_factory: Creates the empty archive each export writes into.
        credits_text: Text of the credits scene appended to every export.
        include_project_config: Also write ``project.godot``.
    """

    def __init__(
        self,
        model: ProjectModel,
        *,
        archive_factory: Callable[[], Archive] = ZipArchive,
        credits_text: str = DEFAULT_CREDITS_TEXT,
        include_project_config: bool = False,
    ) -> None:
        self.model = model
        self.serializer = SceneSerializer(model)
        self._archive_factory = archive_factory
        self.credits_text = credits_text
        self.include_project_config = include_project_config
        self._running = False
        self._cancel_requested = False

    @property
    def in_flight(self) -> bool:
        return self._running

    def cancel(self) -> None:
        """Ask the running export to stop at the next stage boundary."""

        if self._running:
            self._cancel_requested = True

    async def build_archive(
        self,
        project_name: str | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> ExportResult:
        """Build the archive for ``project_name`` (defaults to the model's name).

        Raises:
            ExportInProgressError: If an export of the same model is already
                running.
            ArchiveAssemblyError: If any entry cannot be produced or written,
                or the export was cancelled. No partial archive is returned.
        """

        if self.model.export_in_flight:
            raise ExportInProgressError("An export is already running for this project.")

        name = (project_name or "").strip() or self.model.name
        self.model.export_in_flight = True
        self._running = True
        self._cancel_requested = False
        try:
            return await self._run(name, on_progress)
        except ArchiveAssemblyError as exc:
            logger.error("Export of %s failed: %s", name, exc)
            raise
        finally:
            self.model.export_in_flight = False
            self._running = False
            self._cancel_requested = False

    async def _run(self, name: str, on_progress: ProgressCallback | None) -> ExportResult:
        report = self.model.validate()
        total = (
            len(self.model.scenes)
            + len(self.model.scripts)
            + len(self.model.assets)
            + 1
            + (1 if self.include_project_config else 0)
        )
        written = 0

        with self._scoped_archive() as archive:

            def write(entry: str, produce: Callable[[], bytes]) -> None:
                nonlocal written
                try:
                    archive.add_entry(entry, produce())
                except Exception as exc:
                    raise ArchiveAssemblyError(
                        f"Failed to write archive entry '{entry}': {exc}", entry=entry
                    ) from exc
                written += 1
                _report(on_progress, written / total)

            logger.debug("Export %s: serializing %d scene(s)", name, len(self.model.scenes))
            for scene_path in list(self.model.scenes):
                write(
                    scene_entry(name, scene_path),
                    lambda path=scene_path: self.serializer.serialize_scene(path).encode("utf-8"),
                )
            for script in list(self.model.scripts.values()):
                write(
                    script_entry(name, script),
                    lambda script=script: script.source.encode("utf-8"),
                )
            if self.include_project_config:
                write(
                    f"{name}/{PROJECT_CONFIG_ENTRY}",
                    lambda: render_project_config(self.model).encode("utf-8"),
                )
            write(
                f"{name}/{CREDITS_ENTRY}",
                lambda: render_credits_scene(self.credits_text).encode("utf-8"),
            )
            await self._checkpoint()

            logger.debug("Export %s: collecting %d asset(s)", name, len(self.model.assets))
            for asset in list(self.model.assets):
                write(asset_entry(name, asset.path), lambda asset=asset: asset.data)
            await self._checkpoint()

            try:
                content = await asyncio.to_thread(archive.finalize)
            except Exception as exc:
                raise ArchiveAssemblyError(f"Failed to finalize archive: {exc}") from exc

            entries = tuple(archive.list_entries())

        logger.info("Exported %s (%d entries, %d bytes)", name, len(entries), len(content))
        return ExportResult(
            project_name=name,
            filename=f"{name}.zip",
            archive=archive,
            content=content,
            entries=entries,
            checksum=hashlib.sha256(content).hexdigest(),
            generated_at=datetime.now(timezone.utc).replace(microsecond=0),
            warnings=report.warnings,
        )

    @contextmanager
    def _scoped_archive(self) -> Iterator[Archive]:
        archive = self._archive_factory()
        try:
            yield archive
        except BaseException:
            clear = getattr(archive, "clear", None)
            if callable(clear):
                clear()
            raise

    async def _checkpoint(self) -> None:
        await asyncio.sleep(0)
        if self._cancel_requested:
            raise ArchiveAssemblyError("Export cancelled")


def _report(on_progress: ProgressCallback | None, fraction: float) -> None:
    if on_progress is None:
        return
    try:
        on_progress(fraction)
    except Exception:  # progress observers cannot abort an export
        logger.exception("Export progress callback failed")


__all__ = [
    "ASSETS_DIR",
    "CREDITS_ENTRY",
    "ExportResult",
    "PROJECT_CONFIG_ENTRY",
    "Packager",
    "ProgressCallback",
    "SCENE_EXTENSION",
    "SCRIPTS_DIR",
    "asset_entry",
    "scene_entry",
    "script_entry",
]

"""Directory tree implied by the paths of project entities."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List

logger = logging.getLogger(__name__)


def normalise_path(path: str) -> str:
    """Return ``path`` with empty and ``.`` segments removed.

    Raises:
        TypeError: If ``path`` is not a string.
    """

    if not isinstance(path, str):
        raise TypeError(f"path must be a string, got {type(path)!r}")
    parts = [part for part in path.replace("\\", "/").split("/") if part and part != "."]
    return "/".join(parts)


def parent_path(path: str) -> str:
    """Return the folder containing ``path`` (``""`` for top-level entries)."""

    normalised = normalise_path(path)
    if "/" not in normalised:
        return ""
    return normalised.rsplit("/", 1)[0]


@dataclass
class Folder:
    """A folder and the entries directly beneath it."""

    path: str
    name: str
    files: List[str] = field(default_factory=list)
    subfolders: List[str] = field(default_factory=list)


class FolderIndex:
    """Keeps every folder implied by entity paths.

    Folders are created lazily together with all their missing ancestors and are
    never deleted automatically. The project root (``""``) is implicit and not
    stored.
    """

    def __init__(self) -> None:
        self._folders: dict[str, Folder] = {}

    def ensure(self, path: str) -> Folder | None:
        """Create ``path`` and any missing ancestors; return the leaf folder.

        Returns ``None`` for the project root.
        """

        normalised = normalise_path(path)
        if not normalised:
            return None

        existing = self._folders.get(normalised)
        if existing is not None:
            return existing

        current = ""
        folder: Folder | None = None
        for part in normalised.split("/"):
            parent = current
            current = f"{current}/{part}" if current else part
            folder = self._folders.get(current)
            if folder is not None:
                continue

            folder = Folder(path=current, name=part)
            self._folders[current] = folder
            if parent:
                self._folders[parent].subfolders.append(current)
            logger.debug("Created folder %s", current)
        return folder

    def register_file(self, file_path: str) -> None:
        """Record ``file_path`` in its containing folder, creating it if needed."""

        normalised = normalise_path(file_path)
        folder = self.ensure(parent_path(normalised))
        if folder is not None and normalised not in folder.files:
            folder.files.append(normalised)

    def unregister_file(self, file_path: str) -> None:
        """Forget ``file_path``; the containing folder itself is kept."""

        normalised = normalise_path(file_path)
        folder = self._folders.get(parent_path(normalised))
        if folder is not None and normalised in folder.files:
            folder.files.remove(normalised)

    def get(self, path: str) -> Folder | None:
        return self._folders.get(normalise_path(path))

    def paths(self) -> list[str]:
        return list(self._folders)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalise_path(path) in self._folders

    def __iter__(self) -> Iterator[Folder]:
        return iter(list(self._folders.values()))

    def __len__(self) -> int:
        return len(self._folders)


__all__ = ["Folder", "FolderIndex", "normalise_path", "parent_path"]

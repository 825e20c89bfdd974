"""Failure taxonomy shared by the project model, registries and exporters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureKind(str, Enum):
    """Enumerated reasons an operation on the project model can fail."""

    ALREADY_EXISTS = "already_exists"
    DUPLICATE_NODE = "duplicate_node"
    NOT_FOUND = "not_found"
    SCENE_NOT_FOUND = "scene_not_found"
    NODE_NOT_FOUND = "node_not_found"
    VALIDATION_FAILED = "validation_failed"
    ARCHIVE_ASSEMBLY_FAILED = "archive_assembly_failed"

    @property
    def category(self) -> str:
        """Return the coarse failure category this kind belongs to."""

        return _CATEGORIES[self]


_CATEGORIES = {
    FailureKind.ALREADY_EXISTS: "AlreadyExists",
    FailureKind.DUPLICATE_NODE: "AlreadyExists",
    FailureKind.NOT_FOUND: "NotFound",
    FailureKind.SCENE_NOT_FOUND: "NotFound",
    FailureKind.NODE_NOT_FOUND: "NotFound",
    FailureKind.VALIDATION_FAILED: "ValidationFailed",
    FailureKind.ARCHIVE_ASSEMBLY_FAILED: "ArchiveAssemblyFailed",
}


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a model mutation.

    Results are truthy on success so callers can write ``if model.create_scene(...)``.
    Failed results carry the :class:`FailureKind` and a human readable message;
    the model state is left untouched whenever ``ok`` is ``False``.
    """

    ok: bool
    message: str = ""
    failure: FailureKind | None = None

    def __post_init__(self) -> None:
        if self.ok and self.failure is not None:
            raise ValueError("successful results cannot carry a failure kind")
        if not self.ok and self.failure is None:
            raise ValueError("failed results must carry a failure kind")

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, message: str = "") -> "OperationResult":
        return cls(ok=True, message=message)

    @classmethod
    def fail(cls, failure: FailureKind, message: str) -> "OperationResult":
        return cls(ok=False, message=message, failure=failure)


class SceneNotFoundError(KeyError):
    """Raised when a scene path does not resolve to a scene."""

    def __init__(self, scene_path: str) -> None:
        super().__init__(f"Scene '{scene_path}' does not exist")
        self.scene_path = scene_path

    def __str__(self) -> str:
        return str(self.args[0])


class SceneParseError(ValueError):
    """Raised when scene text cannot be parsed."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class ArchiveEntryError(KeyError):
    """Raised when an archive entry is missing or cannot be written."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ArchiveAssemblyError(RuntimeError):
    """Raised when building an export archive fails.

    The first underlying error is available through ``__cause__`` and
    :attr:`entry` names the archive entry being written at the time, when known.
    """

    failure = FailureKind.ARCHIVE_ASSEMBLY_FAILED

    def __init__(self, message: str, *, entry: str | None = None) -> None:
        super().__init__(message)
        self.entry = entry


class ExportInProgressError(RuntimeError):
    """Raised when an export is requested while another one is running."""


__all__ = [
    "ArchiveAssemblyError",
    "ArchiveEntryError",
    "ExportInProgressError",
    "FailureKind",
    "OperationResult",
    "SceneNotFoundError",
    "SceneParseError",
]

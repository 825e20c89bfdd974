"""Core package for assembling Godot projects in memory."""

from .archive import Archive, ZipArchive
from .assets import Asset, AssetEvent, AssetRegistry, infer_asset_type
from .errors import (
    ArchiveAssemblyError,
    ArchiveEntryError,
    ExportInProgressError,
    FailureKind,
    OperationResult,
    SceneNotFoundError,
    SceneParseError,
)
from .folders import Folder, FolderIndex
from .importer import ImportResult, import_archive
from .model import (
    Node,
    NodeLinkPolicy,
    ProjectModel,
    Resource,
    Scene,
    SceneMetadata,
    Script,
    SignalConnection,
    ValidationReport,
)
from .packager import ExportResult, Packager
from .persistence import ProjectSnapshot
from .projection import GraphProjection, project_all, project_scene
from .scene_author import SceneAuthor
from .scene_parser import ParsedScene, parse_scene
from .serializer import SceneSerializer
from .settings import AssemblerSettings
from .values import Value, coerce_value

__all__ = [
    "ProjectModel",
    "NodeLinkPolicy",
    "Scene",
    "SceneMetadata",
    "Node",
    "Script",
    "Resource",
    "SignalConnection",
    "ValidationReport",
    "SceneAuthor",
    "GraphProjection",
    "project_scene",
    "project_all",
    "SceneSerializer",
    "ParsedScene",
    "parse_scene",
    "Asset",
    "AssetEvent",
    "AssetRegistry",
    "infer_asset_type",
    "Folder",
    "FolderIndex",
    "Archive",
    "ZipArchive",
    "Packager",
    "ExportResult",
    "ImportResult",
    "import_archive",
    "ProjectSnapshot",
    "AssemblerSettings",
    "Value",
    "coerce_value",
    "FailureKind",
    "OperationResult",
    "SceneNotFoundError",
    "SceneParseError",
    "ArchiveAssemblyError",
    "ArchiveEntryError",
    "ExportInProgressError",
]

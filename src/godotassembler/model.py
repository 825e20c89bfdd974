"""Canonical in-memory representation of a Godot project.

The :class:`ProjectModel` owns every scene, script, resource, asset and folder of
a project together with the project-level configuration. All mutation entry
points return an :class:`~godotassembler.errors.OperationResult` instead of
raising for expected contention (duplicate paths, unknown scenes or nodes), and
leave the model untouched when they fail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Sequence

from .assets import Asset, AssetRegistry
from .errors import FailureKind, OperationResult
from .folders import FolderIndex, normalise_path, parent_path
from .values import Value, coerce_value

if TYPE_CHECKING:  # pragma: no cover - imported only for type checking
    from .settings import AssemblerSettings

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "UnnamedProject"
DEFAULT_ENGINE_VERSION = "4.x"
RESERVED_CONFIG_SECTIONS = ("application", "input", "autoload", "rendering", "physics")

SCRIPT_EXTENSIONS: Mapping[str, str] = {
    "gdscript": ".gd",
    "csharp": ".cs",
}

# Layout of an exported project. Scenes may not live where the archive keeps
# scripts, assets or the credits scene.
SCRIPTS_DIR = "scripts"
ASSETS_DIR = "assets"
CREDITS_SCENE = "Credits"
RESOURCE_SCHEME = "res://"
_RESERVED_SCENE_PATHS = (CREDITS_SCENE, f"{CREDITS_SCENE}.tscn")
_RESERVED_SCENE_DIRS = (SCRIPTS_DIR, ASSETS_DIR)


def _validate_label(value: str, field_name: str) -> str:
    """Strip and validate identifiers used for nodes and entity paths."""

    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string, got {type(value)!r}")

    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} must be a non-empty string")
    return stripped


def _validate_path(value: str, field_name: str) -> str:
    normalised = normalise_path(_validate_label(value, field_name))
    if not normalised:
        raise ValueError(f"{field_name} must contain at least one path segment")
    return normalised


def _validate_property_name(value: str) -> str:
    name = _validate_label(value, "property name")
    if name[0] in "[;" or any(char.isspace() or char == "=" for char in name):
        raise ValueError(
            f"property name {name!r} may not contain whitespace or '=' "
            "or start with '[' or ';'"
        )
    return name


def script_location(script_path: str, extension: str = ".gd") -> str:
    """Return the project-relative location of a script in an export.

    Scripts are kept under ``scripts/``; a leading ``scripts/`` is not doubled
    and ``extension`` is appended when the path has no suffix.
    """

    relative = script_path
    if relative.startswith(f"{SCRIPTS_DIR}/"):
        relative = relative[len(SCRIPTS_DIR) + 1:]
    if not PurePosixPath(relative).suffix:
        relative = f"{relative}{extension}"
    return f"{SCRIPTS_DIR}/{relative}"


def reserved_scene_reason(scene_path: str) -> str | None:
    """Explain why ``scene_path`` cannot hold a scene, or return ``None``."""

    if scene_path in _RESERVED_SCENE_PATHS:
        return f"Scene path '{scene_path}' is reserved for the credits scene"
    top = scene_path.split("/", 1)[0]
    if top in _RESERVED_SCENE_DIRS and "/" in scene_path:
        return f"Scene path '{scene_path}' is inside the reserved '{top}/' folder"
    return None


class NodeLinkPolicy(str, Enum):
    """How :meth:`ProjectModel.create_node` treats ambiguous parent links.

    ``LEGACY`` keeps a node whose parent cannot be resolved as an unlinked
    entry and lets a second parentless node silently replace the scene root.
    ``STRICT`` rejects both situations.
    """

    LEGACY = "legacy"
    STRICT = "strict"


@dataclass
class Node:
    """A typed element of a scene's hierarchy."""

    id: str
    type: str
    parent: str | None = None
    children: List[str] = field(default_factory=list)
    properties: Dict[str, Value] = field(default_factory=dict)
    script: str | None = None


@dataclass(frozen=True)
class SignalConnection:
    signal: str
    from_node: str
    to_node: str
    method: str


@dataclass(frozen=True)
class ResourceReference:
    path: str
    type: str
    id: str


@dataclass
class SceneMetadata:
    """Authoring intent attached to a scene by the scene author."""

    role: str | None = None
    root_type: str | None = None
    description: str = ""
    entry_scene: bool = False
    transition_target: str | None = None


@dataclass
class Scene:
    path: str
    nodes: Dict[str, Node] = field(default_factory=dict)
    root_node_id: str | None = None
    connections: List[SignalConnection] = field(default_factory=list)
    resources: List[ResourceReference] = field(default_factory=list)
    metadata: SceneMetadata = field(default_factory=SceneMetadata)

    @property
    def root(self) -> Node | None:
        if self.root_node_id is None:
            return None
        return self.nodes.get(self.root_node_id)

    def node_path(self, node_id: str) -> str | None:
        """Return the slash-joined ancestor path of ``node_id`` from the root.

        Returns ``None`` when the node is missing or its ancestor chain is broken
        or cyclic.
        """

        names: list[str] = []
        seen: set[str] = set()
        current: str | None = node_id
        while current is not None:
            node = self.nodes.get(current)
            if node is None or current in seen:
                return None
            seen.add(current)
            names.append(node.id)
            current = node.parent
        return "/".join(reversed(names))


@dataclass
class Script:
    path: str
    language: str = "gdscript"
    source: str = ""

    @property
    def extension(self) -> str:
        return SCRIPT_EXTENSIONS.get(self.language, ".gd")

    @property
    def location(self) -> str:
        return script_location(self.path, self.extension)


@dataclass
class Resource:
    path: str
    type: str
    properties: Dict[str, Value] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationReport:
    """Result of :meth:`ProjectModel.validate`.

    Warnings never block an export; :attr:`exportable` is always ``True``.
    """

    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.warnings

    @property
    def exportable(self) -> bool:
        return True


def _default_config(name: str) -> Dict[str, Dict[str, Any]]:
    config: Dict[str, Dict[str, Any]] = {
        section: {} for section in RESERVED_CONFIG_SECTIONS
    }
    config["application"]["name"] = name
    return config


class ProjectModel:
    """The canonical store for a single Godot project.

    Args:
        name: Project name, mirrored into ``config["application"]["name"]``.
        engine_version: Free-form engine version tag.
        strict_mode: Reject unknown asset types and ambiguous node links.
        node_policy: Overrides the node-link policy implied by ``strict_mode``.
    """

    def __init__(
        self,
        name: str = DEFAULT_PROJECT_NAME,
        *,
        engine_version: str = DEFAULT_ENGINE_VERSION,
        strict_mode: bool = False,
        node_policy: NodeLinkPolicy | None = None,
    ) -> None:
        self.name = _validate_label(name, "project name")
        self.engine_version = engine_version
        self.strict_mode = strict_mode
        if node_policy is None:
            node_policy = NodeLinkPolicy.STRICT if strict_mode else NodeLinkPolicy.LEGACY
        self.node_policy = node_policy
        self.config = _default_config(self.name)
        self.scenes: Dict[str, Scene] = {}
        self.scripts: Dict[str, Script] = {}
        self.resources: Dict[str, Resource] = {}
        self.assets = AssetRegistry(strict_mode=strict_mode)
        self.folders = FolderIndex()
        self.export_in_flight = False

    @classmethod
    def from_settings(cls, settings: "AssemblerSettings") -> "ProjectModel":
        """Build an empty project configured from ``settings``."""

        return cls(
            settings.project_name,
            engine_version=settings.engine_version,
            strict_mode=settings.strict_mode,
        )

    # ------------------------------------------------------------------
    # Project metadata
    # ------------------------------------------------------------------

    def set_project_name(self, name: str) -> OperationResult:
        validated = _validate_label(name, "project name")
        self.name = validated
        self.config.setdefault("application", {})["name"] = validated
        return OperationResult.success(f"Project named '{validated}'")

    def define_input_action(
        self, action_name: str, events: Sequence[Mapping[str, Any]] | None = None
    ) -> OperationResult:
        """Insert or replace an input action in the ``input`` config section."""

        name = _validate_label(action_name, "input action name")
        self.config.setdefault("input", {})[name] = [dict(event) for event in events or ()]
        return OperationResult.success(f"Input action '{name}' defined")

    def set_config_value(self, section: str, key: str, value: Any) -> OperationResult:
        """Write a raw config value; ``application.name`` is routed to the name setter."""

        section_name = _validate_label(section, "config section")
        key_name = _validate_label(key, "config key")
        if section_name == "application" and key_name == "name":
            return self.set_project_name(str(value))
        self.config.setdefault(section_name, {})[key_name] = value
        return OperationResult.success(f"Config '{section_name}.{key_name}' set")

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def ensure_folder(self, path: str) -> OperationResult:
        self.folders.ensure(path)
        return OperationResult.success()

    # ------------------------------------------------------------------
    # Scenes and nodes
    # ------------------------------------------------------------------

    def create_scene(self, scene_path: str) -> OperationResult:
        path = _validate_path(scene_path, "scene path")
        if path in self.scenes:
            return OperationResult.fail(
                FailureKind.ALREADY_EXISTS, f"Scene '{path}' already exists"
            )
        reason = reserved_scene_reason(path)
        if reason is not None:
            return OperationResult.fail(FailureKind.VALIDATION_FAILED, reason)

        self.folders.ensure(parent_path(path))
        self.scenes[path] = Scene(path=path)
        logger.debug("Created scene %s", path)
        return OperationResult.success(f"Scene '{path}' created")

    def get_scene(self, scene_path: str) -> Scene | None:
        return self.scenes.get(normalise_path(scene_path))

    def list_scenes(self) -> list[str]:
        return list(self.scenes)

    def remove_scene(self, scene_path: str) -> OperationResult:
        path = normalise_path(scene_path)
        if path not in self.scenes:
            return OperationResult.fail(
                FailureKind.SCENE_NOT_FOUND, f"Scene '{path}' does not exist"
            )
        del self.scenes[path]
        return OperationResult.success(f"Scene '{path}' removed")

    def create_node(
        self,
        scene_path: str,
        node_id: str,
        node_type: str,
        parent_id: str | None = None,
    ) -> OperationResult:
        """Insert a node into a scene.

        A node without ``parent_id`` becomes the scene root. Under the
        ``LEGACY`` policy a second parentless node replaces the recorded root
        and a node whose parent is unknown is stored without being linked into
        any ``children`` list. The ``STRICT`` policy rejects both.
        """

        scene = self.get_scene(scene_path)
        if scene is None:
            return OperationResult.fail(
                FailureKind.SCENE_NOT_FOUND, f"Scene '{scene_path}' does not exist"
            )

        identifier = _validate_label(node_id, "node id")
        type_name = _validate_label(node_type, "node type")
        if identifier in scene.nodes:
            return OperationResult.fail(
                FailureKind.DUPLICATE_NODE,
                f"Node '{identifier}' already exists in scene '{scene.path}'",
            )

        parent_node: Node | None = None
        if parent_id is not None:
            parent_node = scene.nodes.get(parent_id)
            if parent_node is None:
                if self.node_policy is NodeLinkPolicy.STRICT:
                    return OperationResult.fail(
                        FailureKind.NOT_FOUND,
                        f"Parent '{parent_id}' does not exist in scene '{scene.path}'",
                    )
                logger.warning(
                    "Parent '%s' of node '%s' not found in scene %s; node left unlinked.",
                    parent_id,
                    identifier,
                    scene.path,
                )
        elif scene.root_node_id is not None:
            if self.node_policy is NodeLinkPolicy.STRICT:
                return OperationResult.fail(
                    FailureKind.ALREADY_EXISTS,
                    f"Scene '{scene.path}' already has root '{scene.root_node_id}'",
                )
            logger.warning(
                "Scene %s root '%s' replaced by '%s'.",
                scene.path,
                scene.root_node_id,
                identifier,
            )

        scene.nodes[identifier] = Node(id=identifier, type=type_name, parent=parent_id)
        if parent_node is not None:
            parent_node.children.append(identifier)
        elif parent_id is None:
            scene.root_node_id = identifier

        return OperationResult.success(
            f"Node '{identifier}' added to scene '{scene.path}'"
        )

    def get_node(self, scene_path: str, node_id: str) -> Node | None:
        scene = self.get_scene(scene_path)
        if scene is None:
            return None
        return scene.nodes.get(node_id)

    def remove_node(self, scene_path: str, node_id: str) -> OperationResult:
        """Remove a node together with its descendants."""

        scene = self.get_scene(scene_path)
        if scene is None:
            return OperationResult.fail(
                FailureKind.SCENE_NOT_FOUND, f"Scene '{scene_path}' does not exist"
            )
        node = scene.nodes.get(node_id)
        if node is None:
            return OperationResult.fail(
                FailureKind.NODE_NOT_FOUND,
                f"Node '{node_id}' does not exist in scene '{scene.path}'",
            )

        doomed: list[str] = []
        pending = [node_id]
        while pending:
            current = pending.pop()
            if current in doomed or current not in scene.nodes:
                continue
            doomed.append(current)
            pending.extend(scene.nodes[current].children)

        parent = scene.nodes.get(node.parent) if node.parent is not None else None
        if parent is not None and node_id in parent.children:
            parent.children.remove(node_id)
        for identifier in doomed:
            del scene.nodes[identifier]
        if scene.root_node_id in doomed:
            scene.root_node_id = None
        scene.connections = [
            connection
            for connection in scene.connections
            if connection.from_node not in doomed and connection.to_node not in doomed
        ]
        return OperationResult.success(
            f"Removed {len(doomed)} node(s) from scene '{scene.path}'"
        )

    def set_node_property(
        self, scene_path: str, node_id: str, property_name: str, value: Any
    ) -> OperationResult:
        node = self.get_node(scene_path, node_id)
        if node is None:
            return self._node_not_found(scene_path, node_id)
        name = _validate_property_name(property_name)
        node.properties[name] = coerce_value(value)
        return OperationResult.success(f"Property '{name}' set on '{node_id}'")

    def attach_script_to_node(
        self, scene_path: str, node_id: str, script_path: str
    ) -> OperationResult:
        node = self.get_node(scene_path, node_id)
        if node is None:
            return self._node_not_found(scene_path, node_id)
        node.script = _validate_path(script_path, "script path")
        return OperationResult.success(f"Script '{node.script}' attached to '{node_id}'")

    def connect_signal(
        self,
        scene_path: str,
        signal: str,
        from_node: str,
        to_node: str,
        method: str,
    ) -> OperationResult:
        scene = self.get_scene(scene_path)
        if scene is None:
            return OperationResult.fail(
                FailureKind.SCENE_NOT_FOUND, f"Scene '{scene_path}' does not exist"
            )
        for node_id in (from_node, to_node):
            if node_id not in scene.nodes:
                return self._node_not_found(scene_path, node_id)
        connection = SignalConnection(
            signal=_validate_label(signal, "signal name"),
            from_node=from_node,
            to_node=to_node,
            method=_validate_label(method, "method name"),
        )
        if connection in scene.connections:
            return OperationResult.fail(
                FailureKind.ALREADY_EXISTS, "Signal connection already exists"
            )
        scene.connections.append(connection)
        return OperationResult.success(
            f"Connected '{connection.signal}' from '{from_node}' to '{to_node}'"
        )

    def add_scene_resource(
        self, scene_path: str, resource_path: str, resource_type: str
    ) -> OperationResult:
        scene = self.get_scene(scene_path)
        if scene is None:
            return OperationResult.fail(
                FailureKind.SCENE_NOT_FOUND, f"Scene '{scene_path}' does not exist"
            )
        path = _validate_path(resource_path, "resource path")
        if any(reference.path == path for reference in scene.resources):
            return OperationResult.fail(
                FailureKind.ALREADY_EXISTS,
                f"Scene '{scene.path}' already references '{path}'",
            )
        reference = ResourceReference(
            path=path,
            type=_validate_label(resource_type, "resource type"),
            id=str(len(scene.resources) + 1),
        )
        scene.resources.append(reference)
        return OperationResult.success(f"Resource '{path}' referenced by '{scene.path}'")

    # ------------------------------------------------------------------
    # Scripts and resources
    # ------------------------------------------------------------------

    def create_script(
        self, script_path: str, language: str = "gdscript", source: str = ""
    ) -> OperationResult:
        path = _validate_path(script_path, "script path")
        if path in self.scripts:
            return OperationResult.fail(
                FailureKind.ALREADY_EXISTS, f"Script '{path}' already exists"
            )
        self.folders.ensure(parent_path(path))
        self.scripts[path] = Script(path=path, language=language, source=source)
        return OperationResult.success(f"Script '{path}' created")

    def update_script_source(self, script_path: str, source: str) -> OperationResult:
        script = self.scripts.get(normalise_path(script_path))
        if script is None:
            return OperationResult.fail(
                FailureKind.NOT_FOUND, f"Script '{script_path}' does not exist"
            )
        script.source = source
        return OperationResult.success(f"Script '{script.path}' updated")

    def remove_script(self, script_path: str) -> OperationResult:
        path = normalise_path(script_path)
        if self.scripts.pop(path, None) is None:
            return OperationResult.fail(
                FailureKind.NOT_FOUND, f"Script '{path}' does not exist"
            )
        return OperationResult.success(f"Script '{path}' removed")

    def create_resource(
        self,
        resource_path: str,
        resource_type: str,
        properties: Mapping[str, Any] | None = None,
    ) -> OperationResult:
        path = _validate_path(resource_path, "resource path")
        if path in self.resources:
            return OperationResult.fail(
                FailureKind.ALREADY_EXISTS, f"Resource '{path}' already exists"
            )
        converted = {
            _validate_label(key, "property name"): coerce_value(value)
            for key, value in (properties or {}).items()
        }
        self.folders.ensure(parent_path(path))
        self.resources[path] = Resource(
            path=path,
            type=_validate_label(resource_type, "resource type"),
            properties=converted,
        )
        return OperationResult.success(f"Resource '{path}' created")

    def remove_resource(self, resource_path: str) -> OperationResult:
        path = normalise_path(resource_path)
        if self.resources.pop(path, None) is None:
            return OperationResult.fail(
                FailureKind.NOT_FOUND, f"Resource '{path}' does not exist"
            )
        return OperationResult.success(f"Resource '{path}' removed")

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def add_asset(self, asset_path: str, asset_type: str, data: bytes) -> OperationResult:
        result = self.assets.add(asset_path, asset_type, data)
        if result:
            self.folders.register_file(asset_path)
        return result

    def remove_asset(self, asset_path: str) -> OperationResult:
        result = self.assets.remove(asset_path)
        if result:
            self.folders.unregister_file(asset_path)
        return result

    def get_asset(self, asset_path: str) -> Asset | None:
        return self.assets.get(asset_path)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> ValidationReport:
        """Scan the project for integrity problems.

        Every finding is a warning; the report never blocks an export.
        """

        warnings: list[str] = []
        for scene in self.scenes.values():
            warnings.extend(_scene_warnings(scene, self.scripts, self.scenes))

        for warning in warnings:
            logger.warning(warning)
        return ValidationReport(warnings=tuple(warnings))

    def iter_nodes(self, scene_path: str) -> Iterable[Node]:
        scene = self.get_scene(scene_path)
        if scene is None:
            return ()
        return tuple(scene.nodes.values())

    def _node_not_found(self, scene_path: str, node_id: str) -> OperationResult:
        return OperationResult.fail(
            FailureKind.NODE_NOT_FOUND,
            f"Node '{node_id}' does not exist in scene '{scene_path}'",
        )


def _scene_warnings(
    scene: Scene, scripts: Mapping[str, Script], scenes: Mapping[str, Scene]
) -> list[str]:
    warnings: list[str] = []
    if scene.root_node_id is None or scene.root_node_id not in scene.nodes:
        warnings.append(f"Scene {scene.path} has no root node.")

    parentless = [node.id for node in scene.nodes.values() if node.parent is None]
    if len(parentless) > 1:
        warnings.append(
            f"Scene {scene.path} has {len(parentless)} parentless nodes: "
            + ", ".join(parentless)
        )

    for node in scene.nodes.values():
        if node.parent is not None and node.parent not in scene.nodes:
            warnings.append(
                f"Node '{node.id}' in scene {scene.path} references missing parent "
                f"'{node.parent}'."
            )
        elif node.parent is not None and scene.node_path(node.id) is None:
            warnings.append(f"Node '{node.id}' in scene {scene.path} is part of a cycle.")
        if node.script is not None and node.script not in scripts:
            warnings.append(
                f"Node '{node.id}' in scene {scene.path} uses unknown script "
                f"'{node.script}'."
            )

    target = scene.metadata.transition_target
    if target is not None and not _scene_name_exists(target, scenes):
        warnings.append(f"Scene {scene.path} transitions to unknown scene '{target}'.")
    return warnings


def _scene_name_exists(name: str, scenes: Mapping[str, Scene]) -> bool:
    if name in scenes:
        return True
    return any(PurePosixPath(path).stem == name for path in scenes)


__all__ = [
    "DEFAULT_ENGINE_VERSION",
    "DEFAULT_PROJECT_NAME",
    "Node",
    "NodeLinkPolicy",
    "ProjectModel",
    "ASSETS_DIR",
    "CREDITS_SCENE",
    "RESERVED_CONFIG_SECTIONS",
    "RESOURCE_SCHEME",
    "Resource",
    "ResourceReference",
    "SCRIPTS_DIR",
    "SCRIPT_EXTENSIONS",
    "Scene",
    "SceneMetadata",
    "Script",
    "SignalConnection",
    "ValidationReport",
    "reserved_scene_reason",
    "script_location",
]

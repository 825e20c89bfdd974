"""Role-driven scene templates and the authoring façade over the project model."""

from __future__ import annotations

import logging
from typing import Any, Dict

from .errors import FailureKind, OperationResult
from .model import ProjectModel, Scene
from .projection import project_scene_record

logger = logging.getLogger(__name__)

ROOT_NODE = "Root"
DEFAULT_ROLE = "gameplay"

_ROLE_ROOT_TYPES = {
    "gameplay": "Node2D",
    "gameplay_3d": "Node3D",
    "menu": "Control",
    "ui": "Control",
    "cutscene": "Node",
}

_CAMERA_TYPES = {
    "Node2D": "Camera2D",
    "Node3D": "Camera3D",
}


def root_type_for_role(role: str) -> str:
    """Return the root node type for ``role``; unknown roles behave like ``gameplay``."""

    return _ROLE_ROOT_TYPES.get(role, _ROLE_ROOT_TYPES[DEFAULT_ROLE])


class SceneAuthor:
    """Author scenes by name and role on top of a :class:`ProjectModel`.

    Scenes created here are stored at ``<scene_dir>/<name>`` and seeded with a
    skeleton under a ``Root`` node: a camera matching the root's
    dimensionality, a ``UI`` canvas layer and bare ``Input`` and ``Game``
    anchors. Every call writes straight into the model.
    """

    def __init__(self, model: ProjectModel, *, scene_dir: str = "scenes") -> None:
        self.model = model
        self.scene_dir = scene_dir.strip("/")

    def scene_path(self, name: str) -> str:
        """Return the model path for the scene called ``name``."""

        if name in self.model.scenes:
            return name
        return f"{self.scene_dir}/{name}" if self.scene_dir else name

    def create_scene(self, name: str, role: str = DEFAULT_ROLE) -> OperationResult:
        if not isinstance(name, str) or not name.strip():
            return OperationResult.fail(
                FailureKind.VALIDATION_FAILED, "Scene name required"
            )

        path = self.scene_path(name.strip())
        result = self.model.create_scene(path)
        if not result:
            return OperationResult.fail(
                FailureKind.ALREADY_EXISTS, f"Scene '{name}' already exists"
            )

        scene = self.model.scenes[path]
        root_type = root_type_for_role(role)
        if role not in _ROLE_ROOT_TYPES:
            logger.warning("Unknown scene role '%s'; using '%s'.", role, DEFAULT_ROLE)
        scene.metadata.role = role
        scene.metadata.root_type = root_type
        self._bootstrap(scene, root_type)
        return OperationResult.success(f"Scene '{name}' created")

    def _bootstrap(self, scene: Scene, root_type: str) -> None:
        self._ensure_node(scene, ROOT_NODE, root_type, None)
        camera = _CAMERA_TYPES.get(root_type)
        if camera is not None:
            self._ensure_node(scene, camera, camera, ROOT_NODE)
        self._ensure_node(scene, "UI", "CanvasLayer", ROOT_NODE)
        self._ensure_node(scene, "Input", "Node", ROOT_NODE)
        self._ensure_node(scene, "Game", "Node", ROOT_NODE)

    def _ensure_node(
        self, scene: Scene, name: str, node_type: str, parent: str | None
    ) -> None:
        if name in scene.nodes:
            return
        self.model.create_node(scene.path, name, node_type, parent)

    def add_node(
        self, scene_name: str, name: str, node_type: str, parent: str = ROOT_NODE
    ) -> OperationResult:
        scene = self._scene(scene_name)
        if scene is None:
            return self._missing(scene_name)
        return self.model.create_node(scene.path, name, node_type, parent)

    def attach_script(
        self, scene_name: str, node_name: str, script: str
    ) -> OperationResult:
        """Attach ``script`` to a node; attaching the same script again is a no-op."""

        scene = self._scene(scene_name)
        if scene is None:
            return self._missing(scene_name)
        node = scene.nodes.get(node_name)
        if node is None:
            return OperationResult.fail(
                FailureKind.NODE_NOT_FOUND,
                f"Node '{node_name}' not found in scene",
            )
        if node.script == script:
            return OperationResult.success(
                f"Script '{script}' already attached to '{node_name}'"
            )
        return self.model.attach_script_to_node(scene.path, node_name, script)

    def set_description(self, scene_name: str, description: str) -> OperationResult:
        scene = self._scene(scene_name)
        if scene is None:
            return self._missing(scene_name)
        scene.metadata.description = description
        return OperationResult.success("Description set")

    def mark_as_entry_scene(self, scene_name: str) -> OperationResult:
        scene = self._scene(scene_name)
        if scene is None:
            return self._missing(scene_name)
        scene.metadata.entry_scene = True
        return OperationResult.success("Scene marked as entry scene")

    def set_transition_target(
        self, scene_name: str, target_scene: str | None
    ) -> OperationResult:
        """Record the scene to move to next; the target is not checked here."""

        scene = self._scene(scene_name)
        if scene is None:
            return self._missing(scene_name)
        scene.metadata.transition_target = target_scene
        return OperationResult.success(f"Transition set to '{target_scene}'")

    def to_graph_format(self, scene_name: str) -> Dict[str, Any] | None:
        """Return ``{nodes, metadata, role, rootType}`` for export, or ``None``."""

        scene = self._scene(scene_name)
        if scene is None:
            return None
        projection = project_scene_record(scene)
        return {
            "nodes": {name: node.to_dict() for name, node in projection.nodes.items()},
            "metadata": {
                "description": scene.metadata.description,
                "entryScene": scene.metadata.entry_scene,
                "transitionTarget": scene.metadata.transition_target,
            },
            "role": scene.metadata.role,
            "rootType": projection.root_type,
        }

    def list_scenes(self) -> list[str]:
        """Return the names of scenes created through an author."""

        prefix = f"{self.scene_dir}/" if self.scene_dir else ""
        return [
            path[len(prefix):] if path.startswith(prefix) else path
            for path, scene in self.model.scenes.items()
            if scene.metadata.role is not None
        ]

    def _scene(self, scene_name: str) -> Scene | None:
        return self.model.get_scene(self.scene_path(scene_name))

    @staticmethod
    def _missing(scene_name: str) -> OperationResult:
        return OperationResult.fail(
            FailureKind.SCENE_NOT_FOUND, f"Scene '{scene_name}' not found"
        )


__all__ = ["DEFAULT_ROLE", "ROOT_NODE", "SceneAuthor", "root_type_for_role"]

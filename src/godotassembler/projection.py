"""Read-only, export-oriented projection of a scene's node graph."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping

from .errors import SceneNotFoundError
from .model import ProjectModel, Scene


@dataclass(frozen=True)
class ProjectedNode:
    """Type, placement and attached scripts of a node, without its properties."""

    type: str
    parent: str | None
    children: tuple[str, ...]
    scripts: tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "parent": self.parent,
            "children": list(self.children),
            "scripts": list(self.scripts),
        }


@dataclass(frozen=True)
class GraphProjection:
    """Flat node → type/parent/children/scripts view of one scene."""

    scene_path: str
    root: str | None
    role: str | None
    root_type: str | None
    nodes: Mapping[str, ProjectedNode]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene": self.scene_path,
            "root": self.root,
            "role": self.role,
            "rootType": self.root_type,
            "nodes": {name: node.to_dict() for name, node in self.nodes.items()},
        }


def _dedupe(values: tuple[str | None, ...]) -> tuple[str, ...]:
    seen: list[str] = []
    for value in values:
        if value is not None and value not in seen:
            seen.append(value)
    return tuple(seen)


def project_scene_record(scene: Scene) -> GraphProjection:
    """Project an already resolved :class:`Scene`."""

    nodes = {
        node_id: ProjectedNode(
            type=node.type,
            parent=node.parent,
            children=tuple(node.children),
            scripts=_dedupe((node.script,)),
        )
        for node_id, node in scene.nodes.items()
    }
    root_type = scene.metadata.root_type
    if root_type is None and scene.root is not None:
        root_type = scene.root.type
    return GraphProjection(
        scene_path=scene.path,
        root=scene.root_node_id,
        role=scene.metadata.role,
        root_type=root_type,
        nodes=MappingProxyType(nodes),
    )


def project_scene(model: ProjectModel, scene_path: str) -> GraphProjection:
    """Return the projection of ``scene_path``.

    Raises:
        SceneNotFoundError: If the model has no such scene.
    """

    scene = model.get_scene(scene_path)
    if scene is None:
        raise SceneNotFoundError(scene_path)
    return project_scene_record(scene)


def project_all(model: ProjectModel) -> Dict[str, GraphProjection]:
    return {path: project_scene_record(scene) for path, scene in model.scenes.items()}


__all__ = [
    "GraphProjection",
    "ProjectedNode",
    "project_all",
    "project_scene",
    "project_scene_record",
]

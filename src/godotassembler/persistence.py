"""JSON persistence of project models."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from .model import (
    DEFAULT_ENGINE_VERSION,
    Node,
    ProjectModel,
    Resource,
    ResourceReference,
    Scene,
    SceneMetadata,
    Script,
    SignalConnection,
    reserved_scene_reason,
)
from .values import from_tagged, to_tagged

DOCUMENT_VERSION = 1


class NodeDocument(BaseModel):
    id: str
    type: str
    parent: str | None = None
    children: List[str] = Field(default_factory=list)
    properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    script: str | None = None

    @field_validator("properties")
    @classmethod
    def _check_properties(cls, value: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        for tagged in value.values():
            from_tagged(tagged)
        return value


class ConnectionDocument(BaseModel):
    signal: str
    from_node: str
    to_node: str
    method: str


class ResourceReferenceDocument(BaseModel):
    path: str
    type: str
    id: str


class SceneMetadataDocument(BaseModel):
    role: str | None = None
    root_type: str | None = None
    description: str = ""
    entry_scene: bool = False
    transition_target: str | None = None


class SceneDocument(BaseModel):
    path: str
    root: str | None = None
    nodes: List[NodeDocument] = Field(default_factory=list)
    connections: List[ConnectionDocument] = Field(default_factory=list)
    resources: List[ResourceReferenceDocument] = Field(default_factory=list)
    metadata: SceneMetadataDocument = Field(default_factory=SceneMetadataDocument)


class ScriptDocument(BaseModel):
    path: str
    language: str = "gdscript"
    source: str = ""


class ResourceDocument(BaseModel):
    path: str
    type: str
    properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class AssetDocument(BaseModel):
    path: str
    type: str
    data: str

    @field_validator("data")
    @classmethod
    def _check_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Asset data must be base64 encoded.") from exc
        return value

    def payload(self) -> bytes:
        return base64.b64decode(self.data)


class ProjectDocument(BaseModel):
    """Validated JSON shape of a whole project."""

    version: int = DOCUMENT_VERSION
    name: str
    engine_version: str = DEFAULT_ENGINE_VERSION
    strict_mode: bool = False
    config: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    folders: List[str] = Field(default_factory=list)
    scenes: List[SceneDocument] = Field(default_factory=list)
    scripts: List[ScriptDocument] = Field(default_factory=list)
    resources: List[ResourceDocument] = Field(default_factory=list)
    assets: List[AssetDocument] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Project name must be a non-empty string.")
        return stripped


def _scene_document(scene: Scene) -> SceneDocument:
    return SceneDocument(
        path=scene.path,
        root=scene.root_node_id,
        nodes=[
            NodeDocument(
                id=node.id,
                type=node.type,
                parent=node.parent,
                children=list(node.children),
                properties={key: to_tagged(value) for key, value in node.properties.items()},
                script=node.script,
            )
            for node in scene.nodes.values()
        ],
        connections=[
            ConnectionDocument(
                signal=connection.signal,
                from_node=connection.from_node,
                to_node=connection.to_node,
                method=connection.method,
            )
            for connection in scene.connections
        ],
        resources=[
            ResourceReferenceDocument(path=ref.path, type=ref.type, id=ref.id)
            for ref in scene.resources
        ],
        metadata=SceneMetadataDocument(
            role=scene.metadata.role,
            root_type=scene.metadata.root_type,
            description=scene.metadata.description,
            entry_scene=scene.metadata.entry_scene,
            transition_target=scene.metadata.transition_target,
        ),
    )


def _scene_from_document(document: SceneDocument) -> Scene:
    return Scene(
        path=document.path,
        nodes={
            node.id: Node(
                id=node.id,
                type=node.type,
                parent=node.parent,
                children=list(node.children),
                properties={
                    key: from_tagged(tagged) for key, tagged in node.properties.items()
                },
                script=node.script,
            )
            for node in document.nodes
        },
        root_node_id=document.root,
        connections=[
            SignalConnection(
                signal=item.signal,
                from_node=item.from_node,
                to_node=item.to_node,
                method=item.method,
            )
            for item in document.connections
        ],
        resources=[
            ResourceReference(path=item.path, type=item.type, id=item.id)
            for item in document.resources
        ],
        metadata=SceneMetadata(**document.metadata.model_dump()),
    )


@dataclass
class ProjectSnapshot:
    """A validated, serialisable copy of a project model."""

    document: ProjectDocument

    @classmethod
    def capture(cls, model: ProjectModel) -> "ProjectSnapshot":
        """Create a snapshot from the provided model."""

        document = ProjectDocument(
            name=model.name,
            engine_version=model.engine_version,
            strict_mode=model.strict_mode,
            config=json.loads(json.dumps(model.config)),
            folders=model.folders.paths(),
            scenes=[_scene_document(scene) for scene in model.scenes.values()],
            scripts=[
                ScriptDocument(path=script.path, language=script.language, source=script.source)
                for script in model.scripts.values()
            ],
            resources=[
                ResourceDocument(
                    path=resource.path,
                    type=resource.type,
                    properties={
                        key: to_tagged(value) for key, value in resource.properties.items()
                    },
                )
                for resource in model.resources.values()
            ],
            assets=[
                AssetDocument(
                    path=asset.path,
                    type=asset.type,
                    data=base64.b64encode(asset.data).decode("ascii"),
                )
                for asset in model.assets
            ],
        )
        return cls(document=document)

    def to_payload(self) -> Dict[str, Any]:
        """Return a JSON-serialisable representation of the snapshot."""

        return self.document.model_dump(mode="json")

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ProjectSnapshot":
        """Build a snapshot from the stored payload representation.

        Raises:
            ValueError: If the payload does not describe a valid project.
        """

        try:
            document = ProjectDocument.model_validate(payload)
        except ValidationError as exc:
            raise ValueError(f"Invalid project payload: {exc}") from exc
        return cls(document=document)

    def restore(self) -> ProjectModel:
        """Build a new :class:`ProjectModel` matching this snapshot.

        Raises:
            ValueError: If a scene sits on a reserved path or an asset payload
                is rejected by the asset registry.
        """

        document = self.document
        model = ProjectModel(
            document.name,
            engine_version=document.engine_version,
            strict_mode=document.strict_mode,
        )
        for section, entries in document.config.items():
            model.config.setdefault(section, {}).update(entries)
        model.set_project_name(document.name)

        for folder in document.folders:
            model.ensure_folder(folder)
        for scene_document in document.scenes:
            reason = reserved_scene_reason(scene_document.path)
            if reason is not None:
                raise ValueError(f"Invalid project payload: {reason}")
            scene = _scene_from_document(scene_document)
            model.scenes[scene.path] = scene
        for script in document.scripts:
            model.scripts[script.path] = Script(
                path=script.path, language=script.language, source=script.source
            )
        for resource in document.resources:
            model.resources[resource.path] = Resource(
                path=resource.path,
                type=resource.type,
                properties={key: from_tagged(tagged) for key, tagged in resource.properties.items()},
            )
        for asset in document.assets:
            result = model.add_asset(asset.path, asset.type, asset.payload())
            if not result:
                raise ValueError(f"Invalid project payload: {result.message}")
        return model


def load_document(path: Path) -> ProjectModel:
    """Read a JSON project document from ``path`` and restore it."""

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return ProjectSnapshot.from_payload(payload).restore()


def write_document(model: ProjectModel, path: Path) -> None:
    Path(path).write_text(
        json.dumps(ProjectSnapshot.capture(model).to_payload(), indent=2, ensure_ascii=False)
        + "\n",
        encoding="utf-8",
    )


__all__ = [
    "AssetDocument",
    "NodeDocument",
    "ProjectDocument",
    "ProjectSnapshot",
    "ResourceDocument",
    "SceneDocument",
    "ScriptDocument",
    "load_document",
    "write_document",
]

"""Render project scenes and configuration in Godot's text formats."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Mapping

from .errors import SceneNotFoundError
from .model import RESOURCE_SCHEME, Node, ProjectModel, Scene, Script, script_location
from .projection import GraphProjection
from .values import (
    BoolValue,
    ColorValue,
    MapValue,
    NullValue,
    NumberValue,
    SequenceValue,
    StringValue,
    Value,
    Vector2Value,
    Vector3Value,
    coerce_value,
)

logger = logging.getLogger(__name__)

SCENE_HEADER = "[gd_scene load_steps=1 format=3]"
CONFIG_VERSION = 5
CREDITS_NODE = "Credits"
DEFAULT_CREDITS_TEXT = "Made with Godot Assembler"

_STRING_ESCAPES = (("\\", "\\\\"), ('"', '\\"'), ("\n", "\\n"), ("\t", "\\t"))


def quote_string(text: str) -> str:
    """Return ``text`` as a double-quoted, escaped literal."""

    for raw, escaped in _STRING_ESCAPES:
        text = text.replace(raw, escaped)
    return f'"{text}"'


def format_number(number: int | float) -> str:
    """Render a number the way the scene format expects.

    Floats always keep a fractional part or exponent (``2.0``, ``1e+21``) so
    they read back as floats.
    """

    if isinstance(number, bool):
        raise TypeError("booleans are not numbers in the scene format")
    if isinstance(number, int):
        return str(number)
    if math.isnan(number):
        return "nan"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    return repr(float(number))


def encode_value(value: Value) -> str:
    """Encode a property value as scene-format text."""

    if isinstance(value, NullValue):
        return "null"
    if isinstance(value, StringValue):
        return quote_string(value.value)
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    if isinstance(value, NumberValue):
        return format_number(value.value)
    if isinstance(value, SequenceValue):
        return "[" + ", ".join(encode_value(item) for item in value.items) + "]"
    if isinstance(value, MapValue):
        if not value.entries:
            return "{}"
        entries = ", ".join(
            f"{quote_string(key)}: {encode_value(item)}" for key, item in value.entries
        )
        return "{ " + entries + " }"
    if isinstance(value, Vector2Value):
        return f"Vector2({_components(value.x, value.y)})"
    if isinstance(value, Vector3Value):
        return f"Vector3({_components(value.x, value.y, value.z)})"
    if isinstance(value, ColorValue):
        return f"Color({_components(value.r, value.g, value.b, value.a)})"
    raise TypeError(f"Cannot encode value of type {type(value)!r}")


def _component(number: float) -> str:
    # constructor arguments are floats in Godot, so 10.0 is written as 10
    if isinstance(number, float) and number.is_integer() and abs(number) < 1e16:
        return str(int(number))
    return format_number(number)


def _components(*numbers: float) -> str:
    return ", ".join(_component(number) for number in numbers)


def _node_header(name: str, node_type: str, parent: str | None) -> str:
    parts = [f"[node name={quote_string(name)}", f"type={quote_string(node_type)}"]
    if parent is not None:
        parts.append(f"parent={quote_string(parent)}")
    return " ".join(parts) + "]"


def script_reference(script_path: str, extension: str = ".gd") -> str:
    """Return the ``script = ExtResource(...)`` line pointing at the exported script."""

    location = f"{RESOURCE_SCHEME}{script_location(script_path, extension)}"
    return f"script = ExtResource({quote_string(location)})"


class SceneSerializer:
    """Convert scenes of a :class:`ProjectModel` into ``.tscn`` text."""

    def __init__(self, model: ProjectModel) -> None:
        self.model = model

    def serialize_scene(self, scene_path: str) -> str:
        """Return the scene text for ``scene_path``.

        Nodes are written depth first starting at the root, children in their
        stored order. Child ids that do not resolve to a node are skipped.

        Raises:
            SceneNotFoundError: If the scene does not exist.
        """

        scene = self.model.get_scene(scene_path)
        if scene is None:
            raise SceneNotFoundError(scene_path)
        return serialize_scene_record(scene, self.model.scripts)

    def serialize_all(self) -> dict[str, str]:
        return {
            path: serialize_scene_record(scene, self.model.scripts)
            for path, scene in self.model.scenes.items()
        }


def serialize_scene_record(scene: Scene, scripts: Mapping[str, Script] | None = None) -> str:
    lines: List[str] = [SCENE_HEADER, ""]
    if scene.root_node_id is None:
        logger.warning("Scene %s has no root node; writing header only.", scene.path)
    else:
        _write_node(scene, scene.root_node_id, None, lines, set(), scripts or {})
    for connection in scene.connections:
        source = scene.node_path(connection.from_node)
        target = scene.node_path(connection.to_node)
        if source is None or target is None:
            continue
        lines.append(
            f"[connection signal={quote_string(connection.signal)} "
            f"from={quote_string(source)} to={quote_string(target)} "
            f"method={quote_string(connection.method)}]"
        )
        lines.append("")
    return "\n".join(lines)


def _write_node(
    scene: Scene,
    node_id: str,
    parent_path: str | None,
    lines: List[str],
    visited: set[str],
    scripts: Mapping[str, Script],
) -> None:
    node: Node | None = scene.nodes.get(node_id)
    if node is None:
        logger.debug("Skipping dangling node id %s in scene %s", node_id, scene.path)
        return
    if node_id in visited:
        logger.warning("Cycle at node %s in scene %s; skipping.", node_id, scene.path)
        return
    visited.add(node_id)

    lines.append(_node_header(node.id, node.type, parent_path))
    for name, value in node.properties.items():
        lines.append(f"{name} = {encode_value(value)}")
    if node.script:
        script = scripts.get(node.script)
        lines.append(script_reference(node.script, script.extension if script else ".gd"))
    lines.append("")

    node_path = f"{parent_path}/{node.id}" if parent_path else node.id
    for child_id in node.children:
        _write_node(scene, child_id, node_path, lines, visited, scripts)


def serialize_projection(projection: GraphProjection) -> str:
    """Render a :class:`GraphProjection` with the scene grammar (no properties)."""

    lines: List[str] = [SCENE_HEADER, ""]
    visited: set[str] = set()

    def write(node_id: str, parent_path: str | None) -> None:
        node = projection.nodes.get(node_id)
        if node is None or node_id in visited:
            return
        visited.add(node_id)
        lines.append(_node_header(node_id, node.type, parent_path))
        if node.scripts:
            lines.append(script_reference(node.scripts[0]))
        lines.append("")
        node_path = f"{parent_path}/{node_id}" if parent_path else node_id
        for child_id in node.children:
            write(child_id, node_path)

    if projection.root is not None:
        write(projection.root, None)
    return "\n".join(lines)


def render_credits_scene(text: str = DEFAULT_CREDITS_TEXT) -> str:
    """Return the fixed credits scene appended to every export."""

    lines = [
        SCENE_HEADER,
        "",
        _node_header(CREDITS_NODE, "Label", None),
        f"text = {quote_string(text)}",
        "",
    ]
    return "\n".join(lines)


def _config_key(section: str, key: str) -> str:
    if section == "application" and "/" not in key:
        return f"config/{key}"
    return key


def _config_sections(config: Mapping[str, Mapping[str, Any]]) -> Iterable[str]:
    for section, entries in config.items():
        if entries:
            yield section


def render_project_config(model: ProjectModel) -> str:
    """Render ``project.godot`` for ``model``.

    Empty sections are omitted. Input actions are written as dictionaries
    holding their ``events`` list.
    """

    lines: List[str] = [
        "; Engine configuration file.",
        f"config_version={CONFIG_VERSION}",
        "",
    ]
    for section in _config_sections(model.config):
        lines.append(f"[{section}]")
        lines.append("")
        for key, raw in model.config[section].items():
            if section == "input":
                raw = {"deadzone": 0.5, "events": list(raw)}
            lines.append(f"{_config_key(section, key)}={encode_value(coerce_value(raw))}")
        lines.append("")
    return "\n".join(lines)


__all__ = [
    "CREDITS_NODE",
    "DEFAULT_CREDITS_TEXT",
    "SCENE_HEADER",
    "SceneSerializer",
    "encode_value",
    "format_number",
    "quote_string",
    "render_credits_scene",
    "render_project_config",
    "script_reference",
    "serialize_projection",
    "serialize_scene_record",
]

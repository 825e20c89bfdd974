"""Parse ``.tscn`` scene text back into typed nodes.

The parser understands the subset written by
:mod:`godotassembler.serializer` (header, node blocks, property assignments,
script references and signal connections) and tolerates the extra section
kinds Godot itself writes (``ext_resource``, ``sub_resource``, ``editable``),
which are skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from .errors import FailureKind, OperationResult, SceneParseError
from .model import RESOURCE_SCHEME, ProjectModel
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
)

logger = logging.getLogger(__name__)

_SECTION_PATTERN = re.compile(r"^\[(?P<kind>[a-z_]+)(?P<attrs>.*)\]$")
_ATTRIBUTE_PATTERN = re.compile(r'\s*(?P<key>[A-Za-z_][\w]*)=(?P<value>"(?:[^"\\]|\\.)*"|[^\s\]]+)')
_PROPERTY_PATTERN = re.compile(r"^(?P<key>[^\s=\[;][^\s=]*)\s*=\s*(?P<value>.*)$")
_NUMBER_PATTERN = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_UNESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\", "r": "\r"}
_SKIPPED_SECTIONS = {"ext_resource", "sub_resource", "editable", "resource"}


@dataclass(frozen=True)
class ExtResourceRef:
    """An ``ExtResource("...")`` reference found in a property value."""

    reference: str


@dataclass
class ParsedNode:
    name: str
    type: str | None
    parent: str | None
    line: int
    properties: Dict[str, Value] = field(default_factory=dict)
    script: str | None = None


@dataclass(frozen=True)
class ParsedConnection:
    signal: str
    from_path: str
    to_path: str
    method: str


@dataclass
class ParsedScene:
    header: Dict[str, str]
    nodes: List[ParsedNode] = field(default_factory=list)
    connections: List[ParsedConnection] = field(default_factory=list)

    @property
    def root(self) -> ParsedNode | None:
        for node in self.nodes:
            if node.parent is None:
                return node
        return None


class _ValueReader:
    """Recursive-descent reader for a single property value."""

    def __init__(self, text: str, line: int) -> None:
        self.text = text
        self.pos = 0
        self.line = line

    def error(self, message: str) -> SceneParseError:
        return SceneParseError(f"{message} at column {self.pos + 1}", line=self.line)

    def skip_space(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        self.skip_space()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, char: str) -> None:
        if self.peek() != char:
            raise self.error(f"expected '{char}'")
        self.pos += 1

    def read_document(self) -> Value | ExtResourceRef:
        value = self.read()
        self.skip_space()
        if self.pos != len(self.text):
            raise self.error("unexpected trailing characters")
        return value

    def read(self) -> Value | ExtResourceRef:
        char = self.peek()
        if not char:
            raise self.error("missing value")
        if char == '"':
            return StringValue(self.read_string())
        if char == "[":
            return self.read_sequence()
        if char == "{":
            return self.read_map()
        if char == "-" or char == "." or char.isdigit():
            return self.read_number()
        return self.read_word()

    def read_string(self) -> str:
        self.expect('"')
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            self.pos += 1
            if char == '"':
                return "".join(chars)
            if char == "\\":
                if self.pos >= len(self.text):
                    break
                escaped = self.text[self.pos]
                self.pos += 1
                chars.append(_UNESCAPES.get(escaped, escaped))
            else:
                chars.append(char)
        raise self.error("unterminated string")

    def read_number(self) -> Value:
        if self.text.startswith("-inf", self.pos):
            self.pos += 4
            return NumberValue(float("-inf"))
        match = _NUMBER_PATTERN.match(self.text, self.pos)
        if match is None:
            raise self.error("invalid number")
        self.pos = match.end()
        literal = match.group(0)
        if any(marker in literal for marker in ".eE"):
            return NumberValue(float(literal))
        return NumberValue(int(literal))

    def read_sequence(self) -> Value:
        self.expect("[")
        items: list[Value] = []
        if self.peek() == "]":
            self.pos += 1
            return SequenceValue(())
        while True:
            items.append(self._plain(self.read()))
            if self.peek() == ",":
                self.pos += 1
                if self.peek() == "]":
                    self.pos += 1
                    break
                continue
            self.expect("]")
            break
        return SequenceValue(tuple(items))

    def read_map(self) -> Value:
        self.expect("{")
        entries: list[tuple[str, Value]] = []
        if self.peek() == "}":
            self.pos += 1
            return MapValue(())
        while True:
            if self.peek() != '"':
                raise self.error("dictionary keys must be strings")
            key = self.read_string()
            self.expect(":")
            entries.append((key, self._plain(self.read())))
            if self.peek() == ",":
                self.pos += 1
                if self.peek() == "}":
                    self.pos += 1
                    break
                continue
            self.expect("}")
            break
        return MapValue(tuple(entries))

    def read_word(self) -> Value | ExtResourceRef:
        self.skip_space()
        match = _IDENTIFIER_PATTERN.match(self.text, self.pos)
        if match is None:
            raise self.error("unexpected character")
        word = match.group(0)
        self.pos = match.end()

        if word == "true":
            return BoolValue(True)
        if word == "false":
            return BoolValue(False)
        if word == "null":
            return NullValue()
        if word == "nan":
            return NumberValue(float("nan"))
        if word == "inf":
            return NumberValue(float("inf"))

        if self.peek() != "(":
            raise self.error(f"unknown literal '{word}'")
        self.pos += 1
        if word == "ExtResource":
            reference = self.read_string() if self.peek() == '"' else str(self._number_arg())
            self.expect(")")
            return ExtResourceRef(reference)

        arguments = self.read_numbers()
        if word == "Vector2" and len(arguments) == 2:
            return Vector2Value(*arguments)
        if word == "Vector3" and len(arguments) == 3:
            return Vector3Value(*arguments)
        if word == "Color" and len(arguments) in (3, 4):
            return ColorValue(*arguments)
        raise self.error(f"unsupported constructor {word} with {len(arguments)} argument(s)")

    def read_numbers(self) -> list[int | float]:
        numbers: list[int | float] = []
        if self.peek() == ")":
            self.pos += 1
            return numbers
        while True:
            numbers.append(self._number_arg())
            if self.peek() == ",":
                self.pos += 1
                continue
            self.expect(")")
            return numbers

    def _number_arg(self) -> int | float:
        value = self.read()
        if not isinstance(value, NumberValue):
            raise self.error("constructor arguments must be numbers")
        return value.value

    def _plain(self, value: Value | ExtResourceRef) -> Value:
        if isinstance(value, ExtResourceRef):
            raise self.error("resource references cannot be nested in collections")
        return value


def parse_value(text: str, *, line: int = 1) -> Value | ExtResourceRef:
    """Parse a single encoded value such as ``Vector2(10, 20)``."""

    return _ValueReader(text, line).read_document()


def _parse_attributes(text: str, line: int) -> Dict[str, str]:
    attributes: Dict[str, str] = {}
    position = 0
    text = text.rstrip()
    while position < len(text):
        match = _ATTRIBUTE_PATTERN.match(text, position)
        if match is None:
            if text[position:].strip():
                raise SceneParseError(f"malformed section attributes '{text}'", line=line)
            break
        raw = match.group("value")
        if raw.startswith('"'):
            attributes[match.group("key")] = _ValueReader(raw, line).read_string()
        else:
            attributes[match.group("key")] = raw
        position = match.end()
    return attributes


def is_balanced(text: str) -> bool:
    """Return whether ``text`` closes every bracket and string it opens."""

    depth = 0
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "[{(":
            depth += 1
        elif char in "]})":
            depth -= 1
    return depth <= 0 and not in_string


def parse_scene(text: str) -> ParsedScene:
    """Parse scene text produced by the serializer (or by Godot).

    Raises:
        SceneParseError: If the header is missing, a line cannot be
            interpreted, or a property appears outside of a node block.
    """

    lines = text.splitlines()
    scene: ParsedScene | None = None
    current: ParsedNode | None = None
    in_skipped_section = False
    index = 0

    while index < len(lines):
        line_number = index + 1
        line = lines[index].strip()
        index += 1
        if not line or line.startswith(";"):
            continue

        section = _SECTION_PATTERN.match(line)
        if section is not None:
            kind = section.group("kind")
            attributes = _parse_attributes(section.group("attrs"), line_number)
            current = None
            in_skipped_section = False
            if kind == "gd_scene":
                if scene is not None:
                    raise SceneParseError("duplicate scene header", line=line_number)
                scene = ParsedScene(header=attributes)
                continue
            if scene is None:
                raise SceneParseError("missing [gd_scene] header", line=line_number)
            if kind == "node":
                if "name" not in attributes:
                    raise SceneParseError("node section without a name", line=line_number)
                current = ParsedNode(
                    name=attributes["name"],
                    type=attributes.get("type"),
                    parent=attributes.get("parent"),
                    line=line_number,
                )
                scene.nodes.append(current)
            elif kind == "connection":
                try:
                    scene.connections.append(
                        ParsedConnection(
                            signal=attributes["signal"],
                            from_path=attributes["from"],
                            to_path=attributes["to"],
                            method=attributes["method"],
                        )
                    )
                except KeyError as exc:
                    raise SceneParseError(
                        f"connection missing attribute {exc.args[0]!r}", line=line_number
                    ) from exc
            elif kind in _SKIPPED_SECTIONS:
                in_skipped_section = True
            else:
                raise SceneParseError(f"unknown section [{kind}]", line=line_number)
            continue

        if scene is None:
            raise SceneParseError("missing [gd_scene] header", line=line_number)

        prop = _PROPERTY_PATTERN.match(line)
        if prop is None:
            raise SceneParseError(f"cannot parse line '{line}'", line=line_number)
        raw_value = prop.group("value")
        while not is_balanced(raw_value) and index < len(lines):
            raw_value += "\n" + lines[index]
            index += 1

        if in_skipped_section:
            continue
        if current is None:
            raise SceneParseError("property outside of a node block", line=line_number)

        key = prop.group("key")
        value = parse_value(raw_value, line=line_number)
        if isinstance(value, ExtResourceRef):
            if key == "script":
                current.script = value.reference
            else:
                logger.warning(
                    "Dropping external resource property '%s' on node %s (line %d).",
                    key,
                    current.name,
                    line_number,
                )
            continue
        current.properties[key] = value

    if scene is None:
        raise SceneParseError("missing [gd_scene] header", line=1)
    return scene


def _resolve_parent(path: str, root_name: str | None, paths: Mapping[str, str]) -> str | None:
    if path == ".":
        return paths.get(root_name) if root_name is not None else None
    if path in paths:
        return paths[path]
    if root_name is not None:
        return paths.get(f"{root_name}/{path}")
    return None


def load_parsed_scene(
    model: ProjectModel, scene_path: str, parsed: ParsedScene
) -> OperationResult:
    """Recreate ``parsed`` inside ``model`` at ``scene_path``.

    Parent paths are resolved both in the ``Root/A`` form written by the
    serializer and in Godot's root-relative form (``.`` and ``A``). When a node
    cannot be created the half-built scene is removed again.
    """

    created = model.create_scene(scene_path)
    if not created:
        return created

    paths: Dict[str, str] = {}
    root = parsed.root
    root_name = root.name if root is not None else None

    for node in parsed.nodes:
        if node.parent is None:
            parent_id = None
            node_path = node.name
        else:
            parent_id = _resolve_parent(node.parent, root_name, paths)
            if parent_id is None:
                parent_id = node.parent.rsplit("/", 1)[-1]
                node_path = f"{node.parent}/{node.name}"
            else:
                node_path = _path_of(paths, parent_id) + "/" + node.name

        result = model.create_node(scene_path, node.name, node.type or "Node", parent_id)
        if not result:
            model.remove_scene(scene_path)
            return OperationResult.fail(
                result.failure or FailureKind.VALIDATION_FAILED,
                f"line {node.line}: {result.message}",
            )
        paths[node_path] = node.name
        for key, value in node.properties.items():
            model.set_node_property(scene_path, node.name, key, value)
        if node.script is not None:
            model.attach_script_to_node(scene_path, node.name, _script_path(node.script))

    for connection in parsed.connections:
        source = _resolve_parent(connection.from_path, root_name, paths)
        target = _resolve_parent(connection.to_path, root_name, paths)
        if source is None or target is None:
            logger.warning(
                "Skipping connection %s from %s to %s in %s: unresolved node path.",
                connection.signal,
                connection.from_path,
                connection.to_path,
                scene_path,
            )
            continue
        model.connect_signal(scene_path, connection.signal, source, target, connection.method)

    return OperationResult.success(f"Scene '{scene_path}' loaded")


def _path_of(paths: Mapping[str, str], node_id: str) -> str:
    for path, identifier in paths.items():
        if identifier == node_id:
            return path
    return node_id


def _script_path(reference: str) -> str:
    if reference.startswith(RESOURCE_SCHEME):
        return reference[len(RESOURCE_SCHEME):]
    return reference


__all__ = [
    "ExtResourceRef",
    "ParsedConnection",
    "ParsedNode",
    "ParsedScene",
    "is_balanced",
    "load_parsed_scene",
    "parse_scene",
    "parse_value",
]

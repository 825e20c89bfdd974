from __future__ import annotations

import math

import pytest

from godotassembler import ProjectModel, SceneAuthor
from godotassembler.errors import FailureKind, SceneParseError
from godotassembler.scene_parser import (
    ExtResourceRef,
    load_parsed_scene,
    parse_scene,
    parse_value,
)
from godotassembler.serializer import SceneSerializer, encode_value
from godotassembler.values import (
    BoolValue,
    ColorValue,
    MapValue,
    NullValue,
    NumberValue,
    SequenceValue,
    StringValue,
    Vector2Value,
    Vector3Value,
)

GODOT_SCENE = """[gd_scene load_steps=3 format=3 uid="uid://abc"]

[ext_resource type="Script" path="res://player.gd" id="1_a"]

[sub_resource type="RectangleShape2D" id="RectangleShape2D_1"]
size = Vector2(32, 32)

[node name="Main" type="Node2D"]

[node name="Player" type="CharacterBody2D" parent="."]
position = Vector2(100, 50)
script = ExtResource("1_a")

[node name="Shape" type="CollisionShape2D" parent="Player"]
metadata = {
"hp": 3,
"tags": ["a", "b"]
}

[connection signal="ready" from="Player" to="." method="_on_player_ready"]
"""


@pytest.mark.parametrize(
    "value",
    [
        NullValue(),
        BoolValue(False),
        NumberValue(42),
        NumberValue(-0.5),
        StringValue('quote " backslash \\ newline \n tab \t'),
        SequenceValue((NumberValue(1), SequenceValue((StringValue("x"),)))),
        MapValue(()),
        MapValue((("a", NumberValue(1)), ("b", Vector2Value(1, 2)))),
        Vector2Value(10, 20),
        Vector3Value(1.5, -2, 3),
        ColorValue(0.1, 0.2, 0.3, 0.4),
    ],
)
def test_parse_value_inverts_encode_value(value: object) -> None:
    assert parse_value(encode_value(value)) == value  # type: ignore[arg-type]


def test_parse_value_special_numbers() -> None:
    assert math.isinf(parse_value("inf").value)  # type: ignore[union-attr]
    assert parse_value("-inf").value == float("-inf")  # type: ignore[union-attr]
    assert math.isnan(parse_value("nan").value)  # type: ignore[union-attr]
    assert parse_value("1e3") == NumberValue(1000.0)


def test_parse_value_colour_with_three_components() -> None:
    assert parse_value("Color(1, 0, 0)") == ColorValue(1, 0, 0)


def test_parse_value_ext_resource() -> None:
    assert parse_value('ExtResource("scripts/a.gd")') == ExtResourceRef("scripts/a.gd")
    assert parse_value("ExtResource(2)") == ExtResourceRef("2")


@pytest.mark.parametrize(
    "text",
    ['"unterminated', "[1, 2", "Vector2(1)", "Vector2(1, 2) extra", "mystery", "{1: 2}", ""],
)
def test_parse_value_rejects_malformed_text(text: str) -> None:
    with pytest.raises(SceneParseError):
        parse_value(text, line=7)


def test_parse_error_carries_line_number() -> None:
    with pytest.raises(SceneParseError) as excinfo:
        parse_value("[1, 2", line=7)

    assert excinfo.value.line == 7
    assert str(excinfo.value).startswith("line 7:")


def test_parse_serializer_output(sprite_model: ProjectModel) -> None:
    text = SceneSerializer(sprite_model).serialize_scene("main")

    parsed = parse_scene(text)

    assert parsed.header == {"load_steps": "1", "format": "3"}
    assert [(node.name, node.type, node.parent) for node in parsed.nodes] == [
        ("Root", "Node2D", None),
        ("Sprite2D", "Sprite2D", "Root"),
    ]
    sprite = parsed.nodes[1]
    assert sprite.properties == {"position": Vector2Value(10, 20)}
    assert sprite.script == "res://scripts/player.gd"
    assert parsed.root is parsed.nodes[0]


def test_parse_godot_written_scene() -> None:
    parsed = parse_scene(GODOT_SCENE)

    assert [node.name for node in parsed.nodes] == ["Main", "Player", "Shape"]
    assert parsed.nodes[1].script == "1_a"
    assert parsed.nodes[2].properties["metadata"] == MapValue(
        (
            ("hp", NumberValue(3)),
            ("tags", SequenceValue((StringValue("a"), StringValue("b")))),
        )
    )
    assert parsed.connections[0].from_path == "Player"
    assert parsed.connections[0].to_path == "."


@pytest.mark.parametrize(
    ("text", "line"),
    [
        ('[node name="Root" type="Node"]\n', 1),
        ("[gd_scene format=3]\nvisible = true\n", 2),
        ("[gd_scene format=3]\n[mystery]\n", 2),
        ("[gd_scene format=3]\n[node type=\"Node\"]\n", 2),
        ("[gd_scene format=3]\n[node name=\"A\"]\nthis is not a property\n", 3),
        ("[gd_scene format=3]\n[connection signal=\"a\" from=\".\"]\n", 2),
        ("[gd_scene format=3]\n[gd_scene format=3]\n", 2),
    ],
)
def test_parse_scene_errors_report_line(text: str, line: int) -> None:
    with pytest.raises(SceneParseError) as excinfo:
        parse_scene(text)

    assert excinfo.value.line == line


def test_empty_text_is_missing_header() -> None:
    with pytest.raises(SceneParseError, match="missing"):
        parse_scene("")


def test_load_parsed_scene_rebuilds_model_scene() -> None:
    source = ProjectModel("Demo")
    author = SceneAuthor(source)
    author.create_scene("level")
    author.add_node("level", "Player", "CharacterBody2D", "Game")
    source.set_node_property("scenes/level", "Player", "tint", {"r": 1, "g": 0, "b": 0, "a": 1})
    source.connect_signal("scenes/level", "ready", "Player", "Game", "_on_ready")
    text = SceneSerializer(source).serialize_scene("scenes/level")

    target = ProjectModel("Copy")
    result = load_parsed_scene(target, "scenes/level", parse_scene(text))

    assert result
    original = source.get_scene("scenes/level")
    rebuilt = target.get_scene("scenes/level")
    assert rebuilt.root_node_id == "Root"
    assert {node_id: node.parent for node_id, node in rebuilt.nodes.items()} == {
        node_id: node.parent for node_id, node in original.nodes.items()
    }
    assert rebuilt.nodes["Game"].children == ["Player"]
    assert rebuilt.nodes["Player"].properties["tint"] == ColorValue(1, 0, 0, 1)
    assert rebuilt.connections == original.connections
    assert SceneSerializer(target).serialize_scene("scenes/level") == text


def test_load_parsed_scene_resolves_godot_relative_parents() -> None:
    model = ProjectModel("Demo")

    assert load_parsed_scene(model, "main", parse_scene(GODOT_SCENE))

    scene = model.get_scene("main")
    assert scene.nodes["Player"].parent == "Main"
    assert scene.nodes["Shape"].parent == "Player"
    assert scene.nodes["Player"].script == "1_a"
    assert scene.connections[0].to_node == "Main"


def test_load_parsed_scene_rejects_existing_scene() -> None:
    model = ProjectModel("Demo")
    model.create_scene("main")

    result = load_parsed_scene(model, "main", parse_scene(GODOT_SCENE))

    assert result.failure is FailureKind.ALREADY_EXISTS
    assert model.get_scene("main").nodes == {}


def test_load_parsed_scene_removes_partial_scene_on_failure() -> None:
    model = ProjectModel("Demo", strict_mode=True)
    text = (
        "[gd_scene format=3]\n"
        '[node name="Root" type="Node"]\n'
        '[node name="Child" type="Node" parent="Missing"]\n'
    )

    result = load_parsed_scene(model, "main", parse_scene(text))

    assert result.failure is FailureKind.NOT_FOUND
    assert result.message.startswith("line 3:")
    assert model.get_scene("main") is None


@pytest.mark.parametrize("number", [2.0, -3.0, 1e21])
def test_integral_floats_read_back_as_floats(number: float) -> None:
    parsed = parse_value(encode_value(NumberValue(number)))

    assert isinstance(parsed, NumberValue)
    assert isinstance(parsed.value, float)
    assert parsed.value == number


def test_property_names_with_punctuation_round_trip() -> None:
    source = ProjectModel("Demo")
    source.create_scene("main")
    source.create_node("main", "Root", "Node")
    source.set_node_property("main", "Root", "metadata/my-key", 1)
    source.set_node_property("main", "Root", "theme_override_colors/font+color", "red")
    text = SceneSerializer(source).serialize_scene("main")

    parsed = parse_scene(text)
    target = ProjectModel("Copy")
    assert load_parsed_scene(target, "main", parsed)

    assert target.get_node("main", "Root").properties == {
        "metadata/my-key": NumberValue(1),
        "theme_override_colors/font+color": StringValue("red"),
    }


def test_load_parsed_scene_maps_resource_paths_to_script_paths() -> None:
    text = (
        "[gd_scene format=3]\n"
        '[node name="Root" type="Node"]\n'
        'script = ExtResource("res://scripts/player.gd")\n'
    )
    model = ProjectModel("Demo")

    assert load_parsed_scene(model, "main", parse_scene(text))

    assert model.get_node("main", "Root").script == "scripts/player.gd"

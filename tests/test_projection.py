import pytest

from godotassembler import ProjectModel, SceneAuthor
from godotassembler.errors import SceneNotFoundError
from godotassembler.projection import project_all, project_scene


def test_projection_reflects_model_without_copying_state() -> None:
    model = ProjectModel("Demo")
    author = SceneAuthor(model)
    author.create_scene("level")
    author.attach_script("level", "Game", "scripts/game.gd")

    projection = project_scene(model, "scenes/level")

    assert projection.root == "Root"
    assert projection.role == "gameplay"
    assert projection.root_type == "Node2D"
    assert projection.nodes["Game"].scripts == ("scripts/game.gd",)
    assert projection.nodes["Root"].parent is None

    author.add_node("level", "Enemy", "Area2D")

    assert "Enemy" not in projection.nodes
    assert "Enemy" in project_scene(model, "scenes/level").nodes


def test_projection_nodes_are_read_only() -> None:
    model = ProjectModel("Demo")
    model.create_scene("main")
    model.create_node("main", "Root", "Node")

    projection = project_scene(model, "main")

    with pytest.raises(TypeError):
        projection.nodes["Other"] = projection.nodes["Root"]  # type: ignore[index]


def test_projection_falls_back_to_root_node_type() -> None:
    model = ProjectModel("Demo")
    model.create_scene("main")
    model.create_node("main", "Root", "Control")

    assert project_scene(model, "main").root_type == "Control"


def test_projection_to_dict() -> None:
    model = ProjectModel("Demo")
    model.create_scene("main")
    model.create_node("main", "Root", "Node")
    model.create_node("main", "Child", "Label", "Root")

    payload = project_scene(model, "main").to_dict()

    assert payload == {
        "scene": "main",
        "root": "Root",
        "role": None,
        "rootType": "Node",
        "nodes": {
            "Root": {"type": "Node", "parent": None, "children": ["Child"], "scripts": []},
            "Child": {"type": "Label", "parent": "Root", "children": [], "scripts": []},
        },
    }


def test_project_scene_missing_raises() -> None:
    with pytest.raises(SceneNotFoundError) as excinfo:
        project_scene(ProjectModel("Demo"), "nowhere")

    assert excinfo.value.scene_path == "nowhere"


def test_project_all_covers_every_scene() -> None:
    model = ProjectModel("Demo")
    model.create_scene("a")
    model.create_scene("b")

    assert sorted(project_all(model)) == ["a", "b"]

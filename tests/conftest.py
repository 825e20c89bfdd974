"""Test configuration for the Godot assembler project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from typing import Any, Callable

import pytest

from godotassembler import ProjectModel, SceneAuthor

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture()
def model() -> ProjectModel:
    """Return an empty project model in the default (legacy) policy."""

    return ProjectModel("Demo")


@pytest.fixture()
def author(model: ProjectModel) -> SceneAuthor:
    return SceneAuthor(model)


@pytest.fixture()
def sprite_model() -> ProjectModel:
    """A scene with a Node2D root and a scripted Sprite2D child."""

    project = ProjectModel("Demo")
    project.create_scene("main")
    project.create_node("main", "Root", "Node2D")
    project.create_node("main", "Sprite2D", "Sprite2D", "Root")
    project.set_node_property("main", "Sprite2D", "position", {"x": 10, "y": 20})
    project.create_script("scripts/player.gd", "gdscript", "extends Sprite2D\n")
    project.attach_script_to_node("main", "Sprite2D", "scripts/player.gd")
    return project


@pytest.fixture()
def populated_model() -> ProjectModel:
    """Two authored scenes, a script and a texture asset."""

    project = ProjectModel("Demo")
    author = SceneAuthor(project)
    author.create_scene("level", "gameplay")
    author.create_scene("menu", "menu")
    author.add_node("level", "Player", "CharacterBody2D")
    project.set_node_property("scenes/level", "Player", "speed", 120.5)
    project.create_script("scripts/player.gd", "gdscript", "extends CharacterBody2D\n")
    author.attach_script("level", "Player", "scripts/player.gd")
    author.set_transition_target("menu", "level")
    author.mark_as_entry_scene("menu")
    project.add_asset("textures/a.png", "texture", PNG_BYTES)
    return project


@pytest.fixture()
def make_model() -> Callable[..., ProjectModel]:
    """Factory fixture for models with custom policies."""

    def _factory(**kwargs: Any) -> ProjectModel:
        return ProjectModel("Demo", **kwargs)

    return _factory


import pytest

from godotassembler.folders import FolderIndex, normalise_path, parent_path


def test_normalise_path_strips_empty_and_dot_segments() -> None:
    assert normalise_path("/a//./b\\c/") == "a/b/c"
    assert normalise_path("") == ""


def test_normalise_path_requires_string() -> None:
    with pytest.raises(TypeError):
        normalise_path(42)  # type: ignore[arg-type]


def test_parent_path() -> None:
    assert parent_path("a/b/c.png") == "a/b"
    assert parent_path("c.png") == ""


def test_ensure_creates_missing_ancestors() -> None:
    index = FolderIndex()

    leaf = index.ensure("a/b/c")

    assert leaf is not None and leaf.name == "c"
    assert index.paths() == ["a", "a/b", "a/b/c"]
    assert index.get("a").subfolders == ["a/b"]
    assert index.get("a/b").subfolders == ["a/b/c"]


def test_ensure_is_idempotent() -> None:
    once = FolderIndex()
    once.ensure("a/b/c")
    twice = FolderIndex()
    twice.ensure("a/b/c")
    twice.ensure("a/b/c")

    assert twice.paths() == once.paths()
    assert twice.get("a").subfolders == ["a/b"]


def test_ensure_root_returns_none() -> None:
    index = FolderIndex()

    assert index.ensure("") is None
    assert len(index) == 0


def test_register_and_unregister_file() -> None:
    index = FolderIndex()
    index.register_file("textures/a.png")
    index.register_file("textures/a.png")

    assert "textures" in index
    assert index.get("textures").files == ["textures/a.png"]

    index.unregister_file("textures/a.png")

    assert index.get("textures").files == []
    assert "textures" in index

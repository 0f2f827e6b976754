from __future__ import annotations

import json
from pathlib import Path

import pytest

from scenefs import Instance, InstanceTree, load_tree_from_file, load_tree_from_mapping

DATA = Path(__file__).resolve().parent / "data"


def test_instance_properties_are_read_only() -> None:
    instance = Instance("r", "Part", "Brick", properties={"Anchored": True})

    with pytest.raises(TypeError):
        instance.properties["Anchored"] = False  # type: ignore[index]
    assert instance.properties == {"Anchored": True}


def test_instance_validates_identity() -> None:
    with pytest.raises(ValueError):
        Instance(" ", "Part", "Brick")
    with pytest.raises(ValueError):
        Instance("r", "", "Brick")
    with pytest.raises(TypeError):
        Instance("r", "Part", None)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        Instance("r", "Part", "Brick", properties={"Bad": object()})


def test_tree_resolves_children_in_order() -> None:
    tree = InstanceTree.build(
        Instance("root", "DataModel", "Game", children=("b", "a")),
        Instance("a", "Workspace", "Workspace"),
        Instance("b", "Lighting", "Lighting", children=("c",)),
        Instance("c", "Sky", "Sky"),
    )

    assert tree.root().referent == "root"
    assert [child.name for child in tree.children_of(tree.root())] == [
        "Lighting",
        "Workspace",
    ]
    assert [node.referent for node in tree.descendants(tree.root())] == ["b", "c", "a"]
    assert len(tree) == 4
    assert "c" in tree
    with pytest.raises(KeyError):
        tree.get("missing")


def test_tree_rejects_unknown_children() -> None:
    with pytest.raises(ValueError):
        InstanceTree.build(Instance("root", "DataModel", "Game", children=("ghost",)))


def test_tree_rejects_shared_children() -> None:
    with pytest.raises(ValueError):
        InstanceTree.build(
            Instance("root", "DataModel", "Game", children=("a", "b")),
            Instance("a", "Folder", "A", children=("c",)),
            Instance("b", "Folder", "B", children=("c",)),
            Instance("c", "Part", "C"),
        )


def test_tree_rejects_root_as_child_and_missing_root() -> None:
    with pytest.raises(ValueError):
        InstanceTree.build(
            Instance("root", "DataModel", "Game", children=("a",)),
            Instance("a", "Folder", "A", children=("root",)),
        )
    with pytest.raises(ValueError):
        InstanceTree("nowhere", {})


def test_tree_rejects_mismatched_keys() -> None:
    with pytest.raises(ValueError):
        InstanceTree("root", {"root": Instance("other", "DataModel", "Game")})


def test_load_tree_from_file_matches_fixture(sample_tree: InstanceTree) -> None:
    tree = load_tree_from_file(DATA / "sample_scene.json")

    assert len(tree) == len(sample_tree)
    for node in [tree.root(), *tree.descendants(tree.root())]:
        assert node == sample_tree.get(node.referent)


def test_load_tree_from_mapping_validates_documents() -> None:
    with pytest.raises(ValueError):
        load_tree_from_mapping({"instances": []})
    with pytest.raises(ValueError):
        load_tree_from_mapping(
            {"root": "a", "instances": [{"referent": "a", "className": " "}]}
        )
    with pytest.raises(ValueError):
        load_tree_from_mapping(
            {
                "root": "a",
                "instances": [
                    {"referent": "a", "className": "DataModel"},
                    {"referent": "a", "className": "DataModel"},
                ],
            }
        )
    with pytest.raises(ValueError, match="invalid properties"):
        load_tree_from_mapping(
            {
                "root": "a",
                "instances": [
                    {
                        "referent": "a",
                        "className": "DataModel",
                        "properties": {"Bad": {"Vector3": [1, 2, 3]}},
                    }
                ],
            }
        )


def test_load_tree_from_file_rejects_invalid_json(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ValueError):
        load_tree_from_file(broken)

    listing = tmp_path / "list.json"
    listing.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_tree_from_file(listing)

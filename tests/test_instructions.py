from __future__ import annotations

from pathlib import PurePosixPath, PureWindowsPath

import pytest

from scenefs import (
    AddToTree,
    CreateFile,
    CreateFolder,
    MalformedPathError,
    Project,
    TreePartition,
    normalise_path,
)
from scenefs.instructions import split_path


@pytest.mark.parametrize(
    "raw",
    ["a/b/c", "a\\b/c", "a\\b\\c", "a//b\\\\c", "/a/b/c/", PureWindowsPath("a\\b\\c")],
)
def test_normalise_path_canonicalises_separators(raw) -> None:
    assert normalise_path(raw) == "a/b/c"


def test_normalise_path_accepts_posix_paths() -> None:
    assert normalise_path(PurePosixPath("Workspace") / "Part.rbxmx") == "Workspace/Part.rbxmx"


@pytest.mark.parametrize("raw", ["", "/", "\\\\", "a/../b", "./a", "a/\x00b", "a\nb"])
def test_normalise_path_rejects_malformed_paths(raw: str) -> None:
    with pytest.raises(MalformedPathError):
        normalise_path(raw)


def test_instructions_with_mixed_separators_are_equal() -> None:
    assert CreateFolder("a\\b/c") == CreateFolder("a/b/c")
    assert CreateFile("a\\b", b"x") == CreateFile("a/b", b"x")


def test_create_file_encodes_text_contents() -> None:
    instruction = CreateFile("notes.txt", "héllo")

    assert instruction.contents == "héllo".encode("utf-8")
    with pytest.raises(TypeError):
        CreateFile("notes.txt", 12)  # type: ignore[arg-type]


def test_split_path() -> None:
    assert split_path("a/b/c") == ("a/b", "c")
    assert split_path("c") == ("", "c")


def test_add_to_tree_validates_arguments() -> None:
    partition = TreePartition(class_name="Workspace")
    with pytest.raises(ValueError):
        AddToTree(" ", partition)
    with pytest.raises(TypeError):
        AddToTree("Workspace", {"$className": "Workspace"})  # type: ignore[arg-type]


def test_tree_partition_payload_uses_project_keys() -> None:
    partition = TreePartition(
        class_name="ReplicatedStorage",
        path="src/ReplicatedStorage",
        children={"Assets": TreePartition(class_name="Folder")},
    )

    payload = partition.to_payload()

    assert payload == {
        "$className": "ReplicatedStorage",
        "$path": "src/ReplicatedStorage",
        "$ignoreUnknownInstances": True,
        "Assets": {"$className": "Folder", "$ignoreUnknownInstances": True},
    }
    assert TreePartition.model_validate(payload) == partition


def test_tree_partition_children_may_use_field_names() -> None:
    payload = {
        "$className": "Folder",
        "class_name": {"$className": "Folder"},
        "path": {"$className": "Model", "$path": "src/path"},
        "children": {"$className": "Folder"},
    }

    partition = TreePartition.model_validate(payload)

    assert partition.class_name == "Folder"
    assert partition.path is None
    assert sorted(partition.children) == ["children", "class_name", "path"]
    assert partition.children["path"].path == "src/path"
    assert TreePartition.model_validate(partition.to_payload()) == partition


def test_tree_partition_requires_class_name() -> None:
    with pytest.raises(ValueError):
        TreePartition.model_validate({"$path": "src/Workspace"})


def test_project_collects_partitions_without_mutating() -> None:
    empty = Project.empty("place")
    updated = empty.with_partition("Workspace", TreePartition(class_name="Workspace"))

    assert empty.tree.children == {}
    assert updated.to_payload() == {
        "name": "place",
        "tree": {
            "$className": "DataModel",
            "$ignoreUnknownInstances": True,
            "Workspace": {"$className": "Workspace", "$ignoreUnknownInstances": True},
        },
    }

"""Test configuration for the scene conversion project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

DATA = Path(__file__).resolve().parent / "data"

from typing import Any, Callable, List

import pytest

from scenefs.instance_tree import Instance, InstanceTree
from scenefs.instructions import Instruction, InstructionReader


class RecordingReader(InstructionReader):
    """Reader that remembers everything it receives, in order."""

    def __init__(self) -> None:
        self.instructions: List[Instruction] = []
        self.finish_calls = 0

    def read_instruction(self, instruction: Instruction) -> None:
        if self.finish_calls:
            raise AssertionError("instruction received after finish_instructions")
        self.instructions.append(instruction)

    def finish_instructions(self) -> None:
        self.finish_calls += 1


def build_sample_tree() -> InstanceTree:
    """Return a small place with services, folders, scripts and parts."""

    return InstanceTree.build(
        Instance("RBX0", "DataModel", "Game", children=("RBX1", "RBX2", "RBX9")),
        Instance("RBX1", "Workspace", "Workspace", children=("RBX3", "RBX4")),
        Instance(
            "RBX3",
            "Part",
            "Baseplate",
            properties={
                "Anchored": True,
                "Color": {"R": 0.5, "G": 0.25, "B": 1.0},
                "Transparency": 0.0,
            },
        ),
        Instance(
            "RBX4",
            "Model",
            "Tower",
            properties={"LevelOfDetail": 2},
            children=("RBX5",),
        ),
        Instance("RBX5", "Script", "Spin", properties={"Source": "print('spin')"}),
        Instance("RBX2", "ReplicatedStorage", "ReplicatedStorage", children=("RBX6", "RBX7")),
        Instance("RBX6", "Folder", "Modules", children=("RBX8",)),
        Instance("RBX8", "ModuleScript", "Util", properties={"Source": "return {}"}),
        Instance(
            "RBX7",
            "LocalScript",
            "Client",
            properties={"Source": "require(script.Helper)"},
            children=("RBX10",),
        ),
        Instance("RBX10", "ModuleScript", "Helper", properties={"Source": "return 1"}),
        Instance("RBX9", "CoreGui", "CoreGui", children=("RBX11",)),
        Instance("RBX11", "ScreenGui", "Hidden"),
    )


@pytest.fixture()
def sample_tree() -> InstanceTree:
    return build_sample_tree()


@pytest.fixture()
def recording_reader() -> RecordingReader:
    return RecordingReader()


@pytest.fixture()
def make_tree() -> Callable[..., InstanceTree]:
    """Factory building a tree whose root holds ``services``.

    Each service is ``(name, class_name, [Instance, ...])``; the listed
    instances become the service's children and may reference further
    instances passed through ``extra``.
    """

    def _factory(*services: Any, extra: tuple[Instance, ...] = ()) -> InstanceTree:
        instances: list[Instance] = []
        service_refs: list[str] = []
        for index, (name, class_name, children) in enumerate(services):
            referent = f"service-{index}"
            service_refs.append(referent)
            instances.append(
                Instance(
                    referent,
                    class_name,
                    name,
                    children=tuple(child.referent for child in children),
                )
            )
            instances.extend(children)
        root = Instance("root", "DataModel", "Game", children=tuple(service_refs))
        return InstanceTree.build(root, *instances, *extra)

    return _factory


__all__ = ["DATA", "RecordingReader", "build_sample_tree"]

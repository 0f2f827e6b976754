"""Filesystem-mutation instructions and the readers that consume them."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import MalformedPathError

SEPARATOR = "/"

_SEPARATOR_RUN = re.compile(r"[\\/]+")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def normalise_path(path: str | PurePath) -> str:
    """Return ``path`` with ``/`` as its only separator.

    Backslashes and forward slashes are interchangeable, runs of separators
    collapse and leading or trailing separators are dropped, so ``a\\b/c``
    and ``a//b/c/`` both become ``a/b/c``.

    Raises:
        MalformedPathError: If the path is empty, uses ``.`` or ``..``
            segments, or contains control characters.
    """

    if isinstance(path, PurePath):
        path = path.as_posix()
    if not isinstance(path, str):
        raise TypeError(f"path must be a string, got {type(path)!r}")

    if _CONTROL_CHARS.search(path):
        raise MalformedPathError(f"Path {path!r} contains control characters", path=path)

    normalised = _SEPARATOR_RUN.sub(SEPARATOR, path).strip(SEPARATOR)
    if not normalised:
        raise MalformedPathError(f"Path {path!r} is empty", path=path)

    for segment in normalised.split(SEPARATOR):
        if segment in (".", ".."):
            raise MalformedPathError(
                f"Path {path!r} contains a relative segment", path=path
            )
    return normalised


def split_path(path: str) -> tuple[str, str]:
    """Return ``(parent, name)`` for a normalised path; root entries have ``""``."""

    parent, _, name = path.rpartition(SEPARATOR)
    return parent, name


class TreePartition(BaseModel):
    """Describe how a folder maps back onto a subtree of the original scene.

    Serialises to the project-file shape where the metadata keys are prefixed
    with ``$`` and child partitions sit beside them under their own names::

        {"$className": "ReplicatedStorage", "$path": "src/ReplicatedStorage",
         "$ignoreUnknownInstances": true}
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    class_name: str = Field(..., alias="$className")
    path: str | None = Field(None, alias="$path")
    ignore_unknown_instances: bool = Field(True, alias="$ignoreUnknownInstances")
    children: Dict[str, "TreePartition"] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_flattened_children(cls, data: Any) -> Any:
        # Only the project-file form (keyed by "$className") flattens children.
        if not isinstance(data, Mapping) or "$className" not in data:
            return data

        known = {"$className", "$path", "$ignoreUnknownInstances"}
        children = {key: value for key, value in data.items() if key not in known}
        if not children:
            return data

        collected = {key: value for key, value in data.items() if key in known}
        collected["children"] = children
        return collected

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"$className": self.class_name}
        if self.path is not None:
            payload["$path"] = self.path
        payload["$ignoreUnknownInstances"] = self.ignore_unknown_instances
        for name in sorted(self.children):
            payload[name] = self.children[name].to_payload()
        return payload


class Project(BaseModel):
    """Project file written next to the converted sources."""

    name: str
    tree: TreePartition

    @classmethod
    def empty(cls, name: str) -> "Project":
        return cls(name=name, tree=TreePartition(class_name="DataModel"))

    def with_partition(self, name: str, partition: TreePartition) -> "Project":
        children = dict(self.tree.children)
        children[name] = partition
        return self.model_copy(
            update={"tree": self.tree.model_copy(update={"children": children})}
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"name": self.name, "tree": self.tree.to_payload()}


@dataclass(frozen=True)
class CreateFolder:
    """Create an empty folder at ``path``."""

    path: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalise_path(self.path))


@dataclass(frozen=True)
class CreateFile:
    """Create a file at ``path`` holding ``contents``."""

    path: str
    contents: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalise_path(self.path))
        contents = self.contents
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        elif isinstance(contents, (bytearray, memoryview)):
            contents = bytes(contents)
        elif not isinstance(contents, bytes):
            raise TypeError(f"contents must be bytes, got {type(contents)!r}")
        object.__setattr__(self, "contents", contents)


@dataclass(frozen=True)
class AddToTree:
    """Record ``partition`` in the project tree under ``name``."""

    name: str
    partition: TreePartition

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("partition name must be a non-empty string")
        if not isinstance(self.partition, TreePartition):
            raise TypeError("partition must be a TreePartition")


Instruction = Union[CreateFolder, CreateFile, AddToTree]


class InstructionReader(ABC):
    """Destination that materialises an instruction stream."""

    @abstractmethod
    def read_instruction(self, instruction: Instruction) -> None:
        """Apply one instruction; called in emission order."""

    @abstractmethod
    def finish_instructions(self) -> None:
        """Called exactly once after the final instruction of a run."""


__all__ = [
    "AddToTree",
    "CreateFile",
    "CreateFolder",
    "Instruction",
    "InstructionReader",
    "Project",
    "SEPARATOR",
    "TreePartition",
    "normalise_path",
    "split_path",
]

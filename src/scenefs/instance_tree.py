"""Read-only instance trees and the JSON scene files they are loaded from."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .variants import Variant, normalise_properties, properties_from_payload


@dataclass(frozen=True)
class Instance:
    """A single node of a scene: class, name, typed properties and child refs."""

    referent: str
    class_name: str
    name: str
    properties: Mapping[str, Variant] = field(default_factory=dict)
    children: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for field_name in ("referent", "class_name"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{field_name} must be a non-empty string")
        if not isinstance(self.name, str):
            raise TypeError(f"name must be a string, got {type(self.name)!r}")

        object.__setattr__(
            self, "properties", MappingProxyType(normalise_properties(self.properties))
        )
        object.__setattr__(self, "children", tuple(self.children))


class InstanceTree:
    """Arena of instances addressed by referent, with a single root.

    The constructor checks that the arena actually forms a tree: the root and
    every child referent must resolve, and no instance may be claimed by two
    parents. Walkers can therefore visit each node at most once.
    """

    def __init__(self, root_ref: str, instances: Mapping[str, Instance]) -> None:
        self._instances: Dict[str, Instance] = dict(instances)
        if root_ref not in self._instances:
            raise ValueError(f"Root instance '{root_ref}' is not part of the tree")
        self.root_ref = root_ref

        parents: Dict[str, str] = {}
        for referent, instance in self._instances.items():
            if instance.referent != referent:
                raise ValueError(
                    f"Instance keyed as '{referent}' reports referent '{instance.referent}'"
                )
            for child_ref in instance.children:
                if child_ref not in self._instances:
                    raise ValueError(
                        f"Instance '{referent}' references unknown child '{child_ref}'"
                    )
                if child_ref == root_ref:
                    raise ValueError("The root instance cannot be a child")
                if child_ref in parents:
                    raise ValueError(
                        f"Instance '{child_ref}' has more than one parent"
                    )
                parents[child_ref] = referent

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, referent: object) -> bool:
        return referent in self._instances

    def root(self) -> Instance:
        return self._instances[self.root_ref]

    def get(self, referent: str) -> Instance:
        """Return the instance for ``referent``.

        Raises:
            KeyError: If the referent is not part of this tree.
        """

        try:
            return self._instances[referent]
        except KeyError as exc:
            raise KeyError(f"Instance '{referent}' does not exist") from exc

    def children_of(self, instance: Instance) -> List[Instance]:
        return [self._instances[ref] for ref in instance.children]

    def descendants(self, instance: Instance) -> Iterator[Instance]:
        """Yield every descendant of ``instance`` depth-first in child order."""

        for child in self.children_of(instance):
            yield child
            yield from self.descendants(child)

    @classmethod
    def build(cls, root: Instance, *others: Instance) -> "InstanceTree":
        """Create a tree from instances without spelling out the mapping."""

        instances = {root.referent: root}
        for instance in others:
            if instance.referent in instances:
                raise ValueError(f"Duplicate referent '{instance.referent}'")
            instances[instance.referent] = instance
        return cls(root.referent, instances)


class _InstanceDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    referent: str
    class_name: str = Field(..., alias="className")
    name: str = ""
    children: List[str] = Field(default_factory=list)
    properties: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("referent", "class_name")
    @classmethod
    def _validate_identifier(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Value must be a non-empty string.")
        return trimmed


class _SceneDocument(BaseModel):
    root: str
    instances: List[_InstanceDocument]


def load_tree_from_mapping(payload: Mapping[str, Any]) -> InstanceTree:
    """Build an :class:`InstanceTree` from a parsed scene document.

    The document has the shape ``{"root": ref, "instances": [...]}`` where
    each instance provides ``referent``, ``className``, ``name``, ``children``
    and ``properties``. Property values use the tagged payload form, for
    example ``{"String": "print('hi')"}``.

    Raises:
        ValueError: If the document is structurally invalid.
    """

    try:
        document = _SceneDocument.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid scene document: {exc}") from exc

    instances: Dict[str, Instance] = {}
    for entry in document.instances:
        if entry.referent in instances:
            raise ValueError(f"Duplicate referent '{entry.referent}' in scene document")
        try:
            properties = properties_from_payload(entry.properties)
        except ValueError as exc:
            raise ValueError(
                f"Instance '{entry.referent}' has invalid properties: {exc}"
            ) from exc
        instances[entry.referent] = Instance(
            referent=entry.referent,
            class_name=entry.class_name,
            name=entry.name,
            properties=properties,
            children=tuple(entry.children),
        )

    return InstanceTree(document.root, instances)


def load_tree_from_file(path: str | Path) -> InstanceTree:
    """Load a JSON scene document from ``path``."""

    scene_path = Path(path)
    try:
        payload = json.loads(scene_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Scene file '{scene_path}' is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ValueError(f"Scene file '{scene_path}' must contain a JSON object")
    return load_tree_from_mapping(payload)


__all__ = [
    "Instance",
    "InstanceTree",
    "load_tree_from_file",
    "load_tree_from_mapping",
]

"""In-memory instruction reader used to inspect and snapshot conversions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from pydantic import ValidationError

from .errors import MissingParentError, WrongNodeKindError
from .fragment import FragmentCodec, is_fragment_name
from .instructions import (
    SEPARATOR,
    AddToTree,
    CreateFile,
    CreateFolder,
    Instruction,
    InstructionReader,
    TreePartition,
    normalise_path,
    split_path,
)
from .variants import Variant, properties_from_payload, properties_to_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BytesContents:
    """Plain file contents, kept as (lossily decoded) UTF-8 text."""

    text: str


@dataclass(frozen=True)
class InstanceContents:
    """Properties decoded from a fragment file."""

    properties: Mapping[str, Variant] = field(default_factory=dict)


@dataclass(frozen=True)
class VfsContents:
    """A sub-folder, represented by its own mirror."""

    system: "VirtualFileSystem"


FileContents = Union[BytesContents, InstanceContents, VfsContents]


@dataclass(frozen=True)
class VirtualFile:
    contents: FileContents


class VirtualFileSystem(InstructionReader):
    """Replay instructions into nested in-memory folders.

    ``files`` maps entry names to :class:`VirtualFile` objects and ``tree``
    maps partition names to :class:`TreePartition` descriptors. Two mirrors
    compare equal when both mappings match; ``finished`` only records whether
    the producer sent its finish signal and is ignored by equality.
    """

    def __init__(self, *, codec: FragmentCodec | None = None) -> None:
        self.files: Dict[str, VirtualFile] = {}
        self.tree: Dict[str, TreePartition] = {}
        self.finished = False
        self._codec = codec or FragmentCodec()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VirtualFileSystem):
            return NotImplemented
        return self.files == other.files and self.tree == other.tree

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"VirtualFileSystem(files={self.files!r}, tree={self.tree!r}, "
            f"finished={self.finished!r})"
        )

    def read_instruction(self, instruction: Instruction) -> None:
        if isinstance(instruction, AddToTree):
            if instruction.name in self.tree:
                logger.warning("Partition '%s' was added twice", instruction.name)
            self.tree[instruction.name] = instruction.partition
        elif isinstance(instruction, CreateFolder):
            self._create_folder(instruction.path)
        elif isinstance(instruction, CreateFile):
            self._create_file(instruction.path, instruction.contents)
        else:
            raise TypeError(f"Unknown instruction {instruction!r}")

    def finish_instructions(self) -> None:
        self.finished = True

    def get(self, path: str) -> VirtualFile:
        """Return the entry at ``path`` (either separator style is accepted).

        Raises:
            KeyError: If nothing exists at ``path``.
        """

        parent, name = split_path(normalise_path(path))
        try:
            system = self._resolve_folder(parent, path)
        except (MissingParentError, WrongNodeKindError) as exc:
            raise KeyError(path) from exc
        try:
            return system.files[name]
        except KeyError as exc:
            raise KeyError(path) from exc

    def _create_folder(self, path: str) -> None:
        parent, name = split_path(path)
        system = self._resolve_folder(parent, path)

        existing = system.files.get(name)
        if existing is not None:
            if not isinstance(existing.contents, VfsContents):
                raise WrongNodeKindError(
                    f"Cannot create folder '{path}': a file already exists there",
                    path=path,
                )
            return
        system.files[name] = VirtualFile(
            VfsContents(VirtualFileSystem(codec=self._codec))
        )

    def _create_file(self, path: str, contents: bytes) -> None:
        parent, name = split_path(path)
        system = self._resolve_folder(parent, path)

        existing = system.files.get(name)
        if existing is not None and isinstance(existing.contents, VfsContents):
            raise WrongNodeKindError(
                f"Cannot create file '{path}': a folder already exists there",
                path=path,
            )

        if is_fragment_name(name):
            file_contents: FileContents = InstanceContents(self._codec.decode(contents))
        else:
            file_contents = BytesContents(contents.decode("utf-8", errors="replace"))
        system.files[name] = VirtualFile(file_contents)

    def _resolve_folder(self, parent: str, path: str) -> "VirtualFileSystem":
        system = self
        if not parent:
            return system

        for segment in parent.split(SEPARATOR):
            entry = system.files.get(segment)
            if entry is None:
                raise MissingParentError(
                    f"No folder '{parent}' exists for '{path}'", path=path
                )
            if not isinstance(entry.contents, VfsContents):
                raise WrongNodeKindError(
                    f"Cannot place '{path}' inside file '{segment}'", path=path
                )
            system = entry.contents.system
        return system

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-serialisable snapshot of this mirror."""

        return {
            "files": {
                name: {"contents": _contents_to_payload(self.files[name].contents)}
                for name in sorted(self.files)
            },
            "tree": {name: self.tree[name].to_payload() for name in sorted(self.tree)},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), indent=2, sort_keys=True) + "\n"

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], *, codec: FragmentCodec | None = None
    ) -> "VirtualFileSystem":
        """Build a mirror from a snapshot produced by :meth:`to_payload`.

        Raises:
            ValueError: If the snapshot is malformed.
        """

        if not isinstance(payload, Mapping):
            raise ValueError("Snapshot must be an object")

        files_payload = payload.get("files", {})
        tree_payload = payload.get("tree", {})
        if not isinstance(files_payload, Mapping) or not isinstance(tree_payload, Mapping):
            raise ValueError("Snapshot 'files' and 'tree' must be objects")

        system = cls(codec=codec)
        for name, entry in files_payload.items():
            if not isinstance(entry, Mapping) or "contents" not in entry:
                raise ValueError(f"Snapshot file '{name}' must define contents")
            system.files[str(name)] = VirtualFile(
                _contents_from_payload(entry["contents"], codec=system._codec)
            )

        for name, partition in tree_payload.items():
            try:
                system.tree[str(name)] = TreePartition.model_validate(partition)
            except ValidationError as exc:
                raise ValueError(f"Snapshot partition '{name}' is invalid: {exc}") from exc
        return system

    @classmethod
    def from_json(
        cls, text: str, *, codec: FragmentCodec | None = None
    ) -> "VirtualFileSystem":
        return cls.from_payload(json.loads(text), codec=codec)

    @classmethod
    def from_directory(
        cls, root: Path, *, codec: FragmentCodec | None = None
    ) -> "VirtualFileSystem":
        """Mirror the files below ``root``, decoding fragment files.

        Only files and folders are read; the partition map stays empty.
        """

        system = cls(codec=codec)
        for entry in sorted(Path(root).iterdir()):
            if entry.is_dir():
                contents: FileContents = VfsContents(
                    cls.from_directory(entry, codec=system._codec)
                )
            elif is_fragment_name(entry.name):
                contents = InstanceContents(system._codec.decode(entry.read_bytes()))
            else:
                contents = BytesContents(
                    entry.read_bytes().decode("utf-8", errors="replace")
                )
            system.files[entry.name] = VirtualFile(contents)
        return system


def _contents_to_payload(contents: FileContents) -> Dict[str, Any]:
    if isinstance(contents, BytesContents):
        return {"Bytes": contents.text}
    if isinstance(contents, InstanceContents):
        return {"Instance": properties_to_payload(contents.properties)}
    return {"Vfs": contents.system.to_payload()}


def _contents_from_payload(payload: Any, *, codec: FragmentCodec) -> FileContents:
    if not isinstance(payload, Mapping) or len(payload) != 1:
        raise ValueError("File contents must be an object with exactly one kind")

    ((kind, raw),) = payload.items()
    if kind == "Bytes" and isinstance(raw, str):
        return BytesContents(raw)
    if kind == "Instance" and isinstance(raw, Mapping):
        return InstanceContents(properties_from_payload(raw))
    if kind == "Vfs" and isinstance(raw, Mapping):
        return VfsContents(VirtualFileSystem.from_payload(raw, codec=codec))
    raise ValueError(f"Unsupported file contents kind '{kind}'")


__all__ = [
    "BytesContents",
    "FileContents",
    "InstanceContents",
    "VfsContents",
    "VirtualFile",
    "VirtualFileSystem",
]

"""Walk an instance tree and emit the instructions that realise it on disk."""

from __future__ import annotations

import json
import logging
import re
from typing import Iterator, List, Set

from .errors import ConversionError, MalformedPathError, WrongNodeKindError
from .fragment import FRAGMENT_SUFFIX, FragmentCodec
from .instance_tree import Instance, InstanceTree
from .instructions import (
    SEPARATOR,
    AddToTree,
    CreateFile,
    CreateFolder,
    Instruction,
    InstructionReader,
    TreePartition,
)
from .settings import ConversionSettings
from .variants import properties_to_payload

logger = logging.getLogger(__name__)

FOLDER_CLASS = "Folder"
SCRIPT_SUFFIXES = {
    "Script": ".server.lua",
    "LocalScript": ".client.lua",
    "ModuleScript": ".lua",
}
META_FILE_NAME = "init.meta.json"

_UNSAFE_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')


def sanitise_name(name: str) -> str:
    """Turn an instance name into a single path segment.

    Raises:
        MalformedPathError: If nothing usable is left of the name.
    """

    cleaned = _UNSAFE_NAME_CHARS.sub("_", name).strip()
    if not cleaned or cleaned in (".", ".."):
        raise MalformedPathError(f"Instance name {name!r} cannot be used as a path", path=name)
    return cleaned


def _join(folder: str, name: str) -> str:
    return f"{folder}{SEPARATOR}{name}" if folder else name


class _TreeWalker:
    def __init__(
        self,
        tree: InstanceTree,
        settings: ConversionSettings,
        codec: FragmentCodec,
    ) -> None:
        self.tree = tree
        self.settings = settings
        self.codec = codec

    def walk(self) -> Iterator[Instruction]:
        used: Set[str] = set()
        for service in self.tree.children_of(self.tree.root()):
            if service.class_name in self.settings.skipped_services:
                logger.debug("Skipping service %s (%s)", service.name, service.class_name)
                continue
            yield from self._walk_service(service, used)

    def _walk_service(self, service: Instance, used: Set[str]) -> Iterator[Instruction]:
        if service.class_name in SCRIPT_SUFFIXES:
            raise WrongNodeKindError(
                f"{service.class_name} '{service.name}' cannot sit directly under the root",
                path=service.name,
            )

        name = self._claim(used, sanitise_name(service.name), "")
        yield CreateFolder(name)
        yield AddToTree(
            name,
            TreePartition(
                class_name=service.class_name,
                path=_join(self.settings.source_dir, name),
            ),
        )
        yield from self._walk_children(service, name)

    def _walk_children(
        self, instance: Instance, folder: str, *reserved: str
    ) -> Iterator[Instruction]:
        used = {name.casefold() for name in reserved}
        for child in self.tree.children_of(instance):
            yield from self._walk_instance(child, folder, used)

    def _walk_instance(
        self, instance: Instance, folder: str, used: Set[str]
    ) -> Iterator[Instruction]:
        name = sanitise_name(instance.name)
        class_name = instance.class_name

        if class_name == FOLDER_CLASS:
            path = _join(folder, self._claim(used, name, ""))
            yield CreateFolder(path)
            yield from self._walk_children(instance, path)
            return

        suffix = SCRIPT_SUFFIXES.get(class_name)
        if suffix is not None:
            source = self._script_source(instance)
            if not instance.children:
                yield CreateFile(_join(folder, self._claim(used, name, suffix)), source)
                return

            path = _join(folder, self._claim(used, name, ""))
            init_name = f"init{suffix}"
            yield CreateFolder(path)
            yield CreateFile(_join(path, init_name), source)
            yield from self._walk_children(instance, path, init_name)
            return

        if not instance.children:
            path = _join(folder, self._claim(used, name, FRAGMENT_SUFFIX))
            yield CreateFile(path, self.encode_leaf(instance))
            return

        path = _join(folder, self._claim(used, name, ""))
        yield CreateFolder(path)
        yield CreateFile(_join(path, META_FILE_NAME), self._meta_contents(instance))
        yield from self._walk_children(instance, path, META_FILE_NAME)

    def encode_leaf(self, instance: Instance) -> bytes:
        if instance.children:
            raise WrongNodeKindError(
                f"{instance.class_name} '{instance.name}' has children and cannot be "
                "stored as a single fragment",
                path=instance.name,
            )
        return self.codec.encode(instance.properties, class_name=instance.class_name)

    @staticmethod
    def _claim(used: Set[str], stem: str, suffix: str) -> str:
        candidate = f"{stem}{suffix}"
        counter = 1
        while candidate.casefold() in used:
            candidate = f"{stem}_{counter}{suffix}"
            counter += 1
        if counter > 1:
            logger.warning("Renamed duplicate sibling %s%s to %s", stem, suffix, candidate)
        used.add(candidate.casefold())
        return candidate

    @staticmethod
    def _script_source(instance: Instance) -> bytes:
        source = instance.properties.get("Source", "")
        if isinstance(source, str):
            return source.encode("utf-8")
        if isinstance(source, bytes):
            return source
        raise ConversionError(
            f"{instance.class_name} '{instance.name}' has a non-text Source property",
            path=instance.name,
        )

    @staticmethod
    def _meta_contents(instance: Instance) -> bytes:
        meta = {
            "className": instance.class_name,
            "ignoreUnknownInstances": True,
            "properties": properties_to_payload(instance.properties),
        }
        return (json.dumps(meta, indent=2, sort_keys=True) + "\n").encode("utf-8")


def iter_instructions(
    tree: InstanceTree,
    *,
    settings: ConversionSettings | None = None,
    codec: FragmentCodec | None = None,
) -> Iterator[Instruction]:
    """Yield the instructions for ``tree`` in a fixed, deterministic order.

    Services (the root's children) become folders with a matching partition.
    Below them ``Folder`` instances become folders, scripts become source
    files and every other childless instance becomes a ``.rbxmx`` fragment.
    Instances with children that are neither folders nor scripts become a
    folder holding an ``init.meta.json`` with their class and properties.
    A folder is always emitted before anything placed inside it.
    """

    walker = _TreeWalker(tree, settings or ConversionSettings(), codec or FragmentCodec())
    return walker.walk()


def collect_instructions(
    tree: InstanceTree,
    *,
    settings: ConversionSettings | None = None,
    codec: FragmentCodec | None = None,
) -> List[Instruction]:
    return list(iter_instructions(tree, settings=settings, codec=codec))


def process_instructions(
    tree: InstanceTree,
    reader: InstructionReader,
    *,
    settings: ConversionSettings | None = None,
    codec: FragmentCodec | None = None,
) -> int:
    """Feed every instruction for ``tree`` to ``reader`` and signal completion.

    ``reader.finish_instructions`` is called exactly once after the last
    instruction, including for trees without any content. Errors propagate
    immediately and the finish signal is not sent.

    Returns:
        The number of instructions delivered.
    """

    logger.info("Converting instance tree with %d instances", len(tree))
    count = 0
    for instruction in iter_instructions(tree, settings=settings, codec=codec):
        logger.debug("Instruction %d: %r", count, instruction)
        reader.read_instruction(instruction)
        count += 1
    reader.finish_instructions()
    logger.info("Delivered %d instructions", count)
    return count


__all__ = [
    "FOLDER_CLASS",
    "META_FILE_NAME",
    "SCRIPT_SUFFIXES",
    "collect_instructions",
    "iter_instructions",
    "process_instructions",
    "sanitise_name",
]

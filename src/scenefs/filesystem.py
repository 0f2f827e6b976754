"""Instruction reader that writes a converted project to disk."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

from .errors import DestinationIOError, MissingParentError, WrongNodeKindError
from .instructions import (
    SEPARATOR,
    AddToTree,
    CreateFile,
    CreateFolder,
    Instruction,
    InstructionReader,
    Project,
    split_path,
)
from .settings import ConversionSettings

logger = logging.getLogger(__name__)

PROJECT_FILE_NAME = "default.project.json"


def reset_destination(root: Path) -> Path:
    """Remove ``root`` and everything below it, then recreate it empty.

    Raises:
        WrongNodeKindError: If ``root`` is an existing regular file.
        DestinationIOError: If the directory cannot be removed or created.
    """

    root_path = Path(root)
    if root_path.exists() and not root_path.is_dir():
        raise WrongNodeKindError(
            f"Destination '{root_path}' is a file, not a directory", path=str(root_path)
        )
    try:
        if root_path.exists():
            logger.info("Clearing destination %s", root_path)
            shutil.rmtree(root_path)
        root_path.mkdir(parents=True)
    except OSError as exc:
        raise DestinationIOError(
            f"Could not reset destination '{root_path}': {exc}", path=str(root_path)
        ) from exc
    return root_path


class FileSystem(InstructionReader):
    """Replay instructions as directories and files below ``root``.

    Content lands in ``root / source_dir``. Partitions are collected into a
    :class:`Project` that is written to ``default.project.json`` in ``root``
    once the producer signals completion. Fragment files are written
    verbatim.
    """

    def __init__(
        self,
        root: Path,
        *,
        project_name: str = "project",
        source_dir: str = "src",
    ) -> None:
        self.root = Path(root)
        self.source = self.root / source_dir
        self.project = Project.empty(project_name)
        self.finished = False
        try:
            self.source.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DestinationIOError(
                f"Could not create source directory '{self.source}': {exc}",
                path=str(self.source),
            ) from exc

    @classmethod
    def from_root(
        cls, root: Path, settings: ConversionSettings | None = None
    ) -> "FileSystem":
        settings = settings or ConversionSettings()
        return cls(
            root, project_name=settings.project_name, source_dir=settings.source_dir
        )

    @property
    def project_file(self) -> Path:
        return self.root / PROJECT_FILE_NAME

    def read_instruction(self, instruction: Instruction) -> None:
        if isinstance(instruction, AddToTree):
            self.project = self.project.with_partition(
                instruction.name, instruction.partition
            )
        elif isinstance(instruction, CreateFolder):
            self._create_folder(instruction.path)
        elif isinstance(instruction, CreateFile):
            self._create_file(instruction.path, instruction.contents)
        else:
            raise TypeError(f"Unknown instruction {instruction!r}")

    def finish_instructions(self) -> None:
        payload = self.project.to_payload()
        try:
            self.project_file.write_text(
                json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8"
            )
        except OSError as exc:
            raise DestinationIOError(
                f"Could not write project file: {exc}", path=str(self.project_file)
            ) from exc
        self.finished = True
        logger.info("Wrote project file %s", self.project_file)

    def _create_folder(self, path: str) -> None:
        target = self._target(path)
        if target.exists() and not target.is_dir():
            raise WrongNodeKindError(
                f"Cannot create folder '{path}': a file already exists there", path=path
            )
        try:
            target.mkdir(exist_ok=True)
        except OSError as exc:
            raise DestinationIOError(
                f"Could not create folder '{path}': {exc}", path=path
            ) from exc

    def _create_file(self, path: str, contents: bytes) -> None:
        target = self._target(path)
        if target.is_dir():
            raise WrongNodeKindError(
                f"Cannot create file '{path}': a folder already exists there", path=path
            )
        try:
            target.write_bytes(contents)
        except OSError as exc:
            raise DestinationIOError(
                f"Could not write file '{path}': {exc}", path=path
            ) from exc

    def _target(self, path: str) -> Path:
        parent, _ = split_path(path)
        parent_dir = self.source
        if parent:
            parent_dir = parent_dir.joinpath(*parent.split(SEPARATOR))
        if not parent_dir.exists():
            raise MissingParentError(f"No folder '{parent}' exists for '{path}'", path=path)
        if not parent_dir.is_dir():
            raise WrongNodeKindError(
                f"Cannot place '{path}' inside file '{parent}'", path=path
            )
        return self.source.joinpath(*path.split(SEPARATOR))


__all__ = ["FileSystem", "PROJECT_FILE_NAME", "reset_destination"]

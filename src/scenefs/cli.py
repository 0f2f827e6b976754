"""Command-line entry point for converting scene files into projects."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .errors import ConversionError
from .filesystem import PROJECT_FILE_NAME, FileSystem, reset_destination
from .instance_tree import load_tree_from_file
from .settings import ConversionSettings
from .walker import process_instructions

logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    """Convert a JSON scene file into a project directory."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ConversionSettings.from_env()
        overrides = {
            key: value
            for key, value in (
                ("project_name", args.project_name),
                ("source_dir", args.source_dir),
                ("log_level", args.log_level),
            )
            if value is not None
        }
        settings = replace(settings, **overrides)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=settings.numeric_log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    output = Path(args.output)
    try:
        tree = load_tree_from_file(Path(args.scene))
        if args.clean:
            _check_clean_target(output)
            reset_destination(output)
        filesystem = FileSystem.from_root(output, settings)
        count = process_instructions(tree, filesystem, settings=settings)
    except (ConversionError, ValueError, OSError) as exc:
        logger.debug("Conversion failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(
        f"Wrote {count} instructions to {filesystem.source} "
        f"(project: {filesystem.project_file.name})"
    )
    return 0


def _check_clean_target(output: Path) -> None:
    if not output.is_dir() or (output / PROJECT_FILE_NAME).is_file():
        return
    if any(output.iterdir()):
        raise ConversionError(
            f"Refusing to clean '{output}': it is not empty and has no {PROJECT_FILE_NAME}",
            path=str(output),
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scenefs",
        description="Convert a scene instance tree into a folder-based project.",
    )
    parser.add_argument("scene", help="JSON scene document to convert.")
    parser.add_argument("output", help="Directory that receives the project.")
    parser.add_argument(
        "--project-name",
        help="Name recorded in the generated project file. Defaults to 'project'.",
    )
    parser.add_argument(
        "--source-dir",
        help="Directory below the output root that holds converted sources.",
    )
    parser.add_argument(
        "--clean",
        action="store_true",
        help=(
            "Remove the output directory before writing. Only allowed for empty "
            f"directories or earlier projects containing {PROJECT_FILE_NAME}."
        ),
    )
    parser.add_argument(
        "--log-level",
        help="Logging verbosity (DEBUG, INFO, WARNING, ERROR or CRITICAL).",
    )
    return parser


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())

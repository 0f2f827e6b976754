"""Configuration helpers for conversion runs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Mapping

# Services that only exist at runtime or inside the editor and have no place in
# a source tree.
DEFAULT_SKIPPED_SERVICES: FrozenSet[str] = frozenset(
    {
        "CoreGui",
        "CorePackages",
        "CSGDictionaryService",
        "NonReplicatedCSGDictionaryService",
        "PluginDebugService",
        "PluginGuiService",
        "RobloxPluginGuiService",
        "RobloxReplicatedStorage",
        "TouchInputService",
        "Visit",
    }
)

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _normalise_names(value: str | None, *, default: Iterable[str]) -> FrozenSet[str]:
    if value is None or not value.strip():
        return frozenset(default)
    return frozenset(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class ConversionSettings:
    """Settings shared by the walker, the disk writer and the CLI.

    Values are read from ``SCENEFS_*`` environment variables by
    :meth:`from_env`; empty strings behave as if the variable was unset.
    """

    project_name: str = "project"
    source_dir: str = "src"
    skipped_services: FrozenSet[str] = field(
        default_factory=lambda: DEFAULT_SKIPPED_SERVICES
    )
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        source_dir = self.source_dir.strip().strip("/\\")
        if not source_dir or source_dir in (".", ".."):
            raise ValueError("source_dir must name a directory below the project root")
        object.__setattr__(self, "source_dir", source_dir)

        level = self.log_level.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}"
            )
        object.__setattr__(self, "log_level", level)
        object.__setattr__(self, "skipped_services", frozenset(self.skipped_services))

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> "ConversionSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            project_name=_normalise_string(
                source.get("SCENEFS_PROJECT_NAME"), default="project"
            ),
            source_dir=_normalise_string(source.get("SCENEFS_SOURCE_DIR"), default="src"),
            skipped_services=_normalise_names(
                source.get("SCENEFS_SKIPPED_SERVICES"),
                default=DEFAULT_SKIPPED_SERVICES,
            ),
            log_level=_normalise_string(source.get("SCENEFS_LOG_LEVEL"), default="INFO"),
        )


__all__ = ["ConversionSettings", "DEFAULT_SKIPPED_SERVICES"]

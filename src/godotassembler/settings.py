"""Configuration helpers for building and exporting projects."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .model import DEFAULT_ENGINE_VERSION, DEFAULT_PROJECT_NAME
from .serializer import DEFAULT_CREDITS_TEXT

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _normalise_flag(value: str | None, *, name: str, default: bool) -> bool:
    if value is None:
        return default

    trimmed = value.strip().lower()
    if not trimmed:
        return default
    if trimmed in _TRUE_WORDS:
        return True
    if trimmed in _FALSE_WORDS:
        return False
    raise ValueError(f"{name} must be one of: {', '.join(sorted(_TRUE_WORDS | _FALSE_WORDS))}.")


@dataclass(frozen=True)
class AssemblerSettings:
    """Settings for new projects and exports.

    The helper reads from environment variables so the CLI can be configured
    without flags. Empty strings are treated as if the variable was unset.
    """

    project_name: str = DEFAULT_PROJECT_NAME
    engine_version: str = DEFAULT_ENGINE_VERSION
    strict_mode: bool = False
    credits_text: str = DEFAULT_CREDITS_TEXT
    include_project_config: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AssemblerSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.

        Raises:
            ValueError: If a boolean variable holds an unrecognised word.
        """

        source = environ if environ is not None else os.environ

        return cls(
            project_name=_normalise_string(
                source.get("GODOTASSEMBLER_PROJECT_NAME"), default=DEFAULT_PROJECT_NAME
            ),
            engine_version=_normalise_string(
                source.get("GODOTASSEMBLER_ENGINE_VERSION"),
                default=DEFAULT_ENGINE_VERSION,
            ),
            strict_mode=_normalise_flag(
                source.get("GODOTASSEMBLER_STRICT_MODE"),
                name="GODOTASSEMBLER_STRICT_MODE",
                default=False,
            ),
            credits_text=_normalise_string(
                source.get("GODOTASSEMBLER_CREDITS_TEXT"), default=DEFAULT_CREDITS_TEXT
            ),
            include_project_config=_normalise_flag(
                source.get("GODOTASSEMBLER_INCLUDE_PROJECT_CONFIG"),
                name="GODOTASSEMBLER_INCLUDE_PROJECT_CONFIG",
                default=False,
            ),
        )


__all__ = ["AssemblerSettings"]

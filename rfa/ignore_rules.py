from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

DEFAULT_IGNORE_FILE = ".rfaignore"
PATHSPEC_EXCLUDE_PREFIX = ":(exclude,glob,top)"
ALWAYS_IGNORED_PATTERNS: tuple[str, ...] = (
    "**/package-lock.json",
    "**/pnpm-lock.yaml",
)


@dataclass(frozen=True)
class IgnoreConfig:
    """User ignore patterns, loaded once at start-up and never changed."""

    patterns: tuple[str, ...] = ()
    pathspec_excludes: tuple[str, ...] = ()
    exclude_file: Path | None = None


def read_ignore_patterns(lines: Iterable[str]) -> list[str]:
    patterns: list[str] = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        patterns.append(line)
    return patterns


def normalize_pattern(pattern: str) -> str:
    value = pattern.strip()
    value = value.removeprefix("./")
    value = value.removeprefix("/")
    if value.endswith("/"):
        value += "**"
    return value


def build_pathspec_excludes(patterns: Iterable[str]) -> list[str]:
    excludes: list[str] = []
    for pattern in patterns:
        value = normalize_pattern(pattern)
        if not value:
            continue
        excludes.append(PATHSPEC_EXCLUDE_PREFIX + value)
    return excludes


def load_ignore_config(path: Path) -> IgnoreConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return IgnoreConfig()
    except (OSError, UnicodeDecodeError) as error:
        raise RuntimeError(f"Failed to read {path}: {error}") from error

    patterns = read_ignore_patterns(text.splitlines())
    return IgnoreConfig(
        patterns=tuple(patterns),
        pathspec_excludes=tuple(build_pathspec_excludes(patterns)),
        exclude_file=path if patterns else None,
    )

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from .ignore_rules import ALWAYS_IGNORED_PATTERNS, IgnoreConfig, build_pathspec_excludes


def run_git(repo: Path, args: list[str], *, ok_codes: tuple[int, ...] = (0,)) -> str:
    process = subprocess.run(
        ["git", "-C", str(repo), *args],
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )
    if process.returncode not in ok_codes:
        message = process.stderr.strip() or process.stdout.strip()
        raise RuntimeError(f"git {' '.join(args)} failed: {message}")
    return process.stdout


def tracked_diff_args(config: IgnoreConfig) -> list[str]:
    args = ["diff", "HEAD"]
    excludes = build_pathspec_excludes(ALWAYS_IGNORED_PATTERNS) + list(config.pathspec_excludes)
    if not excludes:
        return args
    return [*args, "--", ".", *excludes]


def untracked_list_args(config: IgnoreConfig) -> list[str]:
    args = ["ls-files", "--others", "--exclude-standard"]
    for pattern in ALWAYS_IGNORED_PATTERNS:
        args.extend(["--exclude", pattern])
    if config.exclude_file is not None:
        args.extend(["--exclude-from", str(config.exclude_file)])
    return args


def untracked_file_diff(repo: Path, file_path: str) -> str:
    # --no-index exits with 1 whenever the files differ.
    return run_git(repo, ["diff", "--no-index", "/dev/null", file_path], ok_codes=(0, 1))


def get_git_diff(repo: Path, config: IgnoreConfig) -> str:
    """Uncommitted changes against HEAD plus new-file diffs for untracked files."""
    tracked = run_git(repo, tracked_diff_args(config))

    try:
        untracked_list = run_git(repo, untracked_list_args(config))
    except RuntimeError as error:
        print(f"[warning] {error}", file=sys.stderr)
        return tracked

    parts = [tracked]
    for file_path in untracked_list.strip().split("\n"):
        if not file_path:
            continue
        try:
            parts.append(untracked_file_diff(repo, file_path))
        except RuntimeError as error:
            print(f"[warning] {error}", file=sys.stderr)
    return "".join(parts)

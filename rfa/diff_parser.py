from __future__ import annotations

from dataclasses import dataclass

NEW_FILE_PREFIX = "+++ b/"
IGNORED_PREFIXES = ("--- ", "index ", "new file", "deleted file")


@dataclass(frozen=True)
class DiffLine:
    """One line of a hunk, addressed by its old/new line numbers.

    A removed line has ``new_line_no == 0`` and an added line has
    ``old_line_no == 0``; context lines carry both. ``content`` keeps the
    leading marker character so it can be quoted as-is.
    """

    old_line_no: int
    new_line_no: int
    content: str


def _range_start(token: str) -> int | None:
    head = token[1:].split(",", 1)[0]
    if not (head.isascii() and head.isdigit()):
        return None
    return int(head)


def parse_hunk_starts(line: str) -> tuple[int | None, int | None]:
    """Return the (old, new) start line of a hunk header, None where unreadable."""
    parts = line.split("@@", 2)
    if len(parts) < 2:
        return None, None
    old_start: int | None = None
    new_start: int | None = None
    for token in parts[1].strip().split():
        if token.startswith("-"):
            old_start = _range_start(token)
        elif token.startswith("+"):
            new_start = _range_start(token)
    return old_start, new_start


def parse_diff_lines(diff_text: str) -> dict[str, list[DiffLine]]:
    """Index unified diff text by file path and old/new line number.

    Best effort: anything that is not recognised is skipped and the function
    never raises. Files appear in the order their ``+++ b/`` header is seen.
    """
    result: dict[str, list[DiffLine]] = {}
    current_file: str | None = None
    old_line = 0
    new_line = 0

    for line in diff_text.split("\n"):
        if line.startswith(NEW_FILE_PREFIX):
            current_file = line[len(NEW_FILE_PREFIX) :]
            continue
        if line.startswith("diff --git"):
            # Lines before this block's "+++ b/" header belong to no file.
            current_file = None
            continue
        if line.startswith(IGNORED_PREFIXES):
            continue
        if line.startswith("@@ "):
            old_start, new_start = parse_hunk_starts(line)
            if old_start is not None:
                old_line = old_start
            if new_start is not None:
                new_line = new_start
            continue
        if current_file is None:
            continue

        if line.startswith("-"):
            result.setdefault(current_file, []).append(DiffLine(old_line, 0, line))
            old_line += 1
        elif line.startswith("+"):
            result.setdefault(current_file, []).append(DiffLine(0, new_line, line))
            new_line += 1
        elif line.startswith(" ") or line == "":
            result.setdefault(current_file, []).append(DiffLine(old_line, new_line, line))
            old_line += 1
            new_line += 1

    return result

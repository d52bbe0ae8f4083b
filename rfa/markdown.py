from __future__ import annotations

from typing import Mapping, Sequence

from .comments import Comment, Side, group_comments
from .diff_parser import DiffLine, parse_diff_lines

DOCUMENT_TITLE = "# Code Review Comments"
READING_GUIDE = (
    "> **How to read this file:**",
    "> This file contains review comments on uncommitted changes in this repo.",
    "> Comments are grouped by file. Each comment includes a line or line range",
    "> reference and a quoted diff context snippet showing the relevant code.",
    "> File-level comments (not tied to a specific line) appear under a",
    '> "(file-level)" heading. A global comment, if present, appears at the top',
    "> before any file sections.",
)
EN_DASH = "–"


def range_label(start: int, end: int) -> str:
    if start == end:
        return f"Line {start}"
    return f"Lines {start}{EN_DASH}{end}"


def quoted_context(lines: Sequence[DiffLine], comment: Comment) -> list[str]:
    anchor = comment.line_range()
    if anchor is None:
        return []
    start, end = anchor
    quoted: list[str] = []
    for line in lines:
        line_no = line.old_line_no if comment.side is Side.LEFT else line.new_line_no
        if start <= line_no <= end:
            quoted.append(f"> {line.content}")
    return quoted


def render_markdown(
    global_comment: str | None,
    comments: Sequence[Comment],
    diff_lines: Mapping[str, Sequence[DiffLine]],
) -> str:
    """Render review comments as Markdown anchored to the parsed diff.

    Files appear in the order they are first mentioned by a comment and
    comments keep their arrival order. Each line-anchored comment quotes
    the diff lines whose number on the comment's side falls inside its range;
    a stale anchor simply quotes nothing. The output depends only on the
    arguments.
    """
    out: list[str] = [DOCUMENT_TITLE, "", *READING_GUIDE]
    if global_comment:
        out.extend(["", global_comment])

    for file_path, bucket in group_comments(comments).items():
        if bucket.lined:
            out.extend(["", f"## {file_path}"])
            lines = diff_lines.get(file_path, ())
            for comment in bucket.lined:
                start, end = comment.line_range()
                out.extend(["", f"### {range_label(start, end)}"])
                out.extend(quoted_context(lines, comment))
                out.append(comment.body)

        if bucket.file_level:
            out.extend(["", f"## {file_path} (file-level)"])
            out.extend(comment.body for comment in bucket.file_level)

    return "\n".join(out) + "\n"


def format_markdown(global_comment: str | None, comments: Sequence[Comment], diff_text: str) -> str:
    return render_markdown(global_comment, comments, parse_diff_lines(diff_text))

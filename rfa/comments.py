from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PayloadError(RuntimeError):
    """Raised when a submission payload cannot be decoded."""


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Comment:
    file: str
    start_line: int | None
    end_line: int | None
    side: Side
    body: str

    @property
    def is_file_level(self) -> bool:
        return self.start_line is None

    def line_range(self) -> tuple[int, int] | None:
        """Inclusive (start, end) anchor, or None for a file-level comment.

        A missing end line means a single-line anchor. An inverted range is
        returned with its ends swapped.
        """
        if self.start_line is None:
            return None
        end = self.start_line if self.end_line is None else self.end_line
        return (min(self.start_line, end), max(self.start_line, end))

    def to_json(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "side": self.side.value,
            "body": self.body,
        }


@dataclass(frozen=True)
class SubmitRequest:
    diff: str
    global_comment: str | None
    comments: tuple[Comment, ...]

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.global_comment:
            payload["globalComment"] = self.global_comment
        payload["comments"] = [comment.to_json() for comment in self.comments]
        return payload


@dataclass
class FileComments:
    file_level: list[Comment] = field(default_factory=list)
    lined: list[Comment] = field(default_factory=list)


def _optional_str(value: Any, key: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadError(f"`{key}` must be a string.")
    return value


def _optional_line(value: Any, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise PayloadError(f"`{key}` must be an integer or null.")
    return value


def decode_comment(raw: Any, index: int) -> Comment:
    if not isinstance(raw, dict):
        raise PayloadError(f"comments[{index}] must be a JSON object.")
    side_raw = raw.get("side")
    if side_raw is None:
        side = Side.RIGHT
    else:
        try:
            side = Side(side_raw)
        except ValueError as error:
            raise PayloadError(f"comments[{index}].side must be 'left' or 'right': {side_raw!r}") from error
    return Comment(
        file=_optional_str(raw.get("file"), f"comments[{index}].file") or "",
        start_line=_optional_line(raw.get("startLine"), f"comments[{index}].startLine"),
        end_line=_optional_line(raw.get("endLine"), f"comments[{index}].endLine"),
        side=side,
        body=_optional_str(raw.get("body"), f"comments[{index}].body") or "",
    )


def decode_submit_request(payload: Any) -> SubmitRequest:
    if not isinstance(payload, dict):
        raise PayloadError("Request payload must be a JSON object.")
    comments_raw = payload.get("comments")
    if comments_raw is None:
        comments_raw = []
    if not isinstance(comments_raw, list):
        raise PayloadError("`comments` must be a JSON array.")
    return SubmitRequest(
        diff=_optional_str(payload.get("diff"), "diff") or "",
        global_comment=_optional_str(payload.get("globalComment"), "globalComment") or None,
        comments=tuple(decode_comment(raw, index) for index, raw in enumerate(comments_raw)),
    )


def group_comments(comments: list[Comment] | tuple[Comment, ...]) -> dict[str, FileComments]:
    """Bucket comments per file, keeping first-seen file order and arrival order."""
    grouped: dict[str, FileComments] = {}
    for comment in comments:
        bucket = grouped.get(comment.file)
        if bucket is None:
            bucket = FileComments()
            grouped[comment.file] = bucket
        if comment.is_file_level:
            bucket.file_level.append(comment)
        else:
            bucket.lined.append(comment)
    return grouped

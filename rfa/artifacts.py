from __future__ import annotations

import hashlib
import itertools
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .comments import SubmitRequest
from .markdown import format_markdown

DEFAULT_OUTPUT_DIR = Path("rfa")
CLIPBOARD_PREFIX = "review my comments on these changes in @"

_sequence = itertools.count()


@dataclass(frozen=True)
class ArtifactPaths:
    json_path: Path
    md_path: Path

    @property
    def clipboard_text(self) -> str:
        return CLIPBOARD_PREFIX + self.md_path.as_posix()

    def relative_to(self, root: Path) -> ArtifactPaths:
        try:
            return ArtifactPaths(self.json_path.relative_to(root), self.md_path.relative_to(root))
        except ValueError:
            return self

    def to_response(self) -> dict[str, str]:
        return {
            "jsonPath": self.json_path.as_posix(),
            "mdPath": self.md_path.as_posix(),
            "clipboardText": self.clipboard_text,
        }


def new_artifact_id() -> str:
    seed = f"{time.time_ns()}-{next(_sequence)}".encode("utf-8")
    return hashlib.sha256(seed).hexdigest()[:8]


def artifact_paths(output_dir: Path, artifact_id: str) -> ArtifactPaths:
    return ArtifactPaths(
        json_path=output_dir / f"comments_{artifact_id}.json",
        md_path=output_dir / f"comments_{artifact_id}.md",
    )


def allocate_artifact_paths(output_dir: Path) -> ArtifactPaths:
    while True:
        paths = artifact_paths(output_dir, new_artifact_id())
        if not paths.json_path.exists() and not paths.md_path.exists():
            return paths


def dump_json(value: dict[str, Any]) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2) + "\n"


def write_review_artifacts(output_dir: Path, request: SubmitRequest) -> ArtifactPaths:
    """Persist the submission as JSON and as rendered Markdown.

    The JSON file is written first. If the Markdown write fails the JSON file
    is left in place and the error propagates.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = allocate_artifact_paths(output_dir)
    paths.json_path.write_text(dump_json(request.to_json()), encoding="utf-8")
    markdown = format_markdown(request.global_comment, request.comments, request.diff)
    paths.md_path.write_text(markdown, encoding="utf-8", newline="")
    return paths

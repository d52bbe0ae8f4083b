from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from rich.console import Console

from .comments import SubmitRequest, decode_submit_request
from .console_render import render_review_summary
from .markdown import format_markdown


def load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as error:
        raise RuntimeError(f"File not found: {path}") from error
    except json.JSONDecodeError as error:
        raise RuntimeError(f"Invalid JSON: {error}") from error
    except (OSError, ValueError, RecursionError) as error:
        raise RuntimeError(f"Failed to read {path}: {error}") from error


def load_review_artifact(path: Path, diff_path: Path | None = None) -> SubmitRequest:
    """Read a saved comments JSON file, optionally paired with the diff it was written against."""
    request = decode_submit_request(load_json(path))
    if diff_path is None:
        return request
    try:
        diff_text = diff_path.read_text(encoding="utf-8")
    except FileNotFoundError as error:
        raise RuntimeError(f"File not found: {diff_path}") from error
    except (OSError, UnicodeDecodeError) as error:
        raise RuntimeError(f"Failed to read {diff_path}: {error}") from error
    return SubmitRequest(diff=diff_text, global_comment=request.global_comment, comments=request.comments)


def parse_view_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect a saved review comments JSON file.")
    parser.add_argument("path", help="Path to comments_<id>.json")
    parser.add_argument("--diff", help="Unified diff file used to quote context in --markdown output.")
    parser.add_argument("--markdown", action="store_true", help="Print the rendered Markdown document.")
    return parser.parse_args(argv)


def run_view(argv: list[str]) -> int:
    args = parse_view_args(argv)
    path = Path(args.path)
    try:
        request = load_review_artifact(path, Path(args.diff) if args.diff else None)
    except RuntimeError as error:
        print(f"[error] {error}", file=sys.stderr)
        return 1

    if args.markdown:
        sys.stdout.write(format_markdown(request.global_comment, request.comments, request.diff))
        return 0

    render_review_summary(Console(), path, request.global_comment, request.comments)
    return 0

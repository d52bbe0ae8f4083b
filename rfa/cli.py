from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console

from .artifacts import DEFAULT_OUTPUT_DIR
from .ignore_rules import DEFAULT_IGNORE_FILE, load_ignore_config
from .server import ServerConfig, serve
from .viewer_cli import run_view


def parse_serve_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Review uncommitted changes in the browser and save comments as JSON + Markdown."
    )
    parser.add_argument("--repo", default=".", help="Path to git repository (default: current directory).")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind. Default: 127.0.0.1.")
    parser.add_argument("--port", type=int, help="Port to bind. Default: first free port from 4000.")
    parser.add_argument("--no-open", action="store_true", help="Suppress auto-opening the browser.")
    parser.add_argument(
        "--ignore-file",
        default=DEFAULT_IGNORE_FILE,
        help=f"Ignore pattern file, relative to the repo (default: {DEFAULT_IGNORE_FILE}).",
    )
    parser.add_argument(
        "--output-dir",
        default=str(DEFAULT_OUTPUT_DIR),
        help=f"Directory for comment files, relative to the repo (default: {DEFAULT_OUTPUT_DIR}).",
    )
    return parser.parse_args(argv)


def build_server_config(args: argparse.Namespace) -> ServerConfig:
    repo = Path(args.repo).resolve()
    ignore_path = Path(args.ignore_file)
    if not ignore_path.is_absolute():
        ignore_path = repo / ignore_path
    return ServerConfig(
        repo=repo,
        host=args.host,
        port=args.port,
        output_dir=Path(args.output_dir),
        open_browser=not args.no_open,
        ignore_config=load_ignore_config(ignore_path),
    )


def run_serve(argv: list[str]) -> int:
    args = parse_serve_args(argv)
    console = Console()
    try:
        config = build_server_config(args)
    except RuntimeError as error:
        print(f"[error] {error}", file=sys.stderr)
        return 1
    if config.ignore_config.patterns:
        print(f"Loaded {len(config.ignore_config.patterns)} ignore pattern(s) from {config.ignore_config.exclude_file}")

    try:
        return serve(config, console)
    except (RuntimeError, OSError) as error:
        print(f"[error] {error}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if argv and argv[0] == "view":
        return run_view(argv[1:])
    if argv and argv[0] == "serve":
        argv = argv[1:]
    return run_serve(argv)


if __name__ == "__main__":
    raise SystemExit(main())

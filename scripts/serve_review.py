#!/usr/bin/env python3
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rfa.cli import parse_serve_args, run_serve  # noqa: E402


def parse_args(argv: list[str]):
    return parse_serve_args(argv)


def main(argv: list[str]) -> int:
    return run_serve(argv)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

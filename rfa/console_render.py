from __future__ import annotations

from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .artifacts import ArtifactPaths
from .comments import Comment, Side, group_comments
from .ignore_rules import IgnoreConfig
from .markdown import range_label


def side_style(side: Side) -> str:
    return "red" if side is Side.LEFT else "green"


def anchor_text(comment: Comment) -> str:
    anchor = comment.line_range()
    if anchor is None:
        return "(file-level)"
    return range_label(*anchor)


def _preview(body: str, limit: int = 60) -> str:
    first = body.strip().split("\n", 1)[0]
    if len(first) > limit:
        return first[: limit - 1] + "…"
    return first


def render_startup(
    console: Console,
    url: str,
    repo: Path,
    output_dir: Path,
    ignore_config: IgnoreConfig,
    open_browser: bool,
) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Review", url)
    table.add_row("Repo", str(repo))
    table.add_row("Output", str(output_dir))
    table.add_row("Ignore", f"{len(ignore_config.patterns)} pattern(s)")
    table.add_row("Browser", "open" if open_browser else "not opened (--no-open)")
    console.print(Panel(table, title="rfa review server", border_style="blue"))


def render_submission(console: Console, paths: ArtifactPaths, comments: Sequence[Comment]) -> None:
    grouped = group_comments(comments)
    console.print(f"[green]Wrote[/green] {paths.json_path.as_posix()}")
    console.print(f"[green]Wrote[/green] {paths.md_path.as_posix()}")
    console.print(f"{len(comments)} comment(s) across {len(grouped)} file(s)")


def render_comment_table(console: Console, comments: Sequence[Comment]) -> None:
    table = Table(title=f"Comments ({len(comments)})", header_style="bold magenta")
    table.add_column("file", overflow="ellipsis")
    table.add_column("anchor", no_wrap=True)
    table.add_column("side", no_wrap=True)
    table.add_column("body", overflow="ellipsis")
    for comment in comments:
        table.add_row(
            comment.file,
            anchor_text(comment),
            Text(comment.side.value, style=side_style(comment.side)),
            _preview(comment.body),
        )
    console.print(table)


def render_review_summary(
    console: Console,
    source: Path,
    global_comment: str | None,
    comments: Sequence[Comment],
) -> None:
    grouped = group_comments(comments)
    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="bold cyan")
    summary.add_column()
    summary.add_row("Source", str(source))
    summary.add_row("Files", str(len(grouped)))
    summary.add_row("Line comments", str(sum(len(bucket.lined) for bucket in grouped.values())))
    summary.add_row("File comments", str(sum(len(bucket.file_level) for bucket in grouped.values())))
    summary.add_row("Global", _preview(global_comment) if global_comment else "-")
    console.print(Panel(summary, title="Review Summary", border_style="blue"))
    render_comment_table(console, comments)

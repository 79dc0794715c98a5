"""Progress formatting utilities for the CLI."""

from __future__ import annotations

from typing import Callable, TypeVar

from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from segops.cli.common.output import err_console
from segops.core.graph import Page
from segops.core.sync import Drained

T = TypeVar("T")

_MAX_LABEL_WIDTH = 48


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def drain_with_progress(
    label: str,
    listing: Callable[[Callable[[Page[T]], None]], Drained[T]],
) -> Drained[T]:
    """
    Run a paginated listing while showing pages fetched, items seen and
    sub-listings skipped.

    ``listing`` receives the per-page callback and must pass it through to
    ``segops.core.sync.drain`` (the ``list_all_*`` helpers take it as
    ``on_page``).
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}[/]"),
        TextColumn("pages={task.fields[pages]}"),
        TextColumn("items={task.fields[items]}"),
        TextColumn("skipped=[bold red]{task.fields[skipped]}[/]"),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    )
    task_id = progress.add_task(
        _truncate(label, _MAX_LABEL_WIDTH), total=None, pages=0, items=0, skipped=0
    )
    counts = {"pages": 0, "items": 0, "skipped": 0}

    def on_page(page: Page[T]) -> None:
        counts["pages"] += 1
        counts["items"] += len(page.items)
        counts["skipped"] += len(page.errors)
        progress.update(task_id, **counts)

    with progress:
        return listing(on_page)

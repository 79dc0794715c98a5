"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import questionary
from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from segops.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)
err_console = Console(theme=_THEME, stderr=True)


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q(self, message: str) -> str:
        """Prefix Questionary prompts so they stand out from log output."""
        return f"[segops] {message}"

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        err_console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        err_console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def partial_errors(self, errors: Mapping[str, str]) -> None:
        """Report sub-listings that were skipped after an upstream error."""
        for sub_kind, message in errors.items():
            self.warn(f"Incomplete results, {sub_kind} skipped: {message}")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise.
        """
        console.print("[meta]Use y/n then Enter[/]")
        prompt = questionary.confirm(
            self._q(message),
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def resources_table(self, resources: Iterable[Any], title: str = "Resources") -> None:
        """
        Expects objects with .id .display_name .email .parent
        (like segops.core.graph.Resource)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("ID", style="ok", no_wrap=True)
        t.add_column("Name")
        t.add_column("Email", style="meta")
        t.add_column("Parent", style="meta")

        for r in resources:
            parent = str(r.parent) if r.parent is not None else ""
            t.add_row(r.id.id, r.display_name, r.email or "", parent)

        console.print(t)

    def entitlements_table(
        self, entitlements: Iterable[Any], title: str = "Entitlements"
    ) -> None:
        """Render entitlements (slug, purpose, grantable principal kinds)."""
        t = Table(title=title, show_lines=False)
        t.add_column("Slug", style="ok", no_wrap=True)
        t.add_column("Name")
        t.add_column("Purpose", style="meta")
        t.add_column("Grantable to", style="meta")
        t.add_column("Description", style="meta")

        for e in entitlements:
            grantable = ", ".join(k.value for k in e.grantable_to)
            t.add_row(e.slug, e.display_name, e.purpose, grantable, e.description)

        console.print(t)

    def grants_table(self, grants: Iterable[Any], title: str = "Grants") -> None:
        """
        Expects objects with .entitlement .principal .expandable
        (like segops.core.graph.Grant)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Entitlement", style="ok")
        t.add_column("Principal")
        t.add_column("Expands", style="meta")

        for g in grants:
            expands = ""
            if g.expandable is not None:
                expands = ", ".join(g.expandable.entitlement_ids)
            t.add_row(g.entitlement.id, str(g.principal), expands)

        console.print(t)


out = Out()

"""Terminal UI utilities for segops."""

from __future__ import annotations

import questionary

from segops.cli.common.tui_style import QUESTIONARY_STYLE_SELECT
from segops.core.graph import Entitlement

_MAX_ENTITLEMENT_NAME_WIDTH = 72


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _entitlement_choice_title(entitlement: Entitlement, *, name_width: int) -> str:
    """Format one choice as `<name>  (slug: <slug>)` with aligned slug column."""
    short_name = _truncate(entitlement.display_name, _MAX_ENTITLEMENT_NAME_WIDTH)
    return f"{short_name.ljust(name_width)}  (slug: {entitlement.slug})"


def select_entitlement(entitlements: list[Entitlement]) -> Entitlement | None:
    """Display a select prompt to pick one entitlement.

    Args:
        entitlements: Entitlements offered by the resource.

    Returns:
        The selected entitlement, or None if cancelled or nothing to pick.
    """
    if not entitlements:
        return None

    shown_names = [
        _truncate(e.display_name, _MAX_ENTITLEMENT_NAME_WIDTH) for e in entitlements
    ]
    name_width = max((len(name) for name in shown_names), default=0)

    choices = [
        questionary.Choice(
            title=_entitlement_choice_title(e, name_width=name_width),
            value=e,
        )
        for e in entitlements
    ]

    return questionary.select(
        "Select entitlement:",
        choices=choices,
        style=QUESTIONARY_STYLE_SELECT,
        qmark="✦",
        instruction="Use ↑/↓ then Enter",
    ).ask()

"""Questionary / prompt_toolkit theme for segops.

Questionary uses prompt_toolkit under the hood. This module defines the
styles shared by every interactive prompt (select/confirm) so the CLI looks
consistent.
"""

from __future__ import annotations

from prompt_toolkit.styles import Style

QUESTIONARY_STYLE_SELECT = Style.from_dict(
    {
        "question": "bold ansibrightgreen",
        "answer": "bold ansibrightcyan",
        "pointer": "bold ansibrightcyan",
        "highlighted": "bold ansibrightcyan",
        "selected": "bold ansibrightcyan",
        "separator": "ansibrightblack",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
        "disabled": "ansibrightblack",
    }
)

# access changes are confirmed in red
QUESTIONARY_STYLE_CONFIRM = Style.from_dict(
    {
        "question": "bold ansibrightred",
        "answer": "bold ansibrightred",
        "pointer": "bold ansibrightred",
        "highlighted": "bold ansibrightred",
        "separator": "ansibrightblack",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
    }
)

"""Application context management for the CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from rich.logging import RichHandler

from segops.cli.common.exits import EXIT_INVALID_INPUT, die
from segops.cli.common.output import err_console
from segops.core.auth import AuthError, get_adapter
from segops.core.connector import SegmentConnector


@dataclass
class AppContext:
    """
    Connection settings collected by the root callback.

    The adapter and connector are built on first use so that ``--help`` on
    any sub-command works without credentials.
    """

    token: str | None
    base_url: str | None
    verbose: bool = False
    _connector: SegmentConnector | None = field(default=None, repr=False)

    @property
    def connector(self) -> SegmentConnector:
        if self._connector is None:
            try:
                adapter = get_adapter(self.token, self.base_url)
            except AuthError as exc:
                die(str(exc), code=EXIT_INVALID_INPUT)
            self._connector = SegmentConnector(adapter)
        return self._connector


def configure_logging(verbose: bool) -> None:
    """Route ``segops`` loggers through rich, on stderr."""
    logger = logging.getLogger("segops")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(console=err_console, show_path=False, markup=False)
        )
    logger.propagate = False


def build_context(
    token: str | None, base_url: str | None, *, verbose: bool = False
) -> AppContext:
    """Build the application context and configure logging.

    Args:
        token: Segment API token (falls back to SEGMENT_API_TOKEN).
        base_url: Optional API base URL override.
        verbose: Enable debug logging.

    Returns:
        AppContext: Context whose connector is created lazily.
    """
    configure_logging(verbose)
    return AppContext(token=token, base_url=base_url, verbose=verbose)

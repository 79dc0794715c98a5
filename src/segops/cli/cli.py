"""CLI application for Segment access-graph tooling."""

import typer

from segops.cli.commands import access, graph
from segops.cli.common.context import build_context
from segops.cli.common.options import BaseUrlOpt, TokenOpt, VerboseOpt

app = typer.Typer(
    help="segops - Segment users, groups, roles and permissions",
    no_args_is_help=True,
)


@app.callback()
def _init(
    ctx: typer.Context,
    token: str | None = TokenOpt,
    base_url: str | None = BaseUrlOpt,
    verbose: bool = VerboseOpt,
):
    """Collect connection settings shared by every command."""
    ctx.obj = build_context(token, base_url, verbose=verbose)


app.command()(graph.validate)
app.command()(graph.resources)
app.command()(graph.entitlements)
app.command()(graph.grants)
app.command()(access.grant)
app.command()(access.revoke)


if __name__ == "__main__":
    app()

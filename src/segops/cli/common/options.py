"""Common CLI options for the CLI."""

import typer

TokenOpt = typer.Option(
    None,
    "--token",
    envvar="SEGMENT_API_TOKEN",
    help="Segment Public API token",
    show_envvar=True,
)

BaseUrlOpt = typer.Option(
    None,
    "--base-url",
    envvar="SEGMENT_API_URL",
    help="Segment Public API base URL",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Log API requests and debug details",
)

KindArg = typer.Argument(
    ...,
    help="Resource type (user, group, role, workspace, resource, source, warehouse, function, space)",
    case_sensitive=False,
)

ResourceIdArg = typer.Argument(..., help="Upstream id of the resource")

ParentOpt = typer.Option(
    None,
    "--parent",
    help="Workspace id to list under (defaults to the token's workspace)",
)

UserOpt = typer.Option(None, "--user", help="User id of the principal")

GroupOpt = typer.Option(None, "--group", help="Group id of the principal")

EntitlementOpt = typer.Option(
    None,
    "--entitlement",
    "-e",
    help="Entitlement slug (or id); prompts when omitted",
)

DryRunOpt = typer.Option(
    False,
    "--dry-run",
    help="Show what would change, but don't change anything",
)

YesOpt = typer.Option(
    False,
    "--yes",
    "-y",
    help="Skip the confirmation prompt",
)

"""Read-only commands walking the Segment access graph."""

from __future__ import annotations

import typer

from segops.cli.common.context import AppContext
from segops.cli.common.exits import exit_from_segment_error, warn_exit
from segops.cli.common.options import KindArg, ParentOpt, ResourceIdArg
from segops.cli.common.output import out
from segops.cli.common.progress import drain_with_progress
from segops.core.errors import SegmentError
from segops.core.graph import ResourceKind
from segops.core.sync import (
    list_all_entitlements,
    list_all_grants,
    list_all_resources,
    resolve_resource,
)


def validate(ctx: typer.Context):
    """Check the API token and show the workspace it belongs to."""
    appctx: AppContext = ctx.obj
    connector = appctx.connector

    try:
        with out.status("Validating credentials..."):
            workspace = connector.validate()
    except SegmentError as exc:
        exit_from_segment_error(exc)

    meta = connector.metadata()
    out.success("Credentials are valid")
    out.kv(
        {
            "Connector": meta.display_name,
            "Workspace": workspace.name,
            "Workspace ID": workspace.id,
            "Slug": workspace.slug,
        }
    )


def resources(
    ctx: typer.Context,
    kind: ResourceKind = KindArg,
    parent: str | None = ParentOpt,
):
    """List every resource of a type."""
    appctx: AppContext = ctx.obj
    connector = appctx.connector

    try:
        parent_resource = None
        if parent:
            parent_resource = resolve_resource(connector, ResourceKind.WORKSPACE, parent)
        drained = drain_with_progress(
            f"Listing {kind.value} resources",
            lambda on_page: list_all_resources(
                connector, kind, parent_resource, on_page=on_page
            ),
        )
    except SegmentError as exc:
        exit_from_segment_error(exc)

    out.partial_errors(drained.errors)
    if not drained.items:
        warn_exit(f"No {kind.value} resources found")

    out.info(f"{kind.display_name} resources: {len(drained.items)}")
    out.resources_table(drained.items, title=f"{kind.display_name} resources")


def entitlements(
    ctx: typer.Context,
    kind: ResourceKind = KindArg,
    resource_id: str = ResourceIdArg,
):
    """List the entitlements a resource offers."""
    appctx: AppContext = ctx.obj
    connector = appctx.connector

    try:
        with out.status(f"Resolving {kind.value} {resource_id}..."):
            resource = resolve_resource(connector, kind, resource_id)
        drained = drain_with_progress(
            "Listing entitlements",
            lambda on_page: list_all_entitlements(connector, resource, on_page=on_page),
        )
    except SegmentError as exc:
        exit_from_segment_error(exc)

    if not drained.items:
        warn_exit(f"{resource.display_name} offers no entitlements")

    out.entitlements_table(drained.items, title=f"Entitlements on {resource.display_name}")


def grants(
    ctx: typer.Context,
    kind: ResourceKind = KindArg,
    resource_id: str = ResourceIdArg,
):
    """List who holds which entitlement on a resource."""
    appctx: AppContext = ctx.obj
    connector = appctx.connector

    try:
        with out.status(f"Resolving {kind.value} {resource_id}..."):
            resource = resolve_resource(connector, kind, resource_id)
        drained = drain_with_progress(
            "Listing grants",
            lambda on_page: list_all_grants(connector, resource, on_page=on_page),
        )
    except SegmentError as exc:
        exit_from_segment_error(exc)

    out.partial_errors(drained.errors)
    if not drained.items:
        warn_exit(f"No grants on {resource.display_name}")

    out.info(f"Grants: {len(drained.items)}")
    out.grants_table(drained.items, title=f"Grants on {resource.display_name}")

"""Commands that change who holds what."""

from __future__ import annotations

import typer

from segops.cli.common.context import AppContext
from segops.cli.common.exits import (
    EXIT_INVALID_INPUT,
    die,
    exit_from_segment_error,
    ok_exit,
    warn_exit,
)
from segops.cli.common.options import (
    DryRunOpt,
    EntitlementOpt,
    GroupOpt,
    KindArg,
    ResourceIdArg,
    UserOpt,
    YesOpt,
)
from segops.cli.common.output import out
from segops.cli.tui import select_entitlement
from segops.core.connector import SegmentConnector
from segops.core.errors import SegmentError
from segops.core.graph import Entitlement, Grant, Resource, ResourceId, ResourceKind
from segops.core.sync import find_entitlement, list_all_entitlements, resolve_resource


def _principal_or_exit(user: str | None, group: str | None) -> ResourceId:
    """Exactly one of --user / --group names the principal."""
    if bool(user) == bool(group):
        die("Pass exactly one of --user or --group.", code=EXIT_INVALID_INPUT)
    if user:
        return ResourceId(ResourceKind.USER, user)
    return ResourceId(ResourceKind.GROUP, group)


def _pick_entitlement(
    connector: SegmentConnector,
    kind: ResourceKind,
    resource_id: str,
    slug: str | None,
) -> tuple[Resource, Entitlement]:
    with out.status(f"Resolving {kind.value} {resource_id}..."):
        resource = resolve_resource(connector, kind, resource_id)
        entitlements = list_all_entitlements(connector, resource).items

    if not entitlements:
        warn_exit(f"{resource.display_name} offers no entitlements")
    if slug:
        return resource, find_entitlement(entitlements, slug)

    picked = select_entitlement(entitlements)
    if picked is None:
        warn_exit("No entitlement selected")
    return resource, picked


def _show_change(action: str, principal: ResourceId, entitlement: Entitlement) -> None:
    out.header(action)
    out.kv(
        {
            "Principal": str(principal),
            "Resource": f"{entitlement.resource.id} ({entitlement.resource.display_name})",
            "Entitlement": f"{entitlement.slug} ({entitlement.display_name})",
        }
    )


def grant(
    ctx: typer.Context,
    kind: ResourceKind = KindArg,
    resource_id: str = ResourceIdArg,
    user: str | None = UserOpt,
    group: str | None = GroupOpt,
    entitlement: str | None = EntitlementOpt,
    dry_run: bool = DryRunOpt,
    yes: bool = YesOpt,
):
    """
    Give a user or group an entitlement on a resource.
    """
    appctx: AppContext = ctx.obj
    principal = _principal_or_exit(user, group)
    connector = appctx.connector

    try:
        _, picked = _pick_entitlement(connector, kind, resource_id, entitlement)
    except SegmentError as exc:
        exit_from_segment_error(exc)

    if picked.grantable_to and principal.kind not in picked.grantable_to:
        die(
            f"{picked.slug} cannot be granted to a {principal.kind.value}.",
            code=EXIT_INVALID_INPUT,
        )

    _show_change("Grant", principal, picked)

    if dry_run:
        warn_exit("Dry-run enabled: nothing was granted")

    if not yes and not out.confirm("Apply this grant?"):
        ok_exit("Cancelled")

    try:
        with out.status("Granting..."):
            changed = connector.syncer(kind).grant(principal, picked)
    except SegmentError as exc:
        exit_from_segment_error(exc)

    if changed:
        out.success(f"Granted {picked.slug} to {principal}")
    else:
        out.info(f"{principal} already holds {picked.slug}; nothing to do")


def revoke(
    ctx: typer.Context,
    kind: ResourceKind = KindArg,
    resource_id: str = ResourceIdArg,
    user: str | None = UserOpt,
    group: str | None = GroupOpt,
    entitlement: str | None = EntitlementOpt,
    dry_run: bool = DryRunOpt,
    yes: bool = YesOpt,
):
    """
    Take an entitlement on a resource away from a user or group.
    """
    appctx: AppContext = ctx.obj
    principal = _principal_or_exit(user, group)
    connector = appctx.connector

    try:
        _, picked = _pick_entitlement(connector, kind, resource_id, entitlement)
    except SegmentError as exc:
        exit_from_segment_error(exc)

    _show_change("Revoke", principal, picked)
    if picked.binding is not None:
        # the upstream stores one list per principal; removal is per role
        out.warn(
            "Segment permissions are revoked per role: every entry of this role "
            f"held by {principal} is removed, on all resources."
        )

    if dry_run:
        warn_exit("Dry-run enabled: nothing was revoked")

    if not yes and not out.confirm("Apply this revoke?"):
        ok_exit("Cancelled")

    try:
        with out.status("Revoking..."):
            changed = connector.syncer(kind).revoke(
                Grant(entitlement=picked, principal=principal)
            )
    except SegmentError as exc:
        exit_from_segment_error(exc)

    if changed:
        out.success(f"Revoked {picked.slug} from {principal}")
    else:
        out.info(f"{principal} does not hold {picked.slug}; nothing to do")

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from segops.core.connector import SegmentConnector
from segops.core.errors import PaginationError, PreconditionError
from segops.core.graph import Entitlement, Grant, Page, Resource, ResourceKind
from segops.core.syncers.base import dedupe

T = TypeVar("T")


@dataclass
class Drained(Generic[T]):
    """Everything a paginated listing produced, plus per-sub-kind failures."""

    items: list[T] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    pages: int = 0

    @property
    def complete(self) -> bool:
        return not self.errors


def drain(
    fetch: Callable[[str], Page[T]],
    *,
    on_page: Callable[[Page[T]], None] | None = None,
) -> Drained[T]:
    """
    Call ``fetch`` with successive tokens until it returns an empty one.

    Raises:
        PaginationError: If a token is handed back twice, which would
            otherwise loop forever.
    """
    result: Drained[T] = Drained()
    seen: set[str] = set()
    token = ""
    while True:
        page = fetch(token)
        result.pages += 1
        result.items.extend(page.items)
        result.errors.update(page.errors)
        if on_page is not None:
            on_page(page)
        if page.done:
            return result
        if page.next_token in seen:
            raise PaginationError("Listing returned a page token it already used.")
        seen.add(page.next_token)
        token = page.next_token


def workspace_root(connector: SegmentConnector) -> Resource:
    """Return the workspace resource every other kind is listed under."""
    page = connector.syncer(ResourceKind.WORKSPACE).list(None)
    if not page.items:
        raise PreconditionError("The token does not resolve to a workspace.")
    return page.items[0]


def list_all_resources(
    connector: SegmentConnector,
    kind: ResourceKind,
    parent: Resource | None = None,
    *,
    on_page: Callable[[Page[Resource]], None] | None = None,
) -> Drained[Resource]:
    """List every resource of ``kind``; non-root kinds default to the workspace."""
    syncer = connector.syncer(kind)
    if parent is None and kind is not ResourceKind.WORKSPACE:
        parent = workspace_root(connector)
    parent_id = parent.id if parent is not None else None
    drained = drain(lambda token: syncer.list(parent_id, token), on_page=on_page)
    drained.items = dedupe(drained.items, key=lambda r: r.id)
    return drained


def list_all_entitlements(
    connector: SegmentConnector,
    resource: Resource,
    *,
    on_page: Callable[[Page[Entitlement]], None] | None = None,
) -> Drained[Entitlement]:
    syncer = connector.syncer(resource.kind)
    return drain(lambda token: syncer.list_entitlements(resource, token), on_page=on_page)


def list_all_grants(
    connector: SegmentConnector,
    resource: Resource,
    *,
    on_page: Callable[[Page[Grant]], None] | None = None,
) -> Drained[Grant]:
    syncer = connector.syncer(resource.kind)
    drained = drain(lambda token: syncer.list_grants(resource, token), on_page=on_page)
    drained.items = dedupe(drained.items, key=lambda g: g.id)
    return drained


def resolve_resource(
    connector: SegmentConnector, kind: ResourceKind, resource_id: str
) -> Resource:
    """
    Find one resource by kind and upstream id.

    Raises:
        PreconditionError: If no resource of that kind has the id.
    """
    for resource in list_all_resources(connector, kind).items:
        if resource.id.id == resource_id:
            return resource
    raise PreconditionError(f"No {kind.value} with id {resource_id!r}.")


def find_entitlement(entitlements: list[Entitlement], slug: str) -> Entitlement:
    """Pick an entitlement by slug (or by full entitlement id)."""
    for entitlement in entitlements:
        if slug in (entitlement.slug, entitlement.id):
            return entitlement
    raise PreconditionError(f"No entitlement {slug!r} on this resource.")

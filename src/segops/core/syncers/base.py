"""Shared synchronizer machinery.

Every resource kind is served by one syncer exposing the same host-facing
operations: ``list``, ``list_entitlements``, ``list_grants`` and, for kinds
that can change access, ``grant`` and ``revoke``. Syncers close over the
adapter, the role-marker table and the reconciler and are never mutated
after construction; the page token is the only state carried between calls.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Protocol, Sequence, TypeVar

from segops.core.adapters.segment import SegmentAdapter
from segops.core.errors import PaginationError, PreconditionError
from segops.core.graph import (
    Entitlement,
    Grant,
    GrantExpandable,
    Page,
    Resource,
    ResourceId,
    ResourceKind,
    RoleBinding,
    entitlement_id,
)
from segops.core.markers import RoleMarkers
from segops.core.models import Permission
from segops.core.pagination import Bag, PageState
from segops.core.reconcile import Reconciler
from segops.core.resources import MEMBER

logger = logging.getLogger(__name__)

R = TypeVar("R")
T = TypeVar("T")


class ResourceSyncer(Protocol):
    """Host-facing interface of a resource kind."""

    @property
    def resource_kind(self) -> ResourceKind:
        """Kind served by this syncer."""
        ...

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        """Return one page of resources of this kind under ``parent``."""
        ...

    def list_entitlements(self, resource: Resource, token: str = "") -> Page[Entitlement]:
        """Return one page of entitlements offered by ``resource``."""
        ...

    def list_grants(self, resource: Resource, token: str = "") -> Page[Grant]:
        """Return one page of grants in effect on ``resource``."""
        ...

    def grant(self, principal: Resource | ResourceId, entitlement: Entitlement) -> bool:
        """Give ``principal`` the entitlement; False if nothing had to change."""
        ...

    def revoke(self, grant: Grant) -> bool:
        """Take the grant away; False if nothing had to change."""
        ...


def principal_id(principal: Resource | ResourceId) -> ResourceId:
    return principal.id if isinstance(principal, Resource) else principal


def dedupe(items: Iterable[T], key: Callable[[T], object]) -> list[T]:
    """Drop repeated items (by key), keeping first occurrences in order."""
    seen: set[object] = set()
    out: list[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out


RoleNames = Callable[[Permission], str]


def role_name_index(adapter: SegmentAdapter) -> dict[str, str]:
    """Return role id -> role name for every role in the workspace."""
    names: dict[str, str] = {}
    cursor = ""
    while True:
        roles, cursor = adapter.list_roles(cursor)
        names.update((role.id, role.name) for role in roles)
        if not cursor:
            return names


def lazy_role_names(adapter: SegmentAdapter) -> RoleNames:
    """
    Return a resolver giving each permission its role name.

    Names missing from the permission come from ``role_name_index``, which
    is listed on the first such lookup and reused afterwards. A resolver
    that is never asked lists nothing.
    """
    index: dict[str, str] | None = None

    def name_of(permission: Permission) -> str:
        nonlocal index
        if permission.role_name:
            return permission.role_name
        if index is None:
            index = role_name_index(adapter)
        return index.get(permission.role_id, "")

    return name_of


class BaseSyncer:
    """Default, read-only behaviour: nothing to list and no mutations."""

    kind: ResourceKind

    def __init__(
        self,
        adapter: SegmentAdapter,
        reconciler: Reconciler,
        markers: RoleMarkers,
    ) -> None:
        self.adapter = adapter
        self.reconciler = reconciler
        self.markers = markers

    @property
    def resource_kind(self) -> ResourceKind:
        return self.kind

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        return Page()

    def list_entitlements(self, resource: Resource, token: str = "") -> Page[Entitlement]:
        return Page()

    def list_grants(self, resource: Resource, token: str = "") -> Page[Grant]:
        return Page()

    def grant(self, principal: Resource | ResourceId, entitlement: Entitlement) -> bool:
        raise PreconditionError(f"{self.kind.value} resources do not support grants.")

    def revoke(self, grant: Grant) -> bool:
        raise PreconditionError(f"{self.kind.value} resources do not support revokes.")

    def _paged(
        self,
        token: str,
        fetch: Callable[[str], tuple[Sequence[R], str]],
        build: Callable[[R], T],
        *,
        default: PageState | None = None,
    ) -> Page[T]:
        """Fetch the page the token points at, then advance the bag."""
        bag = Bag.parse(token, default or PageState(self.kind.value))
        records, next_cursor = fetch(bag.cursor)
        items = [build(record) for record in records]
        return Page(items=items, next_token=bag.advance(next_cursor))


class PermissionSyncer(BaseSyncer):
    """Syncer whose grants and revokes rewrite principal permission sets."""

    def _binding(self, entitlement: Entitlement) -> RoleBinding:
        if entitlement.binding is None:
            raise PreconditionError(
                f"Entitlement {entitlement.id} is not bound to a Segment role."
            )
        return entitlement.binding

    def _grant_target_id(self, entitlement: Entitlement) -> str:
        """Upstream resource id the new permission entry is scoped to."""
        return entitlement.resource.id.id

    def grant(self, principal: Resource | ResourceId, entitlement: Entitlement) -> bool:
        binding = self._binding(entitlement)
        return self.reconciler.grant(
            principal_id(principal),
            binding.role_id,
            binding.resource_type,
            self._grant_target_id(entitlement),
        )

    def revoke(self, grant: Grant) -> bool:
        binding = self._binding(grant.entitlement)
        return self.reconciler.revoke(grant.principal, binding.role_id)

    def _principal_fanout(
        self,
        resource: Resource,
        token: str,
        match: Callable[[Permission], bool],
        entitlement_for: Callable[[Permission, RoleNames], Entitlement],
    ) -> Page[Grant]:
        """
        List grants on ``resource`` by scanning every principal's permissions.

        The first call replaces the seed frame with two frames so that all
        user pages are visited first, then all group pages. Each call fetches
        exactly one upstream page; role names are listed only if
        ``entitlement_for`` asks for a name the permission lacks.
        """
        bag = Bag.parse(token, PageState(self.kind.value, resource.id.id))
        if bag.resource_type_id == self.kind.value:
            bag.pop()
            bag.push(PageState(ResourceKind.GROUP.value))
            bag.push(PageState(ResourceKind.USER.value))

        kind = bag.current_resource_kind()
        names = lazy_role_names(self.adapter)
        grants: list[Grant] = []
        if kind is ResourceKind.USER:
            users, next_cursor = self.adapter.list_users(bag.cursor)
            for user in users:
                principal = ResourceId(ResourceKind.USER, user.id)
                grants.extend(
                    Grant(entitlement=entitlement_for(p, names), principal=principal)
                    for p in user.permissions
                    if match(p)
                )
        elif kind is ResourceKind.GROUP:
            groups, next_cursor = self.adapter.list_groups(bag.cursor)
            for group in groups:
                principal = ResourceId(ResourceKind.GROUP, group.id)
                expandable = GrantExpandable(
                    entitlement_ids=(entitlement_id(ResourceKind.GROUP, group.id, MEMBER),),
                    shallow=True,
                )
                grants.extend(
                    Grant(
                        entitlement=entitlement_for(p, names),
                        principal=principal,
                        expandable=expandable,
                    )
                    for p in group.permissions
                    if match(p)
                )
        else:
            raise PaginationError(
                f"Unexpected resource type {kind.value!r} while listing "
                f"{self.kind.value} grants."
            )

        return Page(
            items=dedupe(grants, key=lambda g: g.id),
            next_token=bag.advance(next_cursor),
        )

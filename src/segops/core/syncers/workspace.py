from __future__ import annotations

from segops.core.graph import Entitlement, Grant, Page, Resource, ResourceId, ResourceKind
from segops.core.pagination import PageState
from segops.core.resources import membership_entitlement, workspace_resource
from segops.core.syncers.base import BaseSyncer


class WorkspaceSyncer(BaseSyncer):
    """The workspace the token belongs to: graph root, every user is a member."""

    kind = ResourceKind.WORKSPACE

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        workspace = self.adapter.get_workspace()
        return Page(items=[workspace_resource(workspace)])

    def _member_entitlement(self, resource: Resource) -> Entitlement:
        return membership_entitlement(resource, grantable_to=(ResourceKind.USER,))

    def list_entitlements(self, resource: Resource, token: str = "") -> Page[Entitlement]:
        return Page(items=[self._member_entitlement(resource)])

    def list_grants(self, resource: Resource, token: str = "") -> Page[Grant]:
        entitlement = self._member_entitlement(resource)
        return self._paged(
            token,
            self.adapter.list_users,
            lambda user: Grant(
                entitlement=entitlement,
                principal=ResourceId(ResourceKind.USER, user.id),
            ),
            default=PageState(ResourceKind.USER.value),
        )

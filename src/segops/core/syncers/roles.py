from __future__ import annotations

from segops.core.graph import (
    WORKSPACE_TYPE,
    Entitlement,
    Grant,
    Page,
    Resource,
    ResourceId,
    ResourceKind,
)
from segops.core.models import Permission, Role
from segops.core.pagination import PageState
from segops.core.resources import (
    permission_entitlement,
    role_membership_entitlement,
    role_resource,
    role_target_resource,
)
from segops.core.syncers.base import PermissionSyncer, RoleNames, dedupe


class RoleSyncer(PermissionSyncer):
    """Workspace roles; holding a role means a WORKSPACE-scoped permission."""

    kind = ResourceKind.ROLE

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        if parent is None:
            return Page()
        return self._paged(
            token,
            self.adapter.list_roles,
            lambda role: role_resource(role, parent),
        )

    def list_entitlements(self, resource: Resource, token: str = "") -> Page[Entitlement]:
        return Page(items=[role_membership_entitlement(resource)])

    def list_grants(self, resource: Resource, token: str = "") -> Page[Grant]:
        entitlement = role_membership_entitlement(resource)

        def holds_role(permission: Permission) -> bool:
            return permission.role_id == resource.id.id and any(
                r.type == WORKSPACE_TYPE for r in permission.resources
            )

        return self._principal_fanout(
            resource, token, holds_role, lambda _p, _names: entitlement
        )

    def _grant_target_id(self, entitlement: Entitlement) -> str:
        parent = entitlement.resource.parent
        if parent is not None and parent.kind is ResourceKind.WORKSPACE:
            return parent.id
        return self.adapter.get_workspace().id


class RoleTargetSyncer(PermissionSyncer):
    """
    Resources discovered through user permissions.

    Every role is offered on these wrappers; the upstream resource type is
    kept in the profile so grants can write it back unchanged.
    """

    kind = ResourceKind.RESOURCE

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        if parent is None:
            return Page()
        page = self._paged(
            token,
            self.adapter.list_users,
            lambda user: [
                role_target_resource(target, parent)
                for permission in user.permissions
                for target in permission.resources
            ],
            default=PageState(ResourceKind.USER.value),
        )
        resources = [r for batch in page.items for r in batch]
        return Page(
            items=dedupe(resources, key=lambda r: (r.profile["resource_type"], r.id.id)),
            next_token=page.next_token,
        )

    def _upstream_type(self, resource: Resource) -> str:
        return str(resource.profile.get("resource_type") or resource.display_name)

    def list_entitlements(self, resource: Resource, token: str = "") -> Page[Entitlement]:
        resource_type = self._upstream_type(resource)
        return self._paged(
            token,
            self.adapter.list_roles,
            lambda role: permission_entitlement(role, resource, resource_type),
            default=PageState(ResourceKind.ROLE.value),
        )

    def list_grants(self, resource: Resource, token: str = "") -> Page[Grant]:
        resource_type = self._upstream_type(resource)

        def on_resource(permission: Permission) -> bool:
            return permission.covers(resource.id.id)

        def entitlement_for(permission: Permission, names: RoleNames) -> Entitlement:
            role = Role(
                id=permission.role_id,
                name=names(permission),
            )
            return permission_entitlement(role, resource, resource_type)

        return self._principal_fanout(resource, token, on_resource, entitlement_for)

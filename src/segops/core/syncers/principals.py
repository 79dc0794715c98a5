from __future__ import annotations

import logging

from segops.core.errors import PreconditionError
from segops.core.graph import (
    UPSTREAM_TARGET_KINDS,
    WORKSPACE_TYPE,
    Entitlement,
    Grant,
    Page,
    Resource,
    ResourceId,
    ResourceKind,
)
from segops.core.models import Role
from segops.core.pagination import PageState
from segops.core.resources import (
    group_resource,
    membership_entitlement,
    permission_entitlement,
    role_membership_entitlement,
    role_resource,
    target_resource,
    user_resource,
)
from segops.core.syncers.base import (
    BaseSyncer,
    dedupe,
    lazy_role_names,
    principal_id,
)

logger = logging.getLogger(__name__)


class UserSyncer(BaseSyncer):
    """
    Users, plus the reverse mapping of their permissions into grants.

    Segment models access principal-first: a user carries its permissions,
    resources do not list who may use them. Grants on roles (workspace
    scope) and on sources, warehouses, functions and spaces are therefore
    emitted here, from the user side.
    """

    kind = ResourceKind.USER

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        if parent is None:
            return Page()
        return self._paged(
            token,
            self.adapter.list_users,
            lambda user: user_resource(user, parent),
        )

    def list_grants(self, resource: Resource, token: str = "") -> Page[Grant]:
        user = self.adapter.get_user(resource.id.id)
        principal = ResourceId(ResourceKind.USER, user.id)
        parent = resource.parent
        names = lazy_role_names(self.adapter)

        grants: list[Grant] = []
        for permission in user.permissions:
            role = Role(
                id=permission.role_id,
                name=names(permission),
            )
            for target in permission.resources:
                if target.type == WORKSPACE_TYPE:
                    entitlement = role_membership_entitlement(role_resource(role, parent))
                elif target.type in UPSTREAM_TARGET_KINDS:
                    kind = UPSTREAM_TARGET_KINDS[target.type]
                    entitlement = permission_entitlement(
                        role,
                        target_resource(kind, target.id, target.id, parent),
                        target.type,
                    )
                else:
                    logger.warning(
                        "skipping permission on unsupported resource type %s (user=%s role=%s)",
                        target.type,
                        user.id,
                        role.id,
                    )
                    continue
                grants.append(Grant(entitlement=entitlement, principal=principal))

        return Page(items=dedupe(grants, key=lambda g: g.id))


class GroupSyncer(BaseSyncer):
    """User groups and their memberships."""

    kind = ResourceKind.GROUP

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        if parent is None:
            return Page()
        return self._paged(
            token,
            self.adapter.list_groups,
            lambda group: group_resource(group, parent),
        )

    def _member_entitlement(self, resource: Resource) -> Entitlement:
        return membership_entitlement(resource, grantable_to=(ResourceKind.USER,))

    def list_entitlements(self, resource: Resource, token: str = "") -> Page[Entitlement]:
        return Page(items=[self._member_entitlement(resource)])

    def list_grants(self, resource: Resource, token: str = "") -> Page[Grant]:
        entitlement = self._member_entitlement(resource)
        return self._paged(
            token,
            lambda cursor: self.adapter.list_group_members(resource.id.id, cursor),
            lambda user: Grant(
                entitlement=entitlement,
                principal=ResourceId(ResourceKind.USER, user.id),
            ),
            default=PageState(ResourceKind.USER.value),
        )

    def _member_email(self, principal: Resource | ResourceId, action: str) -> str:
        pid = principal_id(principal)
        if pid.kind is not ResourceKind.USER:
            logger.warning(
                "only users can %s group membership (principal_type=%s principal_id=%s)",
                action,
                pid.kind.value,
                pid.id,
            )
            raise PreconditionError(
                f"Only users can {action} group membership, got {pid.kind.value}."
            )
        email = ""
        if isinstance(principal, Resource):
            email = str(principal.profile.get("login") or principal.email or "")
        if not email:
            email = self.adapter.get_user(pid.id).email
        if not email:
            raise PreconditionError(f"User {pid.id} has no email address.")
        return email

    def grant(self, principal: Resource | ResourceId, entitlement: Entitlement) -> bool:
        email = self._member_email(principal, "be granted")
        group_id = entitlement.resource.id.id
        self.adapter.add_group_member(group_id, email)
        logger.info("added %s to group %s", email, group_id)
        return True

    def revoke(self, grant: Grant) -> bool:
        email = self._member_email(grant.principal, "have revoked")
        group_id = grant.entitlement.resource.id.id
        self.adapter.remove_group_member(group_id, email)
        logger.info("removed %s from group %s", email, group_id)
        return True

"""Builders turning Segment records into graph resources and entitlements."""

from __future__ import annotations

import re

from segops.core.graph import (
    WORKSPACE_TYPE,
    Entitlement,
    Resource,
    ResourceId,
    ResourceKind,
    RoleBinding,
)
from segops.core.models import Group, PermissionResource, Role, User, Workspace

MEMBER = "member"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"[^A-Za-z0-9]+")


def snake_case(name: str) -> str:
    """Return ``name`` as snake_case ("Source Admin" -> "source_admin")."""
    spaced = _CAMEL_BOUNDARY.sub("_", name.strip())
    return _NON_WORD.sub("_", spaced).strip("_").lower()


def split_full_name(name: str) -> tuple[str, str]:
    """Split a full name on the first space into (first, last)."""
    parts = name.strip().split(" ", 1)
    first = parts[0]
    last = parts[1].strip() if len(parts) == 2 else ""
    return first, last


def workspace_resource(workspace: Workspace) -> Resource:
    """The graph root; every other kind is enumerated beneath it."""
    return Resource(
        id=ResourceId(ResourceKind.WORKSPACE, workspace.id),
        display_name=workspace.name or workspace.id,
        profile={"workspace_slug": workspace.slug},
        child_kinds=tuple(k for k in ResourceKind if k is not ResourceKind.WORKSPACE),
    )


def user_resource(user: User, parent: ResourceId | None) -> Resource:
    first_name, last_name = split_full_name(user.name)
    return Resource(
        id=ResourceId(ResourceKind.USER, user.id),
        display_name=user.name or user.email or user.id,
        parent=parent,
        profile={
            "first_name": first_name,
            "last_name": last_name,
            "login": user.email,
            "user_id": user.id,
        },
        email=user.email,
        enabled=True,
    )


def group_resource(group: Group, parent: ResourceId | None) -> Resource:
    return Resource(
        id=ResourceId(ResourceKind.GROUP, group.id),
        display_name=group.name or group.id,
        parent=parent,
        profile={"group_name": group.name, "group_id": group.id},
    )


def role_resource(role: Role, parent: ResourceId | None) -> Resource:
    return Resource(
        id=ResourceId(ResourceKind.ROLE, role.id),
        display_name=role.name or role.id,
        parent=parent,
        profile={
            "role_name": role.name,
            "role_id": role.id,
            "role_description": role.description,
        },
    )


def target_resource(
    kind: ResourceKind,
    resource_id: str,
    display_name: str,
    parent: ResourceId | None,
) -> Resource:
    """A permission-bearing resource (source, warehouse, function, space)."""
    return Resource(
        id=ResourceId(kind, resource_id),
        display_name=display_name or resource_id,
        parent=parent,
        profile={"resource_type": kind.upstream_type},
    )


def role_target_resource(
    target: PermissionResource, parent: ResourceId | None
) -> Resource:
    """Wrap a resource found in a permission entry, keeping its upstream type."""
    return Resource(
        id=ResourceId(ResourceKind.RESOURCE, target.id),
        display_name=target.type,
        parent=parent,
        profile={
            "resource_name": target.type,
            "resource_id": target.id,
            "resource_type": target.type,
        },
    )


def membership_entitlement(
    resource: Resource,
    *,
    grantable_to: tuple[ResourceKind, ...],
    binding: RoleBinding | None = None,
) -> Entitlement:
    """The single ``member`` entitlement of a workspace, group or role."""
    noun = resource.kind.value
    return Entitlement(
        resource=resource,
        slug=MEMBER,
        display_name=f"{resource.display_name} {noun} {MEMBER}",
        description=f"Member of {resource.display_name} Segment {noun}",
        purpose="assignment",
        grantable_to=grantable_to,
        binding=binding,
    )


def role_membership_entitlement(resource: Resource) -> Entitlement:
    """Role ``member``: holding the role on the parent workspace."""
    return membership_entitlement(
        resource,
        grantable_to=(ResourceKind.USER, ResourceKind.GROUP),
        binding=RoleBinding(role_id=resource.id.id, resource_type=WORKSPACE_TYPE),
    )


def permission_entitlement(
    role: Role, resource: Resource, resource_type: str
) -> Entitlement:
    """An entitlement meaning "holds ``role`` on ``resource``"."""
    description = f"{role.name} on {resource.display_name}"
    if role.description:
        description = f"{description}: {role.description}"
    return Entitlement(
        resource=resource,
        slug=snake_case(role.name),
        display_name=f"{resource.display_name} resource {role.name}",
        description=description,
        purpose="permission",
        grantable_to=(ResourceKind.USER, ResourceKind.GROUP),
        binding=RoleBinding(role_id=role.id, resource_type=resource_type),
    )

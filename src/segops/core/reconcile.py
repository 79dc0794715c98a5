"""Permission reconciliation for users and groups.

Segment only lets us replace a principal's whole permission list, so every
grant and revoke is a read-modify-write: fetch the current list, add or
remove entries, and write the full list back.

Two upstream behaviours are preserved on purpose:

- Granting deduplicates: when an entry for the same role already covers
  the resource, nothing is written.
- Revoking removes every entry under the role, not only the one resource
  the grant was about. A permission entry is keyed by role, so there is no
  narrower write available.

Writes for one principal are serialized through PrincipalLocks within this
process; callers running several processes must serialize on their side.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol, Sequence

from segops.core.errors import PreconditionError
from segops.core.graph import PRINCIPAL_KINDS, ResourceId, ResourceKind
from segops.core.models import Group, Permission, PermissionResource, User

logger = logging.getLogger(__name__)


class PermissionsAdapter(Protocol):
    """Interface for reading and replacing principal permission sets."""

    def get_user(self, user_id: str) -> User:
        """Return a user including permissions."""
        ...

    def get_group(self, group_id: str) -> Group:
        """Return a group including permissions."""
        ...

    def set_permissions(
        self,
        principal_id: str,
        principal_kind: ResourceKind,
        permissions: Sequence[Permission],
    ) -> list[Permission]:
        """Replace the full permission set of a principal."""
        ...


def add_permission(
    permissions: Sequence[Permission],
    role_id: str,
    resource_type: str,
    resource_id: str,
) -> list[Permission] | None:
    """
    Return ``permissions`` plus an entry for (role, resource).

    Returns None when an entry for the role already covers the resource.
    """
    if any(p.role_id == role_id and p.covers(resource_id) for p in permissions):
        return None
    entry = Permission(
        role_id=role_id,
        resources=(PermissionResource(id=resource_id, type=resource_type),),
    )
    return [*permissions, entry]


def remove_role(permissions: Sequence[Permission], role_id: str) -> list[Permission]:
    """Return ``permissions`` without any entry for ``role_id``."""
    return [p for p in permissions if p.role_id != role_id]


class PrincipalLocks:
    """
    One lock per principal, created on first use.

    Locks are kept for the life of the registry, one per principal ever
    written; a long-running host should scope a registry to a sync run.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[ResourceId, threading.Lock] = {}

    def for_principal(self, principal: ResourceId) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(principal)
            if lock is None:
                lock = self._locks[principal] = threading.Lock()
            return lock


class Reconciler:
    """Applies role grants and revokes to a principal's permission set."""

    def __init__(
        self, adapter: PermissionsAdapter, locks: PrincipalLocks | None = None
    ) -> None:
        self.adapter = adapter
        self.locks = locks or PrincipalLocks()

    def _check_principal(self, principal: ResourceId, action: str) -> None:
        if principal.kind not in PRINCIPAL_KINDS:
            logger.warning(
                "only users and groups can %s permissions (principal_type=%s principal_id=%s)",
                action,
                principal.kind.value,
                principal.id,
            )
            raise PreconditionError(
                f"Only users and groups can {action} permissions, "
                f"got {principal.kind.value}."
            )

    def current_permissions(self, principal: ResourceId) -> list[Permission]:
        """Fetch the principal's current permission set."""
        self._check_principal(principal, "hold")
        if principal.kind is ResourceKind.USER:
            return list(self.adapter.get_user(principal.id).permissions)
        return list(self.adapter.get_group(principal.id).permissions)

    def grant(
        self,
        principal: ResourceId,
        role_id: str,
        resource_type: str,
        resource_id: str,
    ) -> bool:
        """
        Give ``principal`` the role on one resource.

        Returns:
            True if the permission set was written, False if the principal
            already held the role on that resource.
        """
        self._check_principal(principal, "be granted")
        with self.locks.for_principal(principal):
            current = self.current_permissions(principal)
            updated = add_permission(current, role_id, resource_type, resource_id)
            if updated is None:
                logger.debug(
                    "%s already holds role %s on %s; skipping write",
                    principal,
                    role_id,
                    resource_id,
                )
                return False
            self.adapter.set_permissions(principal.id, principal.kind, updated)
        logger.info(
            "granted role %s on %s %s to %s", role_id, resource_type, resource_id, principal
        )
        return True

    def revoke(self, principal: ResourceId, role_id: str) -> bool:
        """
        Remove every permission entry for the role from ``principal``.

        Returns:
            True if the permission set was written, False if the principal
            held no entry for the role.
        """
        self._check_principal(principal, "have revoked")
        with self.locks.for_principal(principal):
            current = self.current_permissions(principal)
            updated = remove_role(current, role_id)
            if len(updated) == len(current):
                logger.debug("%s holds no role %s; skipping write", principal, role_id)
                return False
            self.adapter.set_permissions(principal.id, principal.kind, updated)
        logger.info(
            "revoked role %s from %s (%d entries removed)",
            role_id,
            principal,
            len(current) - len(updated),
        )
        return True

"""Connector descriptor and syncer registry.

A host talks to one ``SegmentConnector``: it reads the metadata and resource
type descriptors once, validates credentials, then drives the per-kind
syncers returned by ``syncers()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from segops.core.adapters.segment import SegmentAdapter
from segops.core.errors import PreconditionError, SegmentError, ValidationError
from segops.core.graph import ResourceKind, ResourceTypeDescriptor
from segops.core.markers import RoleMarkers
from segops.core.models import Workspace
from segops.core.reconcile import PrincipalLocks, Reconciler
from segops.core.syncers.base import BaseSyncer
from segops.core.syncers.principals import GroupSyncer, UserSyncer
from segops.core.syncers.roles import RoleSyncer, RoleTargetSyncer
from segops.core.syncers.targets import (
    FunctionSyncer,
    SourceSyncer,
    SpaceSyncer,
    WarehouseSyncer,
)
from segops.core.syncers.workspace import WorkspaceSyncer

logger = logging.getLogger(__name__)

DISPLAY_NAME = "Segment"
DESCRIPTION = (
    "Connector syncing Segment users, groups, roles, workspaces and resources."
)

# trait tags attached to resource type descriptors
TRAIT_USER = "user"
TRAIT_GROUP = "group"
TRAIT_ROLE = "role"

_TRAITS: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.USER: (TRAIT_USER,),
    ResourceKind.GROUP: (TRAIT_GROUP,),
    ResourceKind.ROLE: (TRAIT_ROLE,),
}

# registration order; the workspace comes first as it is the graph root
_SYNCER_CLASSES: tuple[type[BaseSyncer], ...] = (
    WorkspaceSyncer,
    UserSyncer,
    GroupSyncer,
    RoleSyncer,
    RoleTargetSyncer,
    SourceSyncer,
    WarehouseSyncer,
    FunctionSyncer,
    SpaceSyncer,
)


@dataclass(frozen=True)
class ConnectorMetadata:
    display_name: str
    description: str


class SegmentConnector:
    """Entry point a host uses to synchronize one Segment workspace."""

    def __init__(
        self,
        adapter: SegmentAdapter,
        *,
        markers: RoleMarkers | None = None,
        locks: PrincipalLocks | None = None,
    ) -> None:
        self.adapter = adapter
        self.markers = markers or RoleMarkers()
        self.reconciler = Reconciler(adapter, locks=locks)
        self._syncers: dict[ResourceKind, BaseSyncer] = {
            cls.kind: cls(adapter, self.reconciler, self.markers)
            for cls in _SYNCER_CLASSES
        }

    def metadata(self) -> ConnectorMetadata:
        return ConnectorMetadata(display_name=DISPLAY_NAME, description=DESCRIPTION)

    def validate(self) -> Workspace:
        """
        Check that the credentials can read the workspace.

        Returns:
            The workspace the token belongs to.

        Raises:
            ValidationError: If the workspace cannot be fetched.
        """
        try:
            workspace = self.adapter.get_workspace()
        except SegmentError as exc:
            logger.warning("validation failed: %s", exc)
            raise ValidationError(f"Segment credentials are invalid: {exc}") from exc
        logger.debug("validated workspace %s (%s)", workspace.id, workspace.slug)
        return workspace

    def resource_types(self) -> list[ResourceTypeDescriptor]:
        return [
            ResourceTypeDescriptor(kind=kind, traits=_TRAITS.get(kind, ()))
            for kind in self._syncers
        ]

    def syncers(self) -> list[BaseSyncer]:
        return list(self._syncers.values())

    def syncer(self, kind: ResourceKind | str) -> BaseSyncer:
        """Return the syncer serving ``kind`` (a ResourceKind or its value)."""
        try:
            return self._syncers[ResourceKind(kind)]
        except (KeyError, ValueError) as exc:
            raise PreconditionError(f"Unknown resource type: {kind!r}") from exc

"""Role applicability rules.

Segment has no field saying which resource kind a role applies to; the
convention is that the role name contains a marker ("Source Admin",
"Engage Editor"). RoleMarkers turns that convention into an explicit table.
Names matching no marker fall back to the catch-all kind; without a
catch-all they are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from segops.core.errors import UnmappedRoleError
from segops.core.graph import ResourceKind

DEFAULT_MARKERS: Mapping[ResourceKind, str] = {
    ResourceKind.FUNCTION: "Function",
    ResourceKind.SOURCE: "Source",
    ResourceKind.WAREHOUSE: "Warehouse",
    # role names for spaces say "Engage", never "Space"
    ResourceKind.SPACE: "Engage",
}


@dataclass(frozen=True)
class RoleMarkers:
    """Maps resource kinds to the substring their role names carry."""

    markers: Mapping[ResourceKind, str] = field(
        default_factory=lambda: dict(DEFAULT_MARKERS)
    )
    catch_all: ResourceKind | None = ResourceKind.WORKSPACE

    def kinds_for(self, role_name: str) -> frozenset[ResourceKind]:
        """
        Return every kind the role applies to.

        Raises:
            UnmappedRoleError: If no marker matches and there is no catch-all.
        """
        kinds = frozenset(k for k, m in self.markers.items() if m in role_name)
        if kinds:
            return kinds
        if self.catch_all is None:
            raise UnmappedRoleError(
                f"Role {role_name!r} matches no resource marker."
            )
        return frozenset({self.catch_all})

    def applies(self, role_name: str, kind: ResourceKind) -> bool:
        """Return True if a role should be offered on resources of ``kind``."""
        return kind in self.kinds_for(role_name)

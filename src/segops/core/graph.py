"""Core access-graph types handed to the host.

Resources, entitlements and grants are rebuilt on every call from upstream
reads and are never cached. They are intentionally free of Segment wire
types and CLI concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")


class ResourceKind(str, Enum):
    """
    Enumeration of the resource kinds the connector synchronizes.

    Values:
        USER: A workspace user (principal).
        GROUP: A user group (principal).
        ROLE: A workspace role.
        WORKSPACE: The workspace the token belongs to (graph root).
        RESOURCE: A role target found in user permissions.
        SOURCE: A Segment source.
        WAREHOUSE: A Segment warehouse.
        FUNCTION: A Segment function.
        SPACE: A Segment Engage space.
    """

    USER = "user"
    GROUP = "group"
    ROLE = "role"
    WORKSPACE = "workspace"
    RESOURCE = "resource"
    SOURCE = "source"
    WAREHOUSE = "warehouse"
    FUNCTION = "function"
    SPACE = "space"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def upstream_type(self) -> str:
        """Resource type tag the upstream uses in permission entries."""
        return self.value.upper()


PRINCIPAL_KINDS = frozenset({ResourceKind.USER, ResourceKind.GROUP})

# upstream permission resource type -> kind used for reverse-mapped grants
UPSTREAM_TARGET_KINDS: Mapping[str, ResourceKind] = {
    "FUNCTION": ResourceKind.FUNCTION,
    "SOURCE": ResourceKind.SOURCE,
    "WAREHOUSE": ResourceKind.WAREHOUSE,
    "SPACE": ResourceKind.SPACE,
}

WORKSPACE_TYPE = ResourceKind.WORKSPACE.upstream_type


@dataclass(frozen=True)
class ResourceTypeDescriptor:
    """Static description of a resource kind (id, display name, traits)."""

    kind: ResourceKind
    traits: tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return self.kind.value

    @property
    def display_name(self) -> str:
        return self.kind.display_name


@dataclass(frozen=True)
class ResourceId:
    """Identity of a graph node: two resources are the same iff these match."""

    kind: ResourceKind
    id: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class Resource:
    """
    A node in the synchronized graph.

    Attributes:
        id: Kind and upstream id of the resource.
        display_name: Human-readable name.
        parent: Parent resource (the workspace for every non-root kind).
        profile: Kind-specific profile attributes.
        email: Primary email for user resources.
        enabled: Account status for user resources.
        child_kinds: Kinds the host should enumerate under this resource.
    """

    id: ResourceId
    display_name: str
    parent: ResourceId | None = None
    profile: Mapping[str, Any] = field(default_factory=dict, compare=False)
    email: str | None = field(default=None, compare=False)
    enabled: bool | None = field(default=None, compare=False)
    child_kinds: tuple[ResourceKind, ...] = field(default=(), compare=False)

    @property
    def kind(self) -> ResourceKind:
        return self.id.kind


@dataclass(frozen=True)
class RoleBinding:
    """Upstream role (and resource-type tag) an entitlement stands for."""

    role_id: str
    resource_type: str


@dataclass(frozen=True)
class Entitlement:
    """
    A capability offered by a resource.

    ``purpose`` is ``"assignment"`` for membership entitlements and
    ``"permission"`` for role-scoped ones. ``binding`` carries the upstream
    role an entitlement maps to; grant and revoke read it instead of parsing
    display text.
    """

    resource: Resource
    slug: str
    display_name: str = ""
    description: str = ""
    purpose: str = "assignment"
    grantable_to: tuple[ResourceKind, ...] = ()
    binding: RoleBinding | None = None

    @property
    def id(self) -> str:
        return f"{self.resource.id.kind.value}:{self.resource.id.id}:{self.slug}"


def entitlement_id(kind: ResourceKind, resource_id: str, slug: str) -> str:
    """Build an entitlement id without constructing the entitlement."""
    return f"{kind.value}:{resource_id}:{slug}"


@dataclass(frozen=True)
class GrantExpandable:
    """Tells the host to expand a grant to the members of these entitlements."""

    entitlement_ids: tuple[str, ...]
    shallow: bool = True


@dataclass(frozen=True)
class Grant:
    """A principal holding an entitlement."""

    entitlement: Entitlement
    principal: ResourceId
    expandable: GrantExpandable | None = field(default=None, compare=False)

    @property
    def id(self) -> str:
        return f"{self.entitlement.id}:{self.principal}"


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a listing call.

    Attributes:
        items: Items produced by this call.
        next_token: Token for the next call; empty when the listing is done.
        errors: Sub-kind -> error message for fan-out listings that had to
                skip a failing sub-kind. Empty for complete results.
    """

    items: list[T] = field(default_factory=list)
    next_token: str = ""
    errors: Mapping[str, str] = field(default_factory=dict)

    @property
    def done(self) -> bool:
        return not self.next_token

    @property
    def complete(self) -> bool:
        return not self.errors

"""Upstream Segment records.

These models mirror the objects returned by the Segment Public API in a
simple, immutable form. They carry no connector or CLI concerns; the
``from_api`` constructors accept the decoded JSON objects and tolerate
missing optional keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class PermissionResource:
    """A resource a permission is scoped to (workspace, source, ...)."""

    id: str
    type: str

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> PermissionResource:
        return cls(id=str(payload.get("id", "")), type=str(payload.get("type", "")))

    def to_api(self) -> dict[str, str]:
        return {"id": self.id, "type": self.type}


@dataclass(frozen=True)
class Permission:
    """A role held by a principal, scoped to one or more resources."""

    role_id: str
    role_name: str = ""
    resources: tuple[PermissionResource, ...] = ()

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Permission:
        return cls(
            role_id=str(payload.get("roleId", "")),
            role_name=str(payload.get("roleName") or ""),
            resources=tuple(
                PermissionResource.from_api(r) for r in payload.get("resources") or []
            ),
        )

    def to_api(self) -> dict[str, Any]:
        """Write shape; the upstream ignores role names on replace."""
        return {
            "roleId": self.role_id,
            "resources": [r.to_api() for r in self.resources],
        }

    def covers(self, resource_id: str) -> bool:
        """Return True if this permission is scoped to ``resource_id``."""
        return any(r.id == resource_id for r in self.resources)


def _permissions(payload: Mapping[str, Any]) -> tuple[Permission, ...]:
    return tuple(Permission.from_api(p) for p in payload.get("permissions") or [])


@dataclass(frozen=True)
class User:
    """A Segment workspace user."""

    id: str
    name: str = ""
    email: str = ""
    permissions: tuple[Permission, ...] = field(default=(), compare=False)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> User:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            email=str(payload.get("email") or ""),
            permissions=_permissions(payload),
        )


@dataclass(frozen=True)
class Group:
    """A Segment user group."""

    id: str
    name: str = ""
    member_count: int = 0
    permissions: tuple[Permission, ...] = field(default=(), compare=False)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Group:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            member_count=int(payload.get("memberCount") or 0),
            permissions=_permissions(payload),
        )


@dataclass(frozen=True)
class Role:
    """A Segment access role."""

    id: str
    name: str = ""
    description: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Role:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            description=str(payload.get("description") or ""),
        )


@dataclass(frozen=True)
class Workspace:
    """The workspace the API token belongs to."""

    id: str
    name: str = ""
    slug: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Workspace:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            slug=str(payload.get("slug") or ""),
        )


@dataclass(frozen=True)
class Source:
    """A Segment source."""

    id: str
    name: str = ""
    slug: str = ""
    enabled: bool = True

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Source:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or payload.get("slug") or payload["id"]),
            slug=str(payload.get("slug") or ""),
            enabled=bool(payload.get("enabled", True)),
        )


@dataclass(frozen=True)
class Warehouse:
    """A Segment warehouse."""

    id: str
    name: str = ""
    enabled: bool = True

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Warehouse:
        # user-given name lives in settings, the catalog entry name in metadata
        settings = payload.get("settings") or {}
        metadata = payload.get("metadata") or {}
        name = settings.get("name") or metadata.get("name") or payload["id"]
        return cls(
            id=str(payload["id"]),
            name=str(name),
            enabled=bool(payload.get("enabled", True)),
        )


@dataclass(frozen=True)
class Function:
    """A Segment function (source, destination or insert function)."""

    id: str
    display_name: str = ""
    resource_type: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Function:
        return cls(
            id=str(payload["id"]),
            display_name=str(payload.get("displayName") or payload["id"]),
            resource_type=str(payload.get("resourceType") or ""),
        )


@dataclass(frozen=True)
class Space:
    """A Segment Engage space."""

    id: str
    name: str = ""
    slug: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> Space:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or payload.get("slug") or payload["id"]),
            slug=str(payload.get("slug") or ""),
        )

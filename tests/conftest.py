from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from segops.core.errors import TransportError  # noqa: E402
from segops.core.graph import ResourceKind  # noqa: E402
from segops.core.models import (  # noqa: E402
    Function,
    Group,
    Permission,
    PermissionResource,
    Role,
    Source,
    Space,
    User,
    Warehouse,
    Workspace,
)


def perm(role_id: str, *targets: tuple[str, str], role_name: str = "") -> Permission:
    """Build a permission from (resource_id, resource_type) pairs."""
    return Permission(
        role_id=role_id,
        role_name=role_name,
        resources=tuple(PermissionResource(id=i, type=t) for i, t in targets),
    )


class FakeSegment:
    """In-memory stand-in for SegmentAdapter with integer-offset cursors."""

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.workspace = Workspace(id="ws1", name="Acme", slug="acme")
        self.users: dict[str, User] = {}
        self.groups: dict[str, Group] = {}
        self.roles: list[Role] = []
        self.sources: list[Source] = []
        self.warehouses: list[Warehouse] = []
        self.spaces: list[Space] = []
        self.functions: dict[str, list[Function]] = {}
        self.members: dict[str, list[str]] = {}
        self.failing_function_types: set[str] = set()
        self.calls: list[tuple] = []
        self.writes: list[tuple[str, ResourceKind, list[Permission]]] = []

    def add_user(self, user_id: str, *permissions: Permission, email: str = "") -> User:
        user = User(
            id=user_id,
            name=f"{user_id.title()} Example",
            email=email or f"{user_id}@example.com",
            permissions=tuple(permissions),
        )
        self.users[user_id] = user
        return user

    def add_group(self, group_id: str, *permissions: Permission) -> Group:
        group = Group(id=group_id, name=f"Group {group_id}", permissions=tuple(permissions))
        self.groups[group_id] = group
        return group

    def _page(self, items: list, cursor: str) -> tuple[list, str]:
        start = int(cursor or 0)
        end = start + self.page_size
        return list(items[start:end]), (str(end) if end < len(items) else "")

    def list_users(self, cursor: str = ""):
        self.calls.append(("list_users", cursor))
        return self._page(list(self.users.values()), cursor)

    def list_groups(self, cursor: str = ""):
        self.calls.append(("list_groups", cursor))
        return self._page(list(self.groups.values()), cursor)

    def list_roles(self, cursor: str = ""):
        self.calls.append(("list_roles", cursor))
        return self._page(self.roles, cursor)

    def list_sources(self, cursor: str = ""):
        self.calls.append(("list_sources", cursor))
        return self._page(self.sources, cursor)

    def list_warehouses(self, cursor: str = ""):
        self.calls.append(("list_warehouses", cursor))
        return self._page(self.warehouses, cursor)

    def list_spaces(self, cursor: str = ""):
        self.calls.append(("list_spaces", cursor))
        return self._page(self.spaces, cursor)

    def list_functions(self, cursor: str = "", function_type: str = "DESTINATION"):
        self.calls.append(("list_functions", function_type, cursor))
        if function_type in self.failing_function_types:
            raise TransportError(f"error fetching {function_type.lower()} functions: boom")
        return self._page(self.functions.get(function_type, []), cursor)

    def list_group_members(self, group_id: str, cursor: str = ""):
        self.calls.append(("list_group_members", group_id, cursor))
        users = [self.users[uid] for uid in self.members.get(group_id, [])]
        return self._page(users, cursor)

    def get_workspace(self) -> Workspace:
        self.calls.append(("get_workspace",))
        return self.workspace

    def get_user(self, user_id: str) -> User:
        self.calls.append(("get_user", user_id))
        return self.users[user_id]

    def get_group(self, group_id: str) -> Group:
        self.calls.append(("get_group", group_id))
        return self.groups[group_id]

    def set_permissions(self, principal_id, principal_kind, permissions):
        permissions = list(permissions)
        self.writes.append((principal_id, principal_kind, permissions))
        if principal_kind is ResourceKind.USER:
            self.users[principal_id] = replace(
                self.users[principal_id], permissions=tuple(permissions)
            )
        else:
            self.groups[principal_id] = replace(
                self.groups[principal_id], permissions=tuple(permissions)
            )
        return permissions

    def add_group_member(self, group_id: str, email: str) -> None:
        self.calls.append(("add_group_member", group_id, email))

    def remove_group_member(self, group_id: str, email: str) -> None:
        self.calls.append(("remove_group_member", group_id, email))


@pytest.fixture
def segment() -> FakeSegment:
    return FakeSegment()


@pytest.fixture
def make_perm():
    return perm

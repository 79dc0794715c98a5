from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping, Sequence
from urllib.parse import quote

import requests

from segops.core.errors import PreconditionError, TransportError, UpstreamError
from segops.core.graph import ResourceKind
from segops.core.models import (
    Function,
    Group,
    Permission,
    Role,
    Source,
    Space,
    User,
    Warehouse,
    Workspace,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://api.segmentapis.com/"
DEFAULT_PAGE_SIZE = 200
DEFAULT_TIMEOUT_SECONDS = 30.0

FUNCTION_TYPES = ("DESTINATION", "INSERT_DESTINATION", "SOURCE")

_PRINCIPAL_COLLECTIONS = {
    ResourceKind.USER: "users",
    ResourceKind.GROUP: "groups",
}
_REDACTED_HEADERS = {"authorization"}


def _redacted(headers: Mapping[str, Any]) -> dict[str, Any]:
    return {
        k: ("***REDACTED***" if k.lower() in _REDACTED_HEADERS else v)
        for k, v in headers.items()
    }


class SegmentAdapter:
    """Adapter around the Segment Public API (users, groups, roles, permissions)."""

    def __init__(
        self,
        session: requests.Session,
        *,
        base_url: str = BASE_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Create an adapter on top of an authenticated session."""
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.session = session
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.page_size = page_size
        self.timeout = timeout

    def _url(self, *segments: str) -> str:
        return self.base_url + "/".join(quote(s, safe="") for s in segments)

    def _page_params(self, cursor: str) -> list[tuple[str, str]]:
        params = [("pagination[count]", str(self.page_size))]
        if cursor:
            params.append(("pagination[cursor]", cursor))
        return params

    def _request(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        params: Iterable[tuple[str, str]] | None = None,
        payload: Any = None,
    ) -> Mapping[str, Any]:
        """
        Perform one request and unwrap the ``data`` envelope.

        An ``errors`` array in the body wins over the HTTP status: it is
        raised as UpstreamError even on a 200. Everything that prevents us
        from reading an envelope is a TransportError.
        """
        params = list(params or [])
        logger.debug(
            "API %s %s params=%s headers=%s",
            method,
            url,
            params,
            _redacted(self.session.headers),
        )
        try:
            resp = self.session.request(
                method, url, params=params, json=payload, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise TransportError(f"error {operation}: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise TransportError(
                f"error {operation}: malformed response body (HTTP {resp.status_code})"
            ) from exc
        if not isinstance(body, dict):
            raise TransportError(f"error {operation}: unexpected response body")

        errors = body.get("errors") or []
        if errors:
            first = errors[0] if isinstance(errors[0], dict) else {"message": errors[0]}
            raise UpstreamError(
                str(first.get("type") or "unknown"),
                str(first.get("message") or ""),
                operation=operation,
            )

        if resp.status_code >= 400:
            raise TransportError(f"error {operation}: HTTP {resp.status_code}")

        data = body.get("data")
        return data if isinstance(data, dict) else {}

    def _list(
        self,
        url: str,
        key: str,
        cursor: str,
        *,
        operation: str,
        extra_params: Iterable[tuple[str, str]] = (),
    ) -> tuple[list[Mapping[str, Any]], str]:
        params = self._page_params(cursor) + list(extra_params)
        data = self._request("GET", url, operation=operation, params=params)
        items = data.get(key) or []
        pagination = data.get("pagination") or {}
        return list(items), str(pagination.get("next") or "")

    # -- Collections ----------------------------------------------------------

    def list_users(self, cursor: str = "") -> tuple[list[User], str]:
        """Return one page of workspace users and the next cursor."""
        items, nxt = self._list(
            self._url("users"), "users", cursor, operation="fetching users"
        )
        return [User.from_api(i) for i in items], nxt

    def list_groups(self, cursor: str = "") -> tuple[list[Group], str]:
        """Return one page of user groups and the next cursor."""
        items, nxt = self._list(
            self._url("groups"), "userGroups", cursor, operation="fetching groups"
        )
        return [Group.from_api(i) for i in items], nxt

    def list_roles(self, cursor: str = "") -> tuple[list[Role], str]:
        """Return one page of roles and the next cursor."""
        items, nxt = self._list(
            self._url("roles"), "roles", cursor, operation="fetching roles"
        )
        return [Role.from_api(i) for i in items], nxt

    def list_sources(self, cursor: str = "") -> tuple[list[Source], str]:
        """Return one page of sources and the next cursor."""
        items, nxt = self._list(
            self._url("sources"), "sources", cursor, operation="fetching sources"
        )
        return [Source.from_api(i) for i in items], nxt

    def list_warehouses(self, cursor: str = "") -> tuple[list[Warehouse], str]:
        """Return one page of warehouses and the next cursor."""
        items, nxt = self._list(
            self._url("warehouses"),
            "warehouses",
            cursor,
            operation="fetching warehouses",
        )
        return [Warehouse.from_api(i) for i in items], nxt

    def list_spaces(self, cursor: str = "") -> tuple[list[Space], str]:
        """Return one page of Engage spaces and the next cursor."""
        items, nxt = self._list(
            self._url("spaces"), "spaces", cursor, operation="fetching spaces"
        )
        return [Space.from_api(i) for i in items], nxt

    def list_functions(
        self, cursor: str = "", function_type: str = "DESTINATION"
    ) -> tuple[list[Function], str]:
        """Return one page of functions of one sub-type and the next cursor."""
        if function_type not in FUNCTION_TYPES:
            raise PreconditionError(f"Unknown function type: {function_type!r}")
        items, nxt = self._list(
            self._url("functions"),
            "functions",
            cursor,
            operation=f"fetching {function_type.lower()} functions",
            extra_params=[("resourceType", function_type)],
        )
        return [Function.from_api(i) for i in items], nxt

    def list_group_members(
        self, group_id: str, cursor: str = ""
    ) -> tuple[list[User], str]:
        """Return one page of members of a group and the next cursor."""
        items, nxt = self._list(
            self._url("groups", group_id, "users"),
            "users",
            cursor,
            operation="fetching group members",
        )
        return [User.from_api(i) for i in items], nxt

    # -- Singletons -----------------------------------------------------------

    def _record(
        self, url: str, key: str, *, operation: str
    ) -> Mapping[str, Any]:
        """Fetch a single-object envelope; a missing object is a transport failure."""
        data = self._request("GET", url, operation=operation)
        record = data.get(key)
        if not isinstance(record, dict) or not record.get("id"):
            raise TransportError(f"error {operation}: response has no {key}")
        return record

    def get_workspace(self) -> Workspace:
        """Return the workspace the token belongs to."""
        return Workspace.from_api(
            self._record(self.base_url, "workspace", operation="fetching a workspace")
        )

    def get_user(self, user_id: str) -> User:
        """Return a single user including permissions."""
        return User.from_api(
            self._record(self._url("users", user_id), "user", operation="fetching user")
        )

    def get_group(self, group_id: str) -> Group:
        """Return a single group including permissions."""
        return Group.from_api(
            self._record(
                self._url("groups", group_id), "group", operation="fetching group"
            )
        )

    # -- Mutations ------------------------------------------------------------

    def set_permissions(
        self,
        principal_id: str,
        principal_kind: ResourceKind,
        permissions: Sequence[Permission],
    ) -> list[Permission]:
        """Replace the full permission set of a user or group."""
        collection = _PRINCIPAL_COLLECTIONS.get(principal_kind)
        if collection is None:
            raise PreconditionError(
                f"Only users and groups hold permissions, got {principal_kind!r}."
            )
        data = self._request(
            "PUT",
            self._url(collection, principal_id, "permissions"),
            operation=f"updating permissions of {collection[:-1]}",
            payload={"permissions": [p.to_api() for p in permissions]},
        )
        return [Permission.from_api(p) for p in data.get("permissions") or []]

    def add_group_member(self, group_id: str, email: str) -> None:
        """Add a user (by email) to a group."""
        self._request(
            "POST",
            self._url("groups", group_id, "users"),
            operation="adding user to a group",
            payload={"emails": [email]},
        )

    def remove_group_member(self, group_id: str, email: str) -> None:
        """Remove a user (by email) from a group."""
        data = self._request(
            "DELETE",
            self._url("groups", group_id, "users"),
            operation="removing user from a group",
            params=[("emails", json.dumps([email]))],
        )
        status = data.get("status")
        if status != "SUCCESS":
            raise UpstreamError(
                "UNEXPECTED_STATUS",
                f"status was {status!r}",
                operation="removing user from a group",
            )

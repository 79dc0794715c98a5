"""Resumable, multi-kind pagination state.

A listing that needs several upstream collections (users, then groups) or
several pages of one collection is driven by a ``Bag``: a stack of
``PageState`` frames serialized into the opaque token the host hands back
on the next call. The top frame always names what is being listed right
now; an empty token means the listing is finished.

Token format: ``v1.`` followed by URL-safe base64 of a JSON array of
``[resource_type_id, resource_id, cursor]`` triples, bottom frame first.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field

from segops.core.errors import PaginationError
from segops.core.graph import ResourceKind

TOKEN_VERSION = "v1"


@dataclass(frozen=True)
class PageState:
    """
    One traversal frame.

    Attributes:
        resource_type_id: Kind being listed (a ResourceKind value).
        resource_id: Optional qualifier, e.g. a parent id or a sub-type.
        cursor: Upstream cursor for the next page; None for the first page.
    """

    resource_type_id: str
    resource_id: str | None = None
    cursor: str | None = None


def _decode_frame(raw: object) -> PageState:
    if not isinstance(raw, list) or len(raw) != 3:
        raise PaginationError("Malformed page token: frame must be a triple.")
    type_id, resource_id, cursor = raw
    if not isinstance(type_id, str) or not type_id:
        raise PaginationError("Malformed page token: missing resource type.")
    for value in (resource_id, cursor):
        if value is not None and not isinstance(value, str):
            raise PaginationError("Malformed page token: bad frame value.")
    return PageState(resource_type_id=type_id, resource_id=resource_id, cursor=cursor)


@dataclass
class Bag:
    """Stack of pending traversal frames (last pushed is visited first)."""

    states: list[PageState] = field(default_factory=list)

    @classmethod
    def unmarshal(cls, token: str) -> Bag:
        """Decode a token; the empty token is the empty bag."""
        if not token:
            return cls()
        version, sep, body = token.partition(".")
        if not sep or version != TOKEN_VERSION:
            raise PaginationError(f"Unsupported page token version: {version!r}")
        try:
            raw = json.loads(base64.urlsafe_b64decode(body.encode("ascii")))
        except (binascii.Error, UnicodeError, ValueError) as exc:
            raise PaginationError("Malformed page token.") from exc
        if not isinstance(raw, list):
            raise PaginationError("Malformed page token: expected a frame list.")
        return cls(states=[_decode_frame(frame) for frame in raw])

    @classmethod
    def parse(cls, token: str, default_state: PageState) -> Bag:
        """Decode a token, pushing ``default_state`` if it holds no frames."""
        bag = cls.unmarshal(token)
        if bag.current is None:
            bag.push(default_state)
        return bag

    def marshal(self) -> str:
        """Serialize the stack; an empty stack serializes to ``""``."""
        if not self.states:
            return ""
        frames = [[s.resource_type_id, s.resource_id, s.cursor] for s in self.states]
        body = json.dumps(frames, separators=(",", ":")).encode("utf-8")
        return f"{TOKEN_VERSION}.{base64.urlsafe_b64encode(body).decode('ascii')}"

    @property
    def current(self) -> PageState | None:
        return self.states[-1] if self.states else None

    @property
    def resource_type_id(self) -> str:
        state = self.current
        return state.resource_type_id if state else ""

    @property
    def cursor(self) -> str:
        """Upstream cursor of the top frame ("" means first page)."""
        state = self.current
        return (state.cursor or "") if state else ""

    def current_resource_kind(self) -> ResourceKind:
        """Return the kind named by the top frame."""
        try:
            return ResourceKind(self.resource_type_id)
        except ValueError as exc:
            raise PaginationError(
                f"Page token names unknown resource type {self.resource_type_id!r}."
            ) from exc

    def push(self, state: PageState) -> None:
        self.states.append(state)

    def pop(self) -> PageState | None:
        return self.states.pop() if self.states else None

    def advance(self, next_cursor: str) -> str:
        """
        Move past the page that was just fetched and return the next token.

        A non-empty cursor keeps the top frame and records the cursor; an
        empty cursor pops the frame so the next queued kind (if any) is up.
        """
        state = self.current
        if state is None:
            raise PaginationError("Cannot advance an empty page bag.")
        if next_cursor:
            self.states[-1] = PageState(
                resource_type_id=state.resource_type_id,
                resource_id=state.resource_id,
                cursor=next_cursor,
            )
        else:
            self.pop()
        return self.marshal()

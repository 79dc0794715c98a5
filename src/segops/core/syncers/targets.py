from __future__ import annotations

import logging
from typing import Any, Sequence

from segops.core.adapters.segment import FUNCTION_TYPES
from segops.core.errors import PaginationError, SegmentError
from segops.core.graph import Entitlement, Page, Resource, ResourceId, ResourceKind
from segops.core.models import Function, Source, Space, Warehouse
from segops.core.pagination import Bag, PageState
from segops.core.resources import permission_entitlement, target_resource
from segops.core.syncers.base import PermissionSyncer

logger = logging.getLogger(__name__)


class TargetSyncer(PermissionSyncer):
    """
    A permission-bearing resource kind (source, warehouse, function, space).

    Entitlements are the roles whose names carry the kind's marker. Grants
    on these kinds are not listed here: they surface through the user
    reverse mapping, since the upstream has no resource-first view.

    Subclasses backed by one upstream collection implement the ``_fetch``
    and ``_resource`` hooks; kinds that page several collections override
    ``list`` instead.
    """

    def _fetch(self, cursor: str) -> tuple[Sequence[Any], str]:
        """Hook: return one upstream page and the next cursor."""
        raise NotImplementedError(f"{type(self).__name__} does not page a single collection")

    def _resource(self, record: Any, parent: ResourceId) -> Resource:
        """Hook: turn one upstream record into a resource under ``parent``."""
        raise NotImplementedError(f"{type(self).__name__} does not build resources")

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        if parent is None:
            return Page()
        return self._paged(
            token, self._fetch, lambda record: self._resource(record, parent)
        )

    def list_entitlements(self, resource: Resource, token: str = "") -> Page[Entitlement]:
        bag = Bag.parse(token, PageState(ResourceKind.ROLE.value))
        roles, next_cursor = self.adapter.list_roles(bag.cursor)
        items = [
            permission_entitlement(role, resource, self.kind.upstream_type)
            for role in roles
            if self.markers.applies(role.name, self.kind)
        ]
        return Page(items=items, next_token=bag.advance(next_cursor))


class SourceSyncer(TargetSyncer):
    kind = ResourceKind.SOURCE

    def _fetch(self, cursor: str) -> tuple[list[Source], str]:
        return self.adapter.list_sources(cursor)

    def _resource(self, record: Source, parent: ResourceId) -> Resource:
        return target_resource(self.kind, record.id, record.name, parent)


class WarehouseSyncer(TargetSyncer):
    kind = ResourceKind.WAREHOUSE

    def _fetch(self, cursor: str) -> tuple[list[Warehouse], str]:
        return self.adapter.list_warehouses(cursor)

    def _resource(self, record: Warehouse, parent: ResourceId) -> Resource:
        return target_resource(self.kind, record.id, record.name, parent)


class SpaceSyncer(TargetSyncer):
    kind = ResourceKind.SPACE

    def _fetch(self, cursor: str) -> tuple[list[Space], str]:
        return self.adapter.list_spaces(cursor)

    def _resource(self, record: Space, parent: ResourceId) -> Resource:
        return target_resource(self.kind, record.id, record.name, parent)


class FunctionSyncer(TargetSyncer):
    """
    Functions come in three sub-types listed separately upstream.

    Listing queues one frame per sub-type. A sub-type whose request fails is
    logged, reported in ``Page.errors`` under its name, and skipped so the
    remaining sub-types are still listed.
    """

    kind = ResourceKind.FUNCTION

    def _resource(self, record: Function, parent: ResourceId) -> Resource:
        return target_resource(self.kind, record.id, record.display_name, parent)

    def list(self, parent: ResourceId | None, token: str = "") -> Page[Resource]:
        if parent is None:
            return Page()

        bag = Bag.unmarshal(token)
        if bag.current is None:
            for function_type in reversed(FUNCTION_TYPES):
                bag.push(PageState(self.kind.value, function_type))

        function_type = bag.current.resource_id
        if bag.resource_type_id != self.kind.value or function_type not in FUNCTION_TYPES:
            raise PaginationError("Page token does not belong to a function listing.")

        try:
            functions, next_cursor = self.adapter.list_functions(bag.cursor, function_type)
        except SegmentError as exc:
            logger.warning(
                "skipping %s functions after error: %s", function_type, exc
            )
            bag.pop()
            return Page(next_token=bag.marshal(), errors={function_type: str(exc)})

        return Page(
            items=[self._resource(fn, parent) for fn in functions],
            next_token=bag.advance(next_cursor),
        )

import pytest

from segops.core.connector import SegmentConnector
from segops.core.errors import PaginationError, PreconditionError
from segops.core.graph import Grant, ResourceId, ResourceKind
from segops.core.models import Function, Role, Source, Space, Warehouse
from segops.core.pagination import Bag, PageState
from segops.core.resources import target_resource
from segops.core.sync import drain, list_all_entitlements, list_all_grants, resolve_resource

WS = ResourceId(ResourceKind.WORKSPACE, "ws1")


@pytest.fixture
def connector(segment):
    segment.roles = [
        Role(id="r-owner", name="Workspace Owner"),
        Role(id="r-src", name="Source Admin"),
        Role(id="r-eng", name="Engage Editor"),
        Role(id="r-wh", name="Warehouse Read-only"),
    ]
    return SegmentConnector(segment)


def test_role_grants_visit_every_user_page_before_groups(segment, connector, make_perm):
    owner = make_perm("r-owner", ("ws1", "WORKSPACE"), role_name="Workspace Owner")
    for uid in ("u1", "u2", "u3"):
        segment.add_user(uid, owner)
    segment.add_group("g1", owner)
    segment.add_group("g2")
    role = resolve_resource(connector, ResourceKind.ROLE, "r-owner")
    segment.calls.clear()

    page_kinds: list[set[ResourceKind]] = []
    drained = drain(
        lambda t: connector.syncer(ResourceKind.ROLE).list_grants(role, t),
        on_page=lambda page: page_kinds.append({g.principal.kind for g in page.items}),
    )

    assert [c[0] for c in segment.calls] == ["list_users", "list_users", "list_groups"]
    assert page_kinds == [{ResourceKind.USER}, {ResourceKind.USER}, {ResourceKind.GROUP}]
    assert [str(g.principal) for g in drained.items] == [
        "user:u1",
        "user:u2",
        "user:u3",
        "group:g1",
    ]


def test_group_grants_expand_to_group_members(segment, connector, make_perm):
    segment.add_group("g1", make_perm("r-owner", ("ws1", "WORKSPACE")))
    role = resolve_resource(connector, ResourceKind.ROLE, "r-owner")

    grants = list_all_grants(connector, role).items

    assert len(grants) == 1
    assert grants[0].expandable.entitlement_ids == ("group:g1:member",)
    assert grants[0].expandable.shallow is True


def test_fanout_rejects_token_from_another_listing(connector):
    role = resolve_resource(connector, ResourceKind.ROLE, "r-owner")
    token = Bag([PageState("space")]).marshal()

    with pytest.raises(PaginationError, match="Unexpected resource type"):
        connector.syncer(ResourceKind.ROLE).list_grants(role, token)


def test_role_names_filter_entitlements_per_kind(connector):
    source = target_resource(ResourceKind.SOURCE, "s1", "Web", WS)
    warehouse = target_resource(ResourceKind.WAREHOUSE, "w1", "Prod", WS)
    space = target_resource(ResourceKind.SPACE, "sp1", "Main", WS)

    def slugs(resource):
        return {e.slug for e in list_all_entitlements(connector, resource).items}

    assert slugs(source) == {"source_admin"}
    assert slugs(warehouse) == {"warehouse_read_only"}
    assert slugs(space) == {"engage_editor"}


def test_target_listings_need_a_parent(segment, connector):
    segment.sources = [Source(id="s1", name="Web")]

    assert connector.syncer(ResourceKind.SOURCE).list(None).items == []
    page = connector.syncer(ResourceKind.SOURCE).list(WS)
    assert [(r.id.id, r.display_name, r.parent) for r in page.items] == [("s1", "Web", WS)]


def test_warehouses_and_spaces_use_their_own_collections(segment, connector):
    segment.sources = [Source(id="s1")]
    segment.warehouses = [Warehouse(id="w1", name="Prod")]
    segment.spaces = [Space(id="sp1", name="Main")]

    warehouses = connector.syncer(ResourceKind.WAREHOUSE).list(WS).items
    spaces = connector.syncer(ResourceKind.SPACE).list(WS).items

    assert [r.id for r in warehouses] == [ResourceId(ResourceKind.WAREHOUSE, "w1")]
    assert [r.id for r in spaces] == [ResourceId(ResourceKind.SPACE, "sp1")]


def test_function_listing_skips_failing_sub_type(segment, connector):
    segment.functions = {
        "DESTINATION": [Function(id="f1", display_name="Dest")],
        "INSERT_DESTINATION": [Function(id="f2", display_name="Insert")],
        "SOURCE": [Function(id="f3", display_name="Src")],
    }
    segment.failing_function_types = {"INSERT_DESTINATION"}
    syncer = connector.syncer(ResourceKind.FUNCTION)

    drained = drain(lambda t: syncer.list(WS, t))

    assert [r.id.id for r in drained.items] == ["f1", "f3"]
    assert list(drained.errors) == ["INSERT_DESTINATION"]
    assert "boom" in drained.errors["INSERT_DESTINATION"]
    assert not drained.complete


def test_function_listing_rejects_unknown_sub_type(connector):
    token = Bag([PageState("function", "WIDGET")]).marshal()

    with pytest.raises(PaginationError):
        connector.syncer(ResourceKind.FUNCTION).list(WS, token)


def test_user_grants_map_permissions_back_to_resources(segment, connector, make_perm):
    segment.add_user(
        "u1",
        make_perm("r-owner", ("ws1", "WORKSPACE")),
        make_perm("r-src", ("s1", "SOURCE"), ("s2", "SOURCE")),
        make_perm("r-src", ("s1", "SOURCE")),
        make_perm("r-x", ("d1", "DESTINATION")),
    )
    user = resolve_resource(connector, ResourceKind.USER, "u1")

    grants = connector.syncer(ResourceKind.USER).list_grants(user).items

    assert [g.entitlement.id for g in grants] == [
        "role:r-owner:member",
        "source:s1:source_admin",
        "source:s2:source_admin",
    ]
    assert all(g.principal == user.id for g in grants)


def test_group_member_grants_page_through_members(segment, connector):
    for uid in ("u1", "u2", "u3"):
        segment.add_user(uid)
    segment.add_group("g1")
    segment.members["g1"] = ["u1", "u3"]
    group = resolve_resource(connector, ResourceKind.GROUP, "g1")

    grants = list_all_grants(connector, group).items

    assert [g.id for g in grants] == ["group:g1:member:user:u1", "group:g1:member:user:u3"]


def test_group_membership_grant_and_revoke_use_email(segment, connector):
    segment.add_user("u1", email="ada@example.com")
    segment.add_group("g1")
    group = resolve_resource(connector, ResourceKind.GROUP, "g1")
    syncer = connector.syncer(ResourceKind.GROUP)
    member = list_all_entitlements(connector, group).items[0]

    assert syncer.grant(ResourceId(ResourceKind.USER, "u1"), member) is True
    assert syncer.revoke(Grant(entitlement=member, principal=ResourceId(ResourceKind.USER, "u1")))

    assert ("add_group_member", "g1", "ada@example.com") in segment.calls
    assert ("remove_group_member", "g1", "ada@example.com") in segment.calls


def test_group_membership_is_for_users_only(segment, connector):
    segment.add_group("g1")
    group = resolve_resource(connector, ResourceKind.GROUP, "g1")
    member = list_all_entitlements(connector, group).items[0]

    with pytest.raises(PreconditionError, match="Only users"):
        connector.syncer(ResourceKind.GROUP).grant(ResourceId(ResourceKind.GROUP, "g2"), member)


def test_role_grant_targets_the_workspace(segment, connector):
    segment.add_user("u1")
    role = resolve_resource(connector, ResourceKind.ROLE, "r-owner")
    member = list_all_entitlements(connector, role).items[0]

    connector.syncer(ResourceKind.ROLE).grant(ResourceId(ResourceKind.USER, "u1"), member)

    written = segment.writes[0][2]
    assert [(p.role_id, p.resources[0].id, p.resources[0].type) for p in written] == [
        ("r-owner", "ws1", "WORKSPACE")
    ]


def test_source_grant_and_revoke_round_trip(segment, connector, make_perm):
    segment.add_user("u1", make_perm("r-owner", ("ws1", "WORKSPACE")))
    source = target_resource(ResourceKind.SOURCE, "s1", "Web", WS)
    admin = next(
        e for e in list_all_entitlements(connector, source).items if e.slug == "source_admin"
    )
    syncer = connector.syncer(ResourceKind.SOURCE)
    principal = ResourceId(ResourceKind.USER, "u1")

    assert syncer.grant(principal, admin) is True
    assert syncer.grant(principal, admin) is False
    assert syncer.revoke(Grant(entitlement=admin, principal=principal)) is True

    assert [p.role_id for p in segment.users["u1"].permissions] == ["r-owner"]
    assert len(segment.writes) == 2


def test_source_grants_are_not_listed_resource_first(connector):
    source = target_resource(ResourceKind.SOURCE, "s1", "Web", WS)

    assert connector.syncer(ResourceKind.SOURCE).list_grants(source).items == []


def test_role_targets_come_from_user_permissions(segment, connector, make_perm):
    segment.add_user("u1", make_perm("r-src", ("s1", "SOURCE")))
    segment.add_user("u2", make_perm("r-src", ("s1", "SOURCE"), ("sp1", "SPACE")))

    resources = drain(
        lambda t: connector.syncer(ResourceKind.RESOURCE).list(WS, t)
    ).items

    assert [(r.id.id, r.profile["resource_type"]) for r in resources] == [
        ("s1", "SOURCE"),
        ("sp1", "SPACE"),
    ]


def test_role_target_grants_resolve_missing_role_names(segment, connector, make_perm):
    segment.add_user("u1", make_perm("r-src", ("s1", "SOURCE")))
    target = resolve_resource(connector, ResourceKind.RESOURCE, "s1")

    grants = list_all_grants(connector, target).items

    assert [g.id for g in grants] == ["resource:s1:source_admin:user:u1"]
    assert grants[0].entitlement.binding.resource_type == "SOURCE"


def test_workspace_members_are_all_users(segment, connector):
    segment.add_user("u1")
    segment.add_user("u2")
    workspace = resolve_resource(connector, ResourceKind.WORKSPACE, "ws1")

    grants = list_all_grants(connector, workspace).items

    assert [str(g.principal) for g in grants] == ["user:u1", "user:u2"]
    assert {g.entitlement.id for g in grants} == {"workspace:ws1:member"}


def test_read_only_kinds_refuse_mutations(segment, connector):
    segment.add_user("u1")
    workspace = resolve_resource(connector, ResourceKind.WORKSPACE, "ws1")
    member = list_all_entitlements(connector, workspace).items[0]

    with pytest.raises(PreconditionError, match="do not support grants"):
        connector.syncer(ResourceKind.WORKSPACE).grant(ResourceId(ResourceKind.USER, "u1"), member)


def test_role_grants_never_list_roles(segment, connector, make_perm):
    unnamed = make_perm("r-owner", ("ws1", "WORKSPACE"))
    segment.add_user("u1", unnamed)
    segment.add_group("g1", unnamed)
    role = resolve_resource(connector, ResourceKind.ROLE, "r-owner")
    segment.calls.clear()

    grants = list_all_grants(connector, role).items

    assert [c[0] for c in segment.calls] == ["list_users", "list_groups"]
    assert [str(g.principal) for g in grants] == ["user:u1", "group:g1"]


def test_role_target_grants_list_roles_once_per_call(segment, connector, make_perm):
    segment.add_user("u1", make_perm("r-src", ("s1", "SOURCE")))
    segment.add_user("u2", make_perm("r-src", ("s1", "SOURCE")))
    target = resolve_resource(connector, ResourceKind.RESOURCE, "s1")
    segment.calls.clear()

    connector.syncer(ResourceKind.RESOURCE).list_grants(target)

    assert [c[0] for c in segment.calls] == ["list_users", "list_roles", "list_roles"]


def test_function_syncer_pages_through_list_not_the_single_collection_hook(connector):
    syncer = connector.syncer(ResourceKind.FUNCTION)

    with pytest.raises(NotImplementedError, match="FunctionSyncer does not page"):
        syncer._fetch("")

import pytest

from segops.core.errors import PreconditionError
from segops.core.graph import ResourceId, ResourceKind
from segops.core.models import Permission, PermissionResource
from segops.core.reconcile import (
    PrincipalLocks,
    Reconciler,
    add_permission,
    remove_role,
)

USER = ResourceId(ResourceKind.USER, "u1")
GROUP = ResourceId(ResourceKind.GROUP, "g1")


def test_add_permission_appends_and_dedupes(make_perm):
    current = [make_perm("r1", ("s1", "SOURCE"))]

    assert add_permission(current, "r1", "SOURCE", "s1") is None

    updated = add_permission(current, "r1", "SOURCE", "s2")
    assert updated == [
        current[0],
        Permission(role_id="r1", resources=(PermissionResource(id="s2", type="SOURCE"),)),
    ]


def test_remove_role_drops_every_entry_of_the_role(make_perm):
    keep = make_perm("r2", ("ws1", "WORKSPACE"))
    current = [make_perm("r1", ("x", "SOURCE")), keep, make_perm("r1", ("y", "WAREHOUSE"))]

    assert remove_role(current, "r1") == [keep]


def test_grant_writes_once_and_is_idempotent(segment):
    segment.add_user("u1")
    reconciler = Reconciler(segment)

    assert reconciler.grant(USER, "r1", "SOURCE", "s1") is True
    assert reconciler.grant(USER, "r1", "SOURCE", "s1") is False

    assert len(segment.writes) == 1
    principal_id, kind, written = segment.writes[0]
    assert (principal_id, kind) == ("u1", ResourceKind.USER)
    assert [(p.role_id, p.resources[0].id) for p in written] == [("r1", "s1")]


def test_grant_then_revoke_restores_other_roles(segment, make_perm):
    other = make_perm("r2", ("ws1", "WORKSPACE"))
    segment.add_user("u1", other)
    reconciler = Reconciler(segment)

    reconciler.grant(USER, "r1", "SOURCE", "s1")
    assert reconciler.revoke(USER, "r1") is True

    assert list(segment.users["u1"].permissions) == [other]


def test_revoke_removes_role_on_every_resource(segment, make_perm):
    segment.add_user("u1", make_perm("r3", ("z", "SPACE")))
    reconciler = Reconciler(segment)

    reconciler.grant(USER, "r1", "SOURCE", "x")
    reconciler.grant(USER, "r1", "SOURCE", "y")
    assert {p.resources[0].id for p in segment.users["u1"].permissions} == {"z", "x", "y"}

    # revoking the grant on x also takes y: entries are removed per role
    assert reconciler.revoke(USER, "r1") is True

    remaining = segment.users["u1"].permissions
    assert [p.role_id for p in remaining] == ["r3"]
    assert not any(p.covers("y") for p in remaining)
    assert len(segment.writes) == 3


def test_revoke_without_match_does_not_write(segment, make_perm):
    segment.add_user("u1", make_perm("r2", ("s1", "SOURCE")))

    assert Reconciler(segment).revoke(USER, "r1") is False
    assert segment.writes == []


def test_group_principals_use_group_permissions(segment):
    segment.add_group("g1")

    Reconciler(segment).grant(GROUP, "r1", "WORKSPACE", "ws1")

    assert ("get_group", "g1") in segment.calls
    assert segment.writes[0][1] is ResourceKind.GROUP


@pytest.mark.parametrize("kind", [ResourceKind.ROLE, ResourceKind.SOURCE])
def test_non_principals_are_rejected_before_any_call(segment, kind):
    reconciler = Reconciler(segment)
    principal = ResourceId(kind, "x")

    with pytest.raises(PreconditionError, match="Only users and groups"):
        reconciler.grant(principal, "r1", "SOURCE", "s1")
    with pytest.raises(PreconditionError, match="Only users and groups"):
        reconciler.revoke(principal, "r1")

    assert segment.calls == []
    assert segment.writes == []


def test_principal_locks_are_per_principal():
    locks = PrincipalLocks()

    assert locks.for_principal(USER) is locks.for_principal(ResourceId(ResourceKind.USER, "u1"))
    assert locks.for_principal(USER) is not locks.for_principal(GROUP)

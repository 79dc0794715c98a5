import pytest

from segops.core.errors import UnmappedRoleError
from segops.core.graph import ResourceKind
from segops.core.markers import RoleMarkers


@pytest.mark.parametrize(
    ("role_name", "kind", "expected"),
    [
        ("Source Admin", ResourceKind.SOURCE, True),
        ("Source Admin", ResourceKind.WAREHOUSE, False),
        ("Engage Editor", ResourceKind.SPACE, True),
        ("Engage Editor", ResourceKind.SOURCE, False),
        ("Warehouse Read-only", ResourceKind.WAREHOUSE, True),
        ("Function Admin", ResourceKind.FUNCTION, True),
        ("Workspace Owner", ResourceKind.WORKSPACE, True),
        ("Workspace Owner", ResourceKind.SOURCE, False),
    ],
)
def test_default_markers(role_name: str, kind: ResourceKind, expected: bool):
    assert RoleMarkers().applies(role_name, kind) is expected


def test_name_with_several_markers_applies_to_each_kind():
    kinds = RoleMarkers().kinds_for("Source Function Admin")

    assert kinds == {ResourceKind.SOURCE, ResourceKind.FUNCTION}


def test_unmatched_name_without_catch_all_is_rejected():
    markers = RoleMarkers(catch_all=None)

    with pytest.raises(UnmappedRoleError, match="Billing Viewer"):
        markers.kinds_for("Billing Viewer")


def test_custom_table():
    markers = RoleMarkers(markers={ResourceKind.SPACE: "Unify"})

    assert markers.applies("Unify Read-only", ResourceKind.SPACE)
    assert not markers.applies("Engage Editor", ResourceKind.SPACE)

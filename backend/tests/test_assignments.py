import pytest
from pydantic import ValidationError

from tablebook.booking.assignments import (
    AccessPolicy,
    AdminAccess,
    AssignmentAccess,
    Identity,
    require_restaurant_access,
    resolve_access,
)
from tablebook.booking.errors import UnauthorizedError
from tablebook.db.models import StaffAssignment


def test_roles_are_matched_case_insensitively():
    identity = Identity(user_id="sam", roles=frozenset({"staff"}))

    assert identity.has_role("Staff")
    assert not identity.has_role("Admin")


def test_identity_requires_user_id():
    with pytest.raises(ValidationError):
        Identity(user_id="")


def test_admin_role_wins_over_staff():
    policy = resolve_access(Identity(user_id="root", roles=frozenset({"Staff", "Admin"})))

    assert isinstance(policy, AdminAccess)


def test_staff_role_resolves_to_assignment_lookup():
    policy = resolve_access(Identity(user_id="sam", roles=frozenset({"Staff"})))

    assert isinstance(policy, AssignmentAccess)
    assert policy.staff_id == "sam"


def test_identity_without_roles_is_rejected():
    with pytest.raises(UnauthorizedError):
        resolve_access(Identity(user_id="alice"))


def test_assignment_access_reads_staff_assignments(db, make_restaurant):
    bistro = make_restaurant(name="Bistro")
    trattoria = make_restaurant(name="Trattoria")
    db.add(StaffAssignment(staff_id="sam", restaurant_id=bistro.id))
    db.commit()

    policy = AssignmentAccess(staff_id="sam")

    assert policy.can_act_on(db, bistro.id)
    assert not policy.can_act_on(db, trattoria.id)
    assert policy.restaurant_ids(db) == {bistro.id}
    assert AdminAccess().restaurant_ids(db) is None


def test_require_restaurant_access(db, make_restaurant):
    restaurant = make_restaurant()
    staff = Identity(user_id="sam", roles=frozenset({"Staff"}))

    with pytest.raises(UnauthorizedError):
        require_restaurant_access(db, staff, restaurant.id)

    db.add(StaffAssignment(staff_id="sam", restaurant_id=restaurant.id))
    db.commit()
    require_restaurant_access(db, staff, restaurant.id)


def test_access_policy_cannot_be_used_directly():
    with pytest.raises(TypeError):
        AccessPolicy()

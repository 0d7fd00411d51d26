import pytest

from clinic.utils.role_permissions import (
    ALL_ACTIONS,
    ALL_RESOURCES,
    APPOINTMENTS,
    AUDITS,
    BILLING,
    CREATE,
    DELETE,
    FOLLOWUPS,
    MEDICAL_HISTORY,
    ODONTOGRAMS,
    PATIENTS,
    READ,
    REPORTS,
    ROLE_ADMIN,
    ROLE_DOCTOR,
    ROLE_RECEPTIONIST,
    SCHEDULES,
    TREATMENTS,
    UPDATE,
    USERS,
    get_allowed_roles,
    get_role_permissions,
    has_permission,
    permissions_for_display,
    role_is_clinical,
    validate_role,
)


def test_admin_has_every_permission():
    for resource in ALL_RESOURCES:
        for action in ALL_ACTIONS:
            assert has_permission(ROLE_ADMIN, resource, action)


@pytest.mark.parametrize("resource", [APPOINTMENTS, TREATMENTS, MEDICAL_HISTORY, ODONTOGRAMS, FOLLOWUPS])
def test_doctor_has_full_clinical_access(resource):
    for action in ALL_ACTIONS:
        assert has_permission(ROLE_DOCTOR, resource, action)


def test_doctor_limits():
    assert has_permission(ROLE_DOCTOR, PATIENTS, UPDATE)
    assert not has_permission(ROLE_DOCTOR, PATIENTS, DELETE)
    assert has_permission(ROLE_DOCTOR, BILLING, CREATE)
    assert not has_permission(ROLE_DOCTOR, BILLING, UPDATE)
    assert has_permission(ROLE_DOCTOR, SCHEDULES, READ)
    assert not has_permission(ROLE_DOCTOR, SCHEDULES, UPDATE)
    for resource in (REPORTS, AUDITS, USERS):
        assert not has_permission(ROLE_DOCTOR, resource, READ)


def test_receptionist_is_read_only_on_clinical_records():
    for resource in (TREATMENTS, MEDICAL_HISTORY, ODONTOGRAMS):
        assert has_permission(ROLE_RECEPTIONIST, resource, READ)
        assert not has_permission(ROLE_RECEPTIONIST, resource, CREATE)
        assert not has_permission(ROLE_RECEPTIONIST, resource, UPDATE)
    assert has_permission(ROLE_RECEPTIONIST, APPOINTMENTS, DELETE)
    assert has_permission(ROLE_RECEPTIONIST, FOLLOWUPS, UPDATE)
    assert not has_permission(ROLE_RECEPTIONIST, FOLLOWUPS, DELETE)
    assert not has_permission(ROLE_RECEPTIONIST, REPORTS, READ)


def test_unknown_role_gets_nothing():
    assert not has_permission("janitor", PATIENTS, READ)


def test_get_role_permissions_returns_a_copy():
    perms = get_role_permissions(ROLE_DOCTOR)
    perms.add((USERS, DELETE))
    assert not has_permission(ROLE_DOCTOR, USERS, DELETE)


def test_get_role_permissions_unknown_role():
    with pytest.raises(ValueError):
        get_role_permissions("janitor")


def test_validate_role():
    validate_role(ROLE_RECEPTIONIST)
    with pytest.raises(ValueError):
        validate_role("owner")
    assert get_allowed_roles() == {ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST}


def test_permissions_for_display_groups_by_resource():
    grouped = permissions_for_display(ROLE_RECEPTIONIST)
    assert grouped[PATIENTS] == [CREATE, READ, UPDATE]
    assert grouped[TREATMENTS] == [READ]
    assert REPORTS not in grouped


def test_role_is_clinical():
    assert role_is_clinical(ROLE_ADMIN)
    assert role_is_clinical(ROLE_DOCTOR)
    assert not role_is_clinical(ROLE_RECEPTIONIST)

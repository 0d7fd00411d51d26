"""
Role-based permission utilities for clinic staff.

Each role maps to a set of ``(resource, action)`` pairs. Route dependencies
ask ``has_permission`` instead of comparing role names, so the matrix can be
adjusted here without touching business logic.
"""

from typing import Dict, FrozenSet, Set, Tuple
from enum import Enum


# Central role constants to ensure consistency across the codebase
ROLE_ADMIN = "admin"
ROLE_DOCTOR = "doctor"
ROLE_RECEPTIONIST = "receptionist"

DEFAULT_ROLE = ROLE_RECEPTIONIST

# Resources
PATIENTS = "patients"
APPOINTMENTS = "appointments"
TREATMENTS = "treatments"
MEDICAL_HISTORY = "medical-history"
ODONTOGRAMS = "odontograms"
FOLLOWUPS = "followups"
BILLING = "billing"
REPORTS = "reports"
USERS = "users"
SCHEDULES = "schedules"
AUDITS = "audits"

CREATE = "create"
READ = "read"
UPDATE = "update"
DELETE = "delete"

ALL_RESOURCES: Tuple[str, ...] = (
    PATIENTS, APPOINTMENTS, TREATMENTS, MEDICAL_HISTORY, ODONTOGRAMS,
    FOLLOWUPS, BILLING, REPORTS, USERS, SCHEDULES, AUDITS,
)
ALL_ACTIONS: Tuple[str, ...] = (CREATE, READ, UPDATE, DELETE)
CRUD = frozenset(ALL_ACTIONS)


def _grant(resource: str, actions) -> Set[Tuple[str, str]]:
    return {(resource, action) for action in actions}


ROLE_PERMISSIONS: Dict[str, FrozenSet[Tuple[str, str]]] = {
    ROLE_ADMIN: frozenset(
        (resource, action) for resource in ALL_RESOURCES for action in ALL_ACTIONS
    ),
    ROLE_DOCTOR: frozenset(
        _grant(PATIENTS, (CREATE, READ, UPDATE))
        | _grant(APPOINTMENTS, CRUD)
        | _grant(TREATMENTS, CRUD)
        | _grant(MEDICAL_HISTORY, CRUD)
        | _grant(ODONTOGRAMS, CRUD)
        | _grant(FOLLOWUPS, CRUD)
        | _grant(BILLING, (CREATE, READ))
        | _grant(SCHEDULES, (READ,))
    ),
    ROLE_RECEPTIONIST: frozenset(
        _grant(PATIENTS, (CREATE, READ, UPDATE))
        | _grant(APPOINTMENTS, CRUD)
        | _grant(TREATMENTS, (READ,))
        | _grant(MEDICAL_HISTORY, (READ,))
        | _grant(ODONTOGRAMS, (READ,))
        | _grant(FOLLOWUPS, (CREATE, READ, UPDATE))
        | _grant(BILLING, (CREATE, READ))
        | _grant(SCHEDULES, (READ,))
    ),
}

ALLOWED_ROLES = set(ROLE_PERMISSIONS.keys())

# Derived role groups
CLINICAL_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN, ROLE_DOCTOR})
STAFF_ROLES: FrozenSet[str] = frozenset({ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST})


class RoleEnum(str, Enum):
    """Enum for staff roles used in schemas and validation."""
    admin = ROLE_ADMIN
    doctor = ROLE_DOCTOR
    receptionist = ROLE_RECEPTIONIST


def get_role_permissions(role: str) -> Set[Tuple[str, str]]:
    """
    Get the permissions granted to a role.

    Args:
        role: The role name (admin, doctor, receptionist)

    Returns:
        A fresh set of (resource, action) pairs

    Raises:
        ValueError: If role is not recognized
    """
    if role not in ROLE_PERMISSIONS:
        raise ValueError(f"Unknown role: {role}. Allowed roles: {sorted(ROLE_PERMISSIONS.keys())}")

    return set(ROLE_PERMISSIONS[role])


def get_allowed_roles() -> Set[str]:
    """Get the set of all allowed roles."""
    return ALLOWED_ROLES.copy()


def validate_role(role: str) -> None:
    """
    Validate that a role is allowed.

    Raises:
        ValueError: If role is not allowed
    """
    if role not in ALLOWED_ROLES:
        raise ValueError(f"Invalid role '{role}'. Allowed roles: {sorted(ALLOWED_ROLES)}")


def has_permission(role: str, resource: str, action: str) -> bool:
    """Return True if ``role`` may perform ``action`` on ``resource``; unknown roles get nothing."""
    return (resource, action) in ROLE_PERMISSIONS.get(role, frozenset())


def permissions_for_display(role: str) -> Dict[str, list]:
    """Group a role's permissions by resource, e.g. ``{"patients": ["create", "read"]}``."""
    grouped: Dict[str, list] = {}
    for resource, action in sorted(get_role_permissions(role)):
        grouped.setdefault(resource, []).append(action)
    return grouped


def role_is_clinical(role: str) -> bool:
    """Return True for roles allowed to write clinical records (odontograms, diagnoses, treatments)."""
    return role in CLINICAL_ROLES

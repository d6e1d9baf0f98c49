from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    EMPLOYEE = "Employee"
    MANAGER = "Manager"
    OWNER = "Owner"
    SUPER_ADMIN = "Super Admin"


# Display ordering only, highest authority first.
ROLE_RANK: dict[Role, int] = {
    Role.SUPER_ADMIN: 0,
    Role.OWNER: 1,
    Role.MANAGER: 2,
    Role.EMPLOYEE: 3,
}

ELEVATED_ROLES = frozenset({Role.SUPER_ADMIN, Role.OWNER})
ANNOUNCEMENT_AUTHOR_ROLES = frozenset({Role.SUPER_ADMIN, Role.OWNER, Role.MANAGER})
SELF_SIGNUP_ROLES = frozenset({Role.EMPLOYEE, Role.MANAGER, Role.OWNER})


def role_rank(role: Role | None) -> int:
    if role is None:
        return len(ROLE_RANK)
    return ROLE_RANK.get(role, len(ROLE_RANK))


def is_elevated(role: Role | None) -> bool:
    """Owner and Super Admin see every record regardless of the manager graph."""
    return role in ELEVATED_ROLES


def requires_approval(role: Role) -> bool:
    return role in {Role.OWNER, Role.MANAGER}


def can_create_announcement(role: Role | None) -> bool:
    return role in ANNOUNCEMENT_AUTHOR_ROLES


def can_manage_announcement(role: Role | None, author_id: str, requester_id: str) -> bool:
    if role in ELEVATED_ROLES:
        return True
    return role == Role.MANAGER and author_id == requester_id

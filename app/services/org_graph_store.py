from __future__ import annotations

from collections.abc import Iterable

from sqlmodel import Session, col, select

from app.domain.models import AccessGrant, Department, ManagerAssignment, TeamMember, User, UserTag


class OrgGraphStore:
    """Read-only queries over users, reporting edges, departments, teams and tags."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def all_edges(self) -> list[ManagerAssignment]:
        return list(self.session.exec(select(ManagerAssignment)).all())

    def edges_for_managers(self, manager_ids: Iterable[str]) -> list[ManagerAssignment]:
        ids = list(set(manager_ids))
        if not ids:
            return []
        statement = select(ManagerAssignment).where(col(ManagerAssignment.manager_id).in_(ids))
        return list(self.session.exec(statement).all())

    def direct_report_ids(self, manager_id: str) -> set[str]:
        return {edge.employee_id for edge in self.edges_for_managers([manager_id])}

    def has_direct_report(self, manager_id: str, employee_id: str) -> bool:
        return self.session.get(ManagerAssignment, (manager_id, employee_id)) is not None

    def all_user_ids(self) -> set[str]:
        return set(self.session.exec(select(User.id)).all())

    def user_ids_in_department(self, department_id: str) -> set[str]:
        statement = select(User.id).where(User.department_id == department_id)
        return set(self.session.exec(statement).all())

    def team_member_ids(self, team_id: str) -> set[str]:
        statement = select(TeamMember.user_id).where(TeamMember.team_id == team_id)
        return set(self.session.exec(statement).all())

    def user_ids_with_tag(self, key: str, value: str) -> set[str]:
        statement = select(UserTag.user_id).where(UserTag.key == key).where(UserTag.value == value)
        return set(self.session.exec(statement).all())

    def get_user(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def department_name(self, department_id: str | None) -> str | None:
        if department_id is None:
            return None
        department = self.session.get(Department, department_id)
        return department.name if department is not None else None

    def has_access_grant(self, user_id: str, domain: str) -> bool:
        return self.session.get(AccessGrant, (user_id, domain)) is not None

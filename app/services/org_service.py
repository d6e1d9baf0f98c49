from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from app.domain.hierarchy import HierarchyNode, build_adjacency, build_hierarchy_tree, would_create_cycle
from app.domain.models import (
    AccessGrant,
    Department,
    DepartmentCreate,
    ManagerAssignment,
    TagPair,
    Team,
    TeamCreate,
    TeamMember,
    TeamRead,
    TeamUpdate,
    User,
    UserCreate,
    UserTag,
    UserUpdate,
)
from app.domain.roles import Role, requires_approval
from app.infra.db import get_engine
from app.infra.events import event_bus
from app.services.identity_service import hash_password, normalize_email
from app.services.org_graph_store import OrgGraphStore


class OrgError(Exception):
    pass


class NotFoundError(OrgError):
    pass


class ConflictError(OrgError):
    pass


class ValidationError(OrgError):
    pass


def normalize_tags(tags: Iterable[TagPair]) -> list[TagPair]:
    """Trim keys and values and drop empty keys. A repeated key keeps its last value."""
    by_key: dict[str, str] = {}
    for tag in tags:
        key = str(tag.key).strip()
        if not key:
            continue
        by_key[key] = str(tag.value).strip()
    return [TagPair(key=key, value=value) for key, value in by_key.items()]


class OrgService:
    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _get_user(self, session: Session, user_id: str) -> User:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    def _require_users(self, session: Session, user_ids: Iterable[str]) -> list[str]:
        ids = sorted({item for item in user_ids if isinstance(item, str) and item})
        if not ids:
            return []
        found = set(session.exec(select(User.id).where(col(User.id).in_(ids))).all())
        missing = [item for item in ids if item not in found]
        if missing:
            raise NotFoundError(f"users not found: {missing}")
        return ids

    def _require_department(self, session: Session, department_id: str | None) -> None:
        if department_id is not None and session.get(Department, department_id) is None:
            raise NotFoundError("department not found")

    # users

    def list_users(self) -> list[User]:
        with self._session() as session:
            users = list(session.exec(select(User)).all())
            return sorted(users, key=lambda item: ((item.name or item.email).casefold(), item.email))

    def list_pending_users(self) -> list[User]:
        with self._session() as session:
            statement = select(User).where(User.is_approved == False)  # noqa: E712
            users = list(session.exec(statement).all())
            return sorted(users, key=lambda item: item.created_at)

    def list_users_by_ids(self, user_ids: list[str]) -> list[User]:
        if not user_ids:
            return []
        with self._session() as session:
            users = list(session.exec(select(User).where(col(User.id).in_(user_ids))).all())
            return sorted(users, key=lambda item: ((item.name or item.email).casefold(), item.email))

    def create_user(self, payload: UserCreate) -> User:
        email = normalize_email(payload.email)
        if not email or not payload.password:
            raise ValidationError("email and password are required")
        with self._session() as session:
            self._require_department(session, payload.department_id)
            user = User(
                email=email,
                name=(payload.name or "").strip() or None,
                password_hash=hash_password(payload.password),
                role=payload.role,
                is_approved=True,
                department_id=payload.department_id,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("email already registered") from exc
            session.refresh(user)
        event_bus.publish_dict("user.created", {"user_id": user.id, "role": user.role})
        return user

    def update_user(self, user_id: str, payload: UserUpdate) -> User:
        with self._session() as session:
            user = self._get_user(session, user_id)
            fields = payload.model_fields_set
            if "name" in fields:
                user.name = (payload.name or "").strip() or None
            if "role" in fields and payload.role is not None:
                user.role = payload.role
                if not requires_approval(payload.role):
                    user.is_approved = True
            if "department_id" in fields:
                self._require_department(session, payload.department_id)
                user.department_id = payload.department_id
            if "is_approved" in fields and payload.is_approved is not None:
                user.is_approved = payload.is_approved
            session.add(user)
            session.commit()
            session.refresh(user)
        event_bus.publish_dict(
            "user.updated",
            {"user_id": user.id, "fields": sorted(payload.model_fields_set)},
        )
        return user

    def approve_users(self, user_ids: list[str]) -> int:
        with self._session() as session:
            ids = [item for item in user_ids if isinstance(item, str) and item]
            if not ids:
                return 0
            users = list(
                session.exec(
                    select(User).where(col(User.id).in_(ids)).where(User.is_approved == False)  # noqa: E712
                ).all()
            )
            for user in users:
                user.is_approved = True
                session.add(user)
            session.commit()
        if users:
            event_bus.publish_dict("user.approved", {"user_ids": sorted(user.id for user in users)})
        return len(users)

    # departments

    def list_departments(self) -> list[Department]:
        with self._session() as session:
            return list(session.exec(select(Department).order_by(Department.name)).all())

    def create_department(self, payload: DepartmentCreate) -> Department:
        name = payload.name.strip()
        if not name:
            raise ValidationError("name is required")
        description = (payload.description or "").strip() or None
        with self._session() as session:
            department = Department(name=name, description=description)
            session.add(department)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("a department with this name already exists") from exc
            session.refresh(department)
            return department

    def delete_department(self, department_id: str) -> None:
        with self._session() as session:
            department = session.get(Department, department_id)
            if department is None:
                raise NotFoundError("department not found")
            for user in session.exec(select(User).where(User.department_id == department_id)).all():
                user.department_id = None
                session.add(user)
            session.delete(department)
            session.commit()

    # teams

    def _team_read(self, session: Session, team: Team) -> TeamRead:
        member_ids = OrgGraphStore(session).team_member_ids(team.id)
        return TeamRead(
            id=team.id,
            name=team.name,
            description=team.description,
            member_ids=sorted(member_ids),
        )

    def _clear_members(self, session: Session, team_id: str) -> None:
        for member in session.exec(select(TeamMember).where(TeamMember.team_id == team_id)).all():
            session.delete(member)
        session.flush()

    def _replace_members(self, session: Session, team_id: str, member_ids: list[str]) -> None:
        self._clear_members(session, team_id)
        for user_id in member_ids:
            session.add(TeamMember(team_id=team_id, user_id=user_id))

    def list_teams(self) -> list[TeamRead]:
        with self._session() as session:
            teams = list(session.exec(select(Team).order_by(Team.name)).all())
            return [self._team_read(session, team) for team in teams]

    def create_team(self, payload: TeamCreate) -> TeamRead:
        name = payload.name.strip()
        if not name:
            raise ValidationError("team name is required")
        with self._session() as session:
            member_ids = self._require_users(session, payload.member_ids)
            team = Team(name=name, description=(payload.description or "").strip() or None)
            session.add(team)
            try:
                session.flush()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("a team with this name already exists") from exc
            self._replace_members(session, team.id, member_ids)
            session.commit()
            session.refresh(team)
            return self._team_read(session, team)

    def update_team(self, team_id: str, payload: TeamUpdate) -> TeamRead:
        with self._session() as session:
            team = session.get(Team, team_id)
            if team is None:
                raise NotFoundError("team not found")
            fields = payload.model_fields_set
            if "name" in fields and payload.name is not None:
                name = payload.name.strip()
                if not name:
                    raise ValidationError("team name is required")
                team.name = name
            if "description" in fields:
                team.description = (payload.description or "").strip() or None
            session.add(team)
            if "member_ids" in fields and payload.member_ids is not None:
                self._replace_members(session, team.id, self._require_users(session, payload.member_ids))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("a team with this name already exists") from exc
            session.refresh(team)
            return self._team_read(session, team)

    def delete_team(self, team_id: str) -> None:
        with self._session() as session:
            team = session.get(Team, team_id)
            if team is None:
                raise NotFoundError("team not found")
            self._clear_members(session, team_id)
            session.delete(team)
            session.commit()

    # tags

    def get_user_tags(self, user_id: str) -> list[TagPair]:
        with self._session() as session:
            self._get_user(session, user_id)
            rows = session.exec(select(UserTag).where(UserTag.user_id == user_id).order_by(UserTag.key)).all()
            return [TagPair(key=row.key, value=row.value) for row in rows]

    def set_user_tags(self, user_id: str, tags: Iterable[TagPair]) -> list[TagPair]:
        """Replace every tag of ``user_id`` with ``tags`` in a single transaction."""
        normalized = normalize_tags(tags)
        with self._session() as session:
            self._get_user(session, user_id)
            for row in session.exec(select(UserTag).where(UserTag.user_id == user_id)).all():
                session.delete(row)
            session.flush()
            for tag in normalized:
                session.add(UserTag(user_id=user_id, key=tag.key, value=tag.value))
            session.commit()
        event_bus.publish_dict(
            "user.tags_replaced",
            {"user_id": user_id, "tags": [tag.model_dump() for tag in normalized]},
        )
        return normalized

    def tag_keys(self) -> list[str]:
        with self._session() as session:
            return sorted(set(session.exec(select(UserTag.key)).all()))

    def tag_values(self, key: str) -> list[str]:
        with self._session() as session:
            return sorted(set(session.exec(select(UserTag.value).where(UserTag.key == key)).all()))

    # manager assignments

    def list_manager_assignments(self) -> tuple[list[User], list[User], list[ManagerAssignment]]:
        with self._session() as session:
            managers = list(
                session.exec(
                    select(User).where(User.role == Role.MANAGER).where(User.is_approved == True)  # noqa: E712
                ).all()
            )
            employees = list(
                session.exec(select(User).where(col(User.role).in_([Role.EMPLOYEE, Role.MANAGER]))).all()
            )
            edges = OrgGraphStore(session).all_edges()

        def by_name(user: User) -> tuple[str, str]:
            return (user.name or user.email).casefold(), user.email

        return sorted(managers, key=by_name), sorted(employees, key=by_name), edges

    def set_manager_assignment(self, manager_id: str, employee_id: str, assigned: bool) -> None:
        if not manager_id or not employee_id:
            raise ValidationError("manager_id and employee_id are required")
        with self._session() as session:
            self._get_user(session, manager_id)
            self._get_user(session, employee_id)
            existing = session.get(ManagerAssignment, (manager_id, employee_id))
            if assigned:
                if existing is not None:
                    return
                if manager_id == employee_id:
                    raise ValidationError("a user cannot manage themselves")
                adjacency = build_adjacency(OrgGraphStore(session).all_edges())
                if would_create_cycle(adjacency, manager_id, employee_id):
                    raise ValidationError("assignment would create a reporting cycle")
                session.add(ManagerAssignment(manager_id=manager_id, employee_id=employee_id))
            else:
                if existing is None:
                    return
                session.delete(existing)
            session.commit()
        event_bus.publish_dict(
            "manager_assignment.updated",
            {"manager_id": manager_id, "employee_id": employee_id, "assigned": assigned},
        )

    def hierarchy(self) -> list[HierarchyNode]:
        with self._session() as session:
            users = list(session.exec(select(User)).all())
            edges = OrgGraphStore(session).all_edges()
        return build_hierarchy_tree(users, edges)

    # access grants

    def grant_access(self, user_id: str, domain: str, granted_by_id: str | None) -> AccessGrant:
        domain = domain.strip()
        if not domain:
            raise ValidationError("domain is required")
        with self._session() as session:
            self._get_user(session, user_id)
            grant = session.get(AccessGrant, (user_id, domain))
            if grant is None:
                grant = AccessGrant(user_id=user_id, domain=domain, granted_by_id=granted_by_id)
                session.add(grant)
                session.commit()
                session.refresh(grant)
            return grant

    def revoke_access(self, user_id: str, domain: str) -> None:
        with self._session() as session:
            grant = session.get(AccessGrant, (user_id, domain))
            if grant is None:
                raise NotFoundError("access grant not found")
            session.delete(grant)
            session.commit()

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.domain.access_policy import DOMAIN_CONTENTS_INV, AccessPolicy
from app.domain.models import (
    AccessGrant,
    Department,
    InventorySubmission,
    ManagerAssignment,
    Team,
    TeamMember,
    User,
    UserTag,
)
from app.domain.roles import Role
from app.services.access_service import AccessService
from app.services.scope_service import ScopeFilters, ScopeService, TagFilter, parse_tag_filters


@pytest.fixture()
def scope_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    db_path = tmp_path / "scope_test.db"
    test_engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: object, _connection_record: object) -> None:
        cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


def _user(session: Session, user_id: str, role: Role = Role.EMPLOYEE, department_id: str | None = None) -> User:
    user = User(
        id=user_id,
        email=f"{user_id.lower()}@example.com",
        name=user_id,
        password_hash="x",
        role=role,
        department_id=department_id,
    )
    session.add(user)
    return user


def _edge(session: Session, manager_id: str, employee_id: str) -> None:
    session.add(ManagerAssignment(manager_id=manager_id, employee_id=employee_id))


def _seed_org(session: Session) -> None:
    """M1 manages E1, E2 and M2; M2 manages E3. M1 sits in Estimating."""
    session.add(Department(id="dept-est", name="Estimating"))
    session.add(Department(id="dept-ops", name="Operations"))
    session.flush()
    _user(session, "M1", Role.MANAGER, "dept-est")
    _user(session, "M2", Role.MANAGER, "dept-ops")
    _user(session, "E1", department_id="dept-est")
    _user(session, "E2", department_id="dept-ops")
    _user(session, "E3", department_id="dept-ops")
    _user(session, "X", department_id="dept-est")
    _user(session, "OWN", Role.OWNER)
    session.flush()
    _edge(session, "M1", "E1")
    _edge(session, "M1", "E2")
    _edge(session, "M1", "M2")
    _edge(session, "M2", "E3")
    session.add(Team(id="team-1", name="Field"))
    session.flush()
    session.add(TeamMember(team_id="team-1", user_id="E1"))
    session.add(TeamMember(team_id="team-1", user_id="E3"))
    session.add(UserTag(user_id="E1", key="branch", value="north"))
    session.add(UserTag(user_id="E2", key="branch", value="north"))
    session.add(UserTag(user_id="X", key="branch", value="north"))
    session.commit()


def _policy() -> AccessPolicy:
    return AccessPolicy(elevated_departments={DOMAIN_CONTENTS_INV: frozenset({"Estimating"})})


def test_parse_tag_filters_trims_and_drops_malformed() -> None:
    parsed = parse_tag_filters([" branch : north ", "missing-colon", ":value", "key:", "branch:north", 7, "a:b:c"])

    assert parsed == (TagFilter(key="branch", value="north"), TagFilter(key="a", value="b:c"))


def test_employees_under_manager_scenario(scope_engine: Engine) -> None:
    service = ScopeService()
    with Session(scope_engine) as session:
        _seed_org(session)

        assert service.employees_under_manager(session, "M1") == {"E1", "E2", "M2", "E3"}
        assert service.employees_under_manager(session, "M2") == {"E3"}
        assert service.employees_under_manager(session, "E1") == set()
        assert set(service.employee_ids_for_scope(session, ScopeFilters(manager_id="M1"))) == {
            "E1",
            "E2",
            "M2",
            "E3",
        }


def test_empty_filters_return_every_user_once(scope_engine: Engine) -> None:
    service = ScopeService()
    with Session(scope_engine) as session:
        _seed_org(session)
        ids = service.employee_ids_for_scope(session, ScopeFilters())

    assert len(ids) == len(set(ids))
    assert set(ids) == {"M1", "M2", "E1", "E2", "E3", "X", "OWN"}


def test_filters_are_intersected(scope_engine: Engine) -> None:
    service = ScopeService()
    tag = (TagFilter(key="branch", value="north"),)
    with Session(scope_engine) as session:
        _seed_org(session)
        by_department = set(service.employee_ids_for_scope(session, ScopeFilters(department_id="dept-est")))
        by_tag = set(service.employee_ids_for_scope(session, ScopeFilters(tags=tag)))
        combined = set(service.employee_ids_for_scope(session, ScopeFilters(department_id="dept-est", tags=tag)))
        by_team_and_manager = service.employee_ids_for_scope(
            session,
            ScopeFilters(manager_id="M1", team_id="team-1"),
        )
        nobody = service.employee_ids_for_scope(session, ScopeFilters(team_id="missing-team"))

    assert combined == by_department & by_tag == {"E1", "X"}
    assert set(by_team_and_manager) == {"E1", "E3"}
    assert nobody == []


def test_visible_employee_ids_applies_role_defaults(scope_engine: Engine) -> None:
    service = ScopeService()
    with Session(scope_engine) as session:
        _seed_org(session)

        assert service.visible_employee_ids(session, "E1", Role.EMPLOYEE, ScopeFilters(manager_id="M1")) == ["E1"]
        # A manager asking for someone else's subtree still gets their own.
        assert set(service.visible_employee_ids(session, "M2", Role.MANAGER, ScopeFilters(manager_id="M1"))) == {
            "E3"
        }
        assert set(service.visible_employee_ids(session, "OWN", Role.OWNER, ScopeFilters(manager_id="M2"))) == {
            "E3"
        }
        assert len(service.visible_employee_ids(session, "OWN", Role.OWNER)) == 7

        assert service.in_scope(session, "M1", Role.MANAGER, "E3")
        assert not service.in_scope(session, "M2", Role.MANAGER, "E1")
        assert service.in_scope(session, "E1", Role.EMPLOYEE, "E1")
        assert not service.in_scope(session, "E1", Role.EMPLOYEE, "E2")


def test_record_owner_ids_adds_manager_when_filters_match(scope_engine: Engine) -> None:
    service = ScopeService()
    with Session(scope_engine) as session:
        _seed_org(session)

        assert service.record_owner_ids(session, "M2", Role.MANAGER) == ["E3", "M2"]
        assert service.in_scope(session, "M2", Role.MANAGER, "M2")
        assert service.record_owner_ids(session, "M1", Role.MANAGER, ScopeFilters(department_id="dept-est")) == [
            "E1",
            "M1",
        ]
        assert set(
            service.record_owner_ids(session, "M1", Role.MANAGER, ScopeFilters(department_id="dept-ops"))
        ) == {"E2", "M2", "E3"}
        assert service.record_owner_ids(session, "E1", Role.EMPLOYEE) == ["E1"]
        assert service.record_owner_ids(session, "OWN", Role.OWNER, ScopeFilters(manager_id="M2")) == ["E3"]


def test_can_assign_direct_reports_only(scope_engine: Engine) -> None:
    access = AccessService(policy=_policy())
    with Session(scope_engine) as session:
        _seed_org(session)

        assert access.is_elevated_manager(session, "M1", DOMAIN_CONTENTS_INV)
        assert not access.is_elevated_manager(session, "M2", DOMAIN_CONTENTS_INV)
        assert not access.is_elevated_manager(session, "E1", DOMAIN_CONTENTS_INV)
        assert access.can_assign(session, "M1", "E1", DOMAIN_CONTENTS_INV)
        assert not access.can_assign(session, "M1", "E3", DOMAIN_CONTENTS_INV)
        assert not access.can_assign(session, "M1", "X", DOMAIN_CONTENTS_INV)
        assert not access.can_assign(session, "M1", None, DOMAIN_CONTENTS_INV)
        # M2 manages E3 directly but is not in an elevated department.
        assert not access.can_assign(session, "M2", "E3", DOMAIN_CONTENTS_INV)
        assert access.can_update_assignment(session, "M1", None, DOMAIN_CONTENTS_INV)
        assert not access.can_update_assignment(session, "M2", None, DOMAIN_CONTENTS_INV)


def test_can_view_all_honours_roles_departments_and_grants(scope_engine: Engine) -> None:
    access = AccessService(policy=_policy())
    with Session(scope_engine) as session:
        _seed_org(session)

        assert access.can_view_all(session, "OWN", Role.OWNER, DOMAIN_CONTENTS_INV)
        assert access.can_view_all(session, "M1", Role.MANAGER, DOMAIN_CONTENTS_INV)
        assert not access.can_view_all(session, "M2", Role.MANAGER, DOMAIN_CONTENTS_INV)
        # Department membership alone does not elevate a non-manager.
        assert not access.can_view_all(session, "X", Role.EMPLOYEE, DOMAIN_CONTENTS_INV)

        session.add(AccessGrant(user_id="X", domain=DOMAIN_CONTENTS_INV))
        session.commit()
        assert access.can_view_all(session, "X", Role.EMPLOYEE, DOMAIN_CONTENTS_INV)
        assert not access.can_view_all(session, "X", Role.EMPLOYEE, "other")


def test_can_complete(scope_engine: Engine) -> None:
    access = AccessService(policy=_policy())
    with Session(scope_engine) as session:
        _seed_org(session)
        assigned_to_e3 = InventorySubmission(user_id="E2", customer_name="Acme", assigned_to_id="E3")
        assigned_to_e1 = InventorySubmission(user_id="E2", customer_name="Acme", assigned_to_id="E1")
        unassigned = InventorySubmission(user_id="E2", customer_name="Acme")

        assert access.can_complete(session, "E3", Role.EMPLOYEE, assigned_to_e3, DOMAIN_CONTENTS_INV)
        assert not access.can_complete(session, "E1", Role.EMPLOYEE, assigned_to_e3, DOMAIN_CONTENTS_INV)
        assert access.can_complete(session, "M1", Role.MANAGER, assigned_to_e1, DOMAIN_CONTENTS_INV)
        assert not access.can_complete(session, "M1", Role.MANAGER, assigned_to_e3, DOMAIN_CONTENTS_INV)
        assert not access.can_complete(session, "M1", Role.MANAGER, unassigned, DOMAIN_CONTENTS_INV)
        assert access.can_complete(session, "OWN", Role.OWNER, unassigned, DOMAIN_CONTENTS_INV)

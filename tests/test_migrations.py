from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import inspect
from sqlmodel import Session, SQLModel, create_engine

from app.domain.models import Contractor, DailyCheckIn, Department, ManagerAssignment, ReviewStatus, User
from app.domain.roles import Role
from app.infra import db
from app.infra.migrate import run_upgrade_head

ROOT = Path(__file__).resolve().parents[1]


def test_upgrade_head_creates_every_table(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    db_url = f"sqlite:///{tmp_path / 'migrate_test.db'}"
    monkeypatch.setattr(db, "DATABASE_URL", db_url)

    run_upgrade_head(str(ROOT / "alembic.ini"))

    engine = create_engine(db_url)
    table_names = set(inspect(engine).get_table_names())
    assert set(SQLModel.metadata.tables) <= table_names

    with Session(engine, expire_on_commit=False) as session:
        department = Department(name="Estimating")
        manager = User(email="m@example.com", password_hash="x", role=Role.SUPER_ADMIN)
        employee = User(email="e@example.com", password_hash="x", department_id=department.id)
        session.add(department)
        session.add(manager)
        session.add(employee)
        session.flush()
        session.add(ManagerAssignment(manager_id=manager.id, employee_id=employee.id))
        checkin = DailyCheckIn(user_id=employee.id, check_in_date=date(2026, 10, 19), note="on site")
        contractor = Contractor(name="Acme Roofing", created_by_id=employee.id)
        session.add(checkin)
        session.add(contractor)
        session.commit()

    with Session(engine) as session:
        stored = session.get(User, manager.id)
        assert stored is not None
        assert stored.role == Role.SUPER_ADMIN
        assert session.get(ManagerAssignment, (manager.id, employee.id)) is not None
        stored_checkin = session.get(DailyCheckIn, checkin.id)
        assert stored_checkin is not None
        assert stored_checkin.review_status == ReviewStatus.PENDING
        assert session.get(Contractor, contractor.id) is not None
    engine.dispose()

from __future__ import annotations

from sqlmodel import Session, col, select

from app.domain.models import (
    TrainingAssignment,
    TrainingAssignmentCreate,
    TrainingStatus,
    User,
    now_utc,
)
from app.domain.roles import Role
from app.infra.db import get_engine
from app.infra.events import event_bus
from app.services.scope_service import ScopeFilters, ScopeService


class TrainingError(Exception):
    pass


class NotFoundError(TrainingError):
    pass


class ForbiddenError(TrainingError):
    pass


class ValidationError(TrainingError):
    pass


class TrainingService:
    def __init__(self, scope: ScopeService | None = None) -> None:
        self.scope = scope if scope is not None else ScopeService()

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def list_assignments(
        self,
        requester_id: str,
        role: Role,
        filters: ScopeFilters | None = None,
        employee_id: str | None = None,
        status: TrainingStatus | None = None,
    ) -> list[TrainingAssignment]:
        with self._session() as session:
            allowed = set(self.scope.record_owner_ids(session, requester_id, role, filters))
            if employee_id is not None:
                allowed &= {employee_id}
            if not allowed:
                return []
            statement = select(TrainingAssignment).where(col(TrainingAssignment.employee_id).in_(allowed))
            if status is not None:
                statement = statement.where(TrainingAssignment.status == status)
            statement = statement.order_by(col(TrainingAssignment.assigned_at).desc())
            return list(session.exec(statement).all())

    def create_assignment(
        self,
        requester_id: str,
        role: Role,
        payload: TrainingAssignmentCreate,
    ) -> TrainingAssignment:
        course_title = payload.course_title.strip()
        if not course_title:
            raise ValidationError("course title is required")
        if role == Role.EMPLOYEE:
            raise ForbiddenError("manager access required")
        with self._session() as session:
            if session.get(User, payload.employee_id) is None:
                raise NotFoundError("employee not found")
            if not self.scope.in_scope(session, requester_id, role, payload.employee_id):
                raise ForbiddenError("employee is outside your scope")
            assignment = TrainingAssignment(
                employee_id=payload.employee_id,
                course_title=course_title,
                assigned_by_id=requester_id,
                due_date=payload.due_date,
            )
            session.add(assignment)
            session.commit()
            session.refresh(assignment)
        event_bus.publish_dict(
            "training.assigned",
            {"assignment_id": assignment.id, "employee_id": assignment.employee_id},
        )
        return assignment

    def update_status(
        self,
        assignment_id: str,
        requester_id: str,
        role: Role,
        status: TrainingStatus,
    ) -> TrainingAssignment:
        with self._session() as session:
            assignment = session.get(TrainingAssignment, assignment_id)
            if assignment is None:
                raise NotFoundError("training assignment not found")
            if not self.scope.in_scope(session, requester_id, role, assignment.employee_id):
                raise ForbiddenError("training assignment is outside your scope")
            assignment.status = status
            assignment.completed_at = now_utc() if status == TrainingStatus.COMPLETED else None
            session.add(assignment)
            session.commit()
            session.refresh(assignment)
            return assignment

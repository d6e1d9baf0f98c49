from __future__ import annotations

from sqlmodel import Session, col, or_, select

from app.domain.access_policy import DOMAIN_CONTENTS_INV
from app.domain.models import (
    InventorySubmission,
    SubmissionCreate,
    SubmissionStatus,
    User,
    now_utc,
)
from app.domain.roles import Role
from app.infra.db import get_engine
from app.infra.events import event_bus
from app.services.access_service import AccessService
from app.services.org_graph_store import OrgGraphStore


class SubmissionError(Exception):
    pass


class NotFoundError(SubmissionError):
    pass


class ConflictError(SubmissionError):
    pass


class ForbiddenError(SubmissionError):
    pass


class ValidationError(SubmissionError):
    pass


class SubmissionService:
    """Contents-inventory estimating queue."""

    domain = DOMAIN_CONTENTS_INV

    def __init__(self, access: AccessService | None = None) -> None:
        self.access = access if access is not None else AccessService()

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _get(self, session: Session, submission_id: str) -> InventorySubmission:
        submission = session.get(InventorySubmission, submission_id)
        if submission is None:
            raise NotFoundError("submission not found")
        return submission

    def _can_view(
        self,
        session: Session,
        submission: InventorySubmission,
        requester_id: str,
        role: Role,
    ) -> bool:
        if requester_id in {submission.user_id, submission.assigned_to_id}:
            return True
        return self.access.can_view_all(session, requester_id, role, self.domain)

    def create_submission(self, requester_id: str, payload: SubmissionCreate) -> InventorySubmission:
        customer_name = payload.customer_name.strip()
        if not customer_name:
            raise ValidationError("customer name is required")
        with self._session() as session:
            submission = InventorySubmission(
                user_id=requester_id,
                customer_name=customer_name,
                claim_number=(payload.claim_number or "").strip() or None,
                notes=payload.notes,
            )
            session.add(submission)
            session.commit()
            session.refresh(submission)
        event_bus.publish_dict(
            "submission.created",
            {"submission_id": submission.id, "user_id": requester_id},
        )
        return submission

    def list_submissions(
        self,
        requester_id: str,
        role: Role,
        status: SubmissionStatus | None = None,
    ) -> list[InventorySubmission]:
        with self._session() as session:
            statement = select(InventorySubmission)
            if not self.access.can_view_all(session, requester_id, role, self.domain):
                statement = statement.where(
                    or_(
                        col(InventorySubmission.user_id) == requester_id,
                        col(InventorySubmission.assigned_to_id) == requester_id,
                    )
                )
            if status is not None:
                statement = statement.where(InventorySubmission.status == status)
            statement = statement.order_by(col(InventorySubmission.created_at).desc())
            return list(session.exec(statement).all())

    def get_submission(self, submission_id: str, requester_id: str, role: Role) -> InventorySubmission:
        with self._session() as session:
            submission = self._get(session, submission_id)
            if not self._can_view(session, submission, requester_id, role):
                raise NotFoundError("submission not found")
            return submission

    def assignable_users(self, requester_id: str) -> list[User]:
        """Direct reports the requester may hand submissions to."""
        with self._session() as session:
            if not self.access.is_elevated_manager(session, requester_id, self.domain):
                raise ForbiddenError("estimating manager access required")
            report_ids = OrgGraphStore(session).direct_report_ids(requester_id)
            if not report_ids:
                return []
            users = list(session.exec(select(User).where(col(User.id).in_(report_ids))).all())
            return sorted(users, key=lambda item: ((item.name or item.email).casefold(), item.email))

    def assign_submission(
        self,
        submission_id: str,
        requester_id: str,
        assignee_id: str | None,
    ) -> InventorySubmission:
        with self._session() as session:
            submission = self._get(session, submission_id)
            if submission.status == SubmissionStatus.COMPLETED:
                raise ConflictError("submission already completed")
            if not self.access.can_update_assignment(session, requester_id, assignee_id, self.domain):
                raise ForbiddenError("assignee must be a direct report of an estimating manager")
            submission.assigned_to_id = assignee_id
            submission.status = SubmissionStatus.ASSIGNED if assignee_id else SubmissionStatus.PENDING
            session.add(submission)
            session.commit()
            session.refresh(submission)
        event_bus.publish_dict(
            "submission.assigned",
            {"submission_id": submission_id, "assignee_id": assignee_id},
        )
        return submission

    def complete_submission(
        self,
        submission_id: str,
        requester_id: str,
        role: Role,
        total_amount: float,
    ) -> InventorySubmission:
        with self._session() as session:
            submission = self._get(session, submission_id)
            if submission.status == SubmissionStatus.COMPLETED:
                raise ConflictError("submission already completed")
            if not self.access.can_complete(session, requester_id, role, submission, self.domain):
                raise ForbiddenError("not allowed to complete this submission")
            submission.status = SubmissionStatus.COMPLETED
            submission.total_amount = total_amount
            submission.completed_at = now_utc()
            session.add(submission)
            session.commit()
            session.refresh(submission)
        event_bus.publish_dict(
            "submission.completed",
            {"submission_id": submission_id, "completed_by": requester_id, "total_amount": total_amount},
        )
        return submission

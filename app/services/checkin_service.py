from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime

from sqlmodel import Session, col, select

from app.domain.checkins import is_on_time, is_workday, local_date
from app.domain.models import (
    CheckInCreate,
    DailyCheckIn,
    ReviewStatus,
    User,
    now_utc,
)
from app.domain.roles import Role
from app.infra.db import get_engine
from app.infra.events import event_bus
from app.services.scope_service import ScopeFilters, ScopeService


class CheckInError(Exception):
    pass


class NotFoundError(CheckInError):
    pass


class ForbiddenError(CheckInError):
    pass


class ValidationError(CheckInError):
    pass


def _resolve_window(
    today: date,
    on_date: date | None,
    start_date: date | None,
    end_date: date | None,
) -> tuple[date, date]:
    if on_date is not None:
        return on_date, on_date
    if start_date is None and end_date is None:
        return today, today
    if start_date is None or end_date is None:
        raise ValidationError("startDate and endDate must be given together")
    if start_date > end_date:
        raise ValidationError("startDate must not be after endDate")
    return start_date, end_date


class CheckInService:
    """Daily check-ins: employees submit once per workday, managers review their scope."""

    def __init__(
        self,
        scope: ScopeService | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.scope = scope if scope is not None else ScopeService()
        self.clock = clock

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def today(self) -> date:
        return local_date(self.clock())

    def submit(self, user_id: str, role: Role, payload: CheckInCreate) -> DailyCheckIn:
        if role != Role.EMPLOYEE:
            raise ForbiddenError("only employees submit daily check-ins")
        moment = self.clock()
        day = local_date(moment)
        if not is_workday(day):
            raise ValidationError("check-ins are only accepted on weekdays")
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise NotFoundError("user not found")
            checkin = DailyCheckIn(
                user_id=user_id,
                check_in_date=day,
                note=(payload.note or "").strip() or None,
                submitted_at=moment,
                is_on_time=is_on_time(moment),
            )
            session.add(checkin)
            session.commit()
            session.refresh(checkin)
        event_bus.publish_dict(
            "checkin.submitted",
            {
                "checkin_id": checkin.id,
                "user_id": user_id,
                "check_in_date": day.isoformat(),
                "is_on_time": checkin.is_on_time,
            },
        )
        return checkin

    def my_checkins(
        self,
        user_id: str,
        on_date: date | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[DailyCheckIn]:
        first, last = _resolve_window(self.today(), on_date, start_date, end_date)
        with self._session() as session:
            statement = (
                select(DailyCheckIn)
                .where(DailyCheckIn.user_id == user_id)
                .where(col(DailyCheckIn.check_in_date) >= first)
                .where(col(DailyCheckIn.check_in_date) <= last)
                .order_by(col(DailyCheckIn.submitted_at).desc())
            )
            return list(session.exec(statement).all())

    def list_checkins(
        self,
        requester_id: str,
        role: Role,
        filters: ScopeFilters | None = None,
        on_date: date | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        user_id: str | None = None,
    ) -> list[DailyCheckIn]:
        if role == Role.EMPLOYEE:
            raise ForbiddenError("manager access required")
        first, last = _resolve_window(self.today(), on_date, start_date, end_date)
        with self._session() as session:
            allowed = set(self.scope.visible_employee_ids(session, requester_id, role, filters))
            if user_id is not None:
                allowed &= {user_id}
            if not allowed:
                return []
            statement = (
                select(DailyCheckIn)
                .where(col(DailyCheckIn.user_id).in_(allowed))
                .where(col(DailyCheckIn.check_in_date) >= first)
                .where(col(DailyCheckIn.check_in_date) <= last)
                .order_by(col(DailyCheckIn.submitted_at).desc())
            )
            return list(session.exec(statement).all())

    def get_checkin(self, checkin_id: str, requester_id: str, role: Role) -> DailyCheckIn:
        with self._session() as session:
            checkin = session.get(DailyCheckIn, checkin_id)
            # Out-of-scope check-ins are reported as missing.
            if checkin is None or not self.scope.in_scope(session, requester_id, role, checkin.user_id):
                raise NotFoundError("check-in not found")
            return checkin

    def review(
        self,
        checkin_id: str,
        requester_id: str,
        role: Role,
        review_status: ReviewStatus,
        review_note: str | None = None,
    ) -> DailyCheckIn:
        if role == Role.EMPLOYEE:
            raise ForbiddenError("manager access required")
        if review_status == ReviewStatus.PENDING:
            raise ValidationError("review status must be ok or needs_follow_up")
        with self._session() as session:
            checkin = session.get(DailyCheckIn, checkin_id)
            if checkin is None or not self.scope.in_scope(session, requester_id, role, checkin.user_id):
                raise NotFoundError("check-in not found")
            if checkin.user_id == requester_id:
                raise ForbiddenError("cannot review your own check-in")
            checkin.review_status = review_status
            checkin.review_note = (review_note or "").strip() or None
            checkin.reviewed_at = self.clock()
            checkin.reviewed_by_id = requester_id
            session.add(checkin)
            session.commit()
            session.refresh(checkin)
        event_bus.publish_dict(
            "checkin.reviewed",
            {"checkin_id": checkin.id, "user_id": checkin.user_id, "review_status": review_status},
        )
        return checkin

    def missing(
        self,
        requester_id: str,
        role: Role,
        filters: ScopeFilters | None = None,
        on_date: date | None = None,
    ) -> tuple[date, bool, list[User]]:
        """Employees in scope with no check-in on the day; nobody is missing on a weekend."""
        if role == Role.EMPLOYEE:
            raise ForbiddenError("manager access required")
        day = on_date if on_date is not None else self.today()
        if not is_workday(day):
            return day, False, []
        with self._session() as session:
            scoped = self.scope.visible_employee_ids(session, requester_id, role, filters)
            if not scoped:
                return day, True, []
            submitted = set(
                session.exec(
                    select(DailyCheckIn.user_id)
                    .where(col(DailyCheckIn.user_id).in_(scoped))
                    .where(DailyCheckIn.check_in_date == day)
                ).all()
            )
            employees = session.exec(
                select(User)
                .where(col(User.id).in_(scoped))
                .where(User.role == Role.EMPLOYEE)
            ).all()
            missing = [user for user in employees if user.id not in submitted]
        missing.sort(key=lambda user: ((user.name or user.email).casefold(), user.id))
        return day, True, missing

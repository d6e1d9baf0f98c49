from __future__ import annotations

from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.api.deps import get_current_claims, get_scope_filters, require_manager_or_above
from app.domain.models import (
    CheckInCreate,
    CheckInRead,
    CheckInReviewRequest,
    MissingCheckInsRead,
    UserSummaryRead,
)
from app.domain.roles import Role
from app.infra.audit import set_audit_context
from app.services.checkin_service import CheckInService, ForbiddenError, NotFoundError, ValidationError
from app.services.scope_service import ScopeFilters

router = APIRouter()


def get_checkin_service() -> CheckInService:
    return CheckInService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
ManagerOrAbove = Annotated[dict[str, Any], Depends(require_manager_or_above)]
Service = Annotated[CheckInService, Depends(get_checkin_service)]
Filters = Annotated[ScopeFilters, Depends(get_scope_filters)]
DateParam = Annotated[date | None, Query(alias="date")]
StartDate = Annotated[date | None, Query(alias="startDate")]
EndDate = Annotated[date | None, Query(alias="endDate")]


def _handle_checkin_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc


def _note_manager_override(request: Request, claims: dict[str, Any], filters: ScopeFilters) -> None:
    if claims["role"] == Role.MANAGER and filters.manager_id not in {None, claims["sub"]}:
        set_audit_context(
            request,
            action="scope.manager_override_ignored",
            detail={"result": {"reason": "managers are pinned to their own subtree"}},
        )


@router.post("", response_model=CheckInRead, status_code=status.HTTP_201_CREATED)
def submit_checkin(payload: CheckInCreate, claims: Claims, service: Service) -> CheckInRead:
    try:
        return CheckInRead.model_validate(service.submit(claims["sub"], claims["role"], payload))
    except (NotFoundError, ForbiddenError, ValidationError) as exc:
        _handle_checkin_error(exc)
        raise


@router.get("/mine", response_model=list[CheckInRead])
def my_checkins(
    claims: Claims,
    service: Service,
    on_date: DateParam = None,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> list[CheckInRead]:
    try:
        rows = service.my_checkins(claims["sub"], on_date=on_date, start_date=start_date, end_date=end_date)
    except ValidationError as exc:
        _handle_checkin_error(exc)
        raise
    return [CheckInRead.model_validate(item) for item in rows]


@router.get("", response_model=list[CheckInRead])
def list_checkins(
    request: Request,
    claims: ManagerOrAbove,
    service: Service,
    filters: Filters,
    on_date: DateParam = None,
    start_date: StartDate = None,
    end_date: EndDate = None,
    user_id: Annotated[str | None, Query(alias="userId")] = None,
) -> list[CheckInRead]:
    _note_manager_override(request, claims, filters)
    try:
        rows = service.list_checkins(
            claims["sub"],
            claims["role"],
            filters,
            on_date=on_date,
            start_date=start_date,
            end_date=end_date,
            user_id=user_id,
        )
    except (ForbiddenError, ValidationError) as exc:
        _handle_checkin_error(exc)
        raise
    return [CheckInRead.model_validate(item) for item in rows]


@router.get("/missing", response_model=MissingCheckInsRead)
def missing_checkins(
    request: Request,
    claims: ManagerOrAbove,
    service: Service,
    filters: Filters,
    on_date: DateParam = None,
) -> MissingCheckInsRead:
    _note_manager_override(request, claims, filters)
    try:
        day, workday, users = service.missing(claims["sub"], claims["role"], filters, on_date=on_date)
    except ForbiddenError as exc:
        _handle_checkin_error(exc)
        raise
    return MissingCheckInsRead(
        check_in_date=day,
        workday=workday,
        missing=[UserSummaryRead.model_validate(item) for item in users],
    )


@router.get("/{checkin_id}", response_model=CheckInRead)
def get_checkin(checkin_id: str, claims: Claims, service: Service) -> CheckInRead:
    try:
        return CheckInRead.model_validate(service.get_checkin(checkin_id, claims["sub"], claims["role"]))
    except NotFoundError as exc:
        _handle_checkin_error(exc)
        raise


@router.post("/{checkin_id}/review", response_model=CheckInRead)
def review_checkin(
    checkin_id: str,
    payload: CheckInReviewRequest,
    request: Request,
    claims: ManagerOrAbove,
    service: Service,
) -> CheckInRead:
    set_audit_context(
        request,
        action="checkin.review",
        detail={"what": {"target": {"checkin_id": checkin_id, "review_status": payload.review_status}}},
    )
    try:
        row = service.review(
            checkin_id,
            claims["sub"],
            claims["role"],
            payload.review_status,
            payload.review_note,
        )
        return CheckInRead.model_validate(row)
    except (NotFoundError, ForbiddenError, ValidationError) as exc:
        _handle_checkin_error(exc)
        raise

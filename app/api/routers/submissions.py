from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.api.deps import get_current_claims
from app.domain.models import (
    SubmissionAssignRequest,
    SubmissionCompleteRequest,
    SubmissionCreate,
    SubmissionRead,
    SubmissionStatus,
    UserSummaryRead,
)
from app.infra.audit import set_audit_context
from app.services.submission_service import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    SubmissionService,
    ValidationError,
)

router = APIRouter()


def get_submission_service() -> SubmissionService:
    return SubmissionService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
Service = Annotated[SubmissionService, Depends(get_submission_service)]


def _handle_submission_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc


@router.post("", response_model=SubmissionRead, status_code=status.HTTP_201_CREATED)
def create_submission(payload: SubmissionCreate, claims: Claims, service: Service) -> SubmissionRead:
    try:
        return SubmissionRead.model_validate(service.create_submission(claims["sub"], payload))
    except (NotFoundError, ConflictError, ForbiddenError, ValidationError) as exc:
        _handle_submission_error(exc)
        raise


@router.get("", response_model=list[SubmissionRead])
def list_submissions(
    claims: Claims,
    service: Service,
    submission_status: Annotated[SubmissionStatus | None, Query(alias="status")] = None,
) -> list[SubmissionRead]:
    rows = service.list_submissions(claims["sub"], claims["role"], status=submission_status)
    return [SubmissionRead.model_validate(item) for item in rows]


@router.get("/assignable", response_model=list[UserSummaryRead])
def assignable_users(claims: Claims, service: Service) -> list[UserSummaryRead]:
    try:
        return [UserSummaryRead.model_validate(item) for item in service.assignable_users(claims["sub"])]
    except (NotFoundError, ConflictError, ForbiddenError, ValidationError) as exc:
        _handle_submission_error(exc)
        raise


@router.get("/{submission_id}", response_model=SubmissionRead)
def get_submission(submission_id: str, claims: Claims, service: Service) -> SubmissionRead:
    try:
        row = service.get_submission(submission_id, claims["sub"], claims["role"])
        return SubmissionRead.model_validate(row)
    except (NotFoundError, ConflictError, ForbiddenError, ValidationError) as exc:
        _handle_submission_error(exc)
        raise


@router.post("/{submission_id}/assign", response_model=SubmissionRead)
def assign_submission(
    submission_id: str,
    payload: SubmissionAssignRequest,
    request: Request,
    claims: Claims,
    service: Service,
) -> SubmissionRead:
    set_audit_context(
        request,
        action="submission.assign",
        detail={"what": {"target": {"submission_id": submission_id, "assignee_id": payload.assignee_id}}},
    )
    try:
        row = service.assign_submission(submission_id, claims["sub"], payload.assignee_id)
        return SubmissionRead.model_validate(row)
    except (NotFoundError, ConflictError, ForbiddenError, ValidationError) as exc:
        _handle_submission_error(exc)
        raise


@router.post("/{submission_id}/complete", response_model=SubmissionRead)
def complete_submission(
    submission_id: str,
    payload: SubmissionCompleteRequest,
    claims: Claims,
    service: Service,
) -> SubmissionRead:
    try:
        row = service.complete_submission(submission_id, claims["sub"], claims["role"], payload.total_amount)
        return SubmissionRead.model_validate(row)
    except (NotFoundError, ConflictError, ForbiddenError, ValidationError) as exc:
        _handle_submission_error(exc)
        raise

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_current_claims, get_scope_filters
from app.domain.models import (
    TrainingAssignmentCreate,
    TrainingAssignmentRead,
    TrainingStatus,
    TrainingStatusUpdate,
)
from app.services.scope_service import ScopeFilters
from app.services.training_service import ForbiddenError, NotFoundError, TrainingService, ValidationError

router = APIRouter()


def get_training_service() -> TrainingService:
    return TrainingService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
Service = Annotated[TrainingService, Depends(get_training_service)]
Filters = Annotated[ScopeFilters, Depends(get_scope_filters)]


def _handle_training_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc


@router.get("/assignments", response_model=list[TrainingAssignmentRead])
def list_assignments(
    claims: Claims,
    service: Service,
    filters: Filters,
    employee_id: Annotated[str | None, Query(alias="employeeId")] = None,
    training_status: Annotated[TrainingStatus | None, Query(alias="status")] = None,
) -> list[TrainingAssignmentRead]:
    rows = service.list_assignments(
        claims["sub"],
        claims["role"],
        filters,
        employee_id=employee_id,
        status=training_status,
    )
    return [TrainingAssignmentRead.model_validate(item) for item in rows]


@router.post("/assignments", response_model=TrainingAssignmentRead, status_code=status.HTTP_201_CREATED)
def create_assignment(
    payload: TrainingAssignmentCreate,
    claims: Claims,
    service: Service,
) -> TrainingAssignmentRead:
    try:
        row = service.create_assignment(claims["sub"], claims["role"], payload)
        return TrainingAssignmentRead.model_validate(row)
    except (NotFoundError, ForbiddenError, ValidationError) as exc:
        _handle_training_error(exc)
        raise


@router.patch("/assignments/{assignment_id}", response_model=TrainingAssignmentRead)
def update_assignment_status(
    assignment_id: str,
    payload: TrainingStatusUpdate,
    claims: Claims,
    service: Service,
) -> TrainingAssignmentRead:
    try:
        row = service.update_status(assignment_id, claims["sub"], claims["role"], payload.status)
        return TrainingAssignmentRead.model_validate(row)
    except (NotFoundError, ForbiddenError, ValidationError) as exc:
        _handle_training_error(exc)
        raise

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from app.api.deps import get_current_claims, get_scope_filters, require_manager_or_above
from app.domain.models import UserSummaryRead, UserTagsRead
from app.domain.roles import Role
from app.infra.audit import set_audit_context
from app.infra.db import get_session
from app.services.org_service import NotFoundError, OrgService
from app.services.scope_service import ScopeFilters, ScopeService

router = APIRouter()


def get_scope_service() -> ScopeService:
    return ScopeService()


def get_org_service() -> OrgService:
    return OrgService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
ManagerOrAbove = Annotated[dict[str, Any], Depends(require_manager_or_above)]
Filters = Annotated[ScopeFilters, Depends(get_scope_filters)]


@router.get("/employees", response_model=list[UserSummaryRead])
def list_scoped_employees(
    request: Request,
    claims: ManagerOrAbove,
    filters: Filters,
    scope: Annotated[ScopeService, Depends(get_scope_service)],
    org: Annotated[OrgService, Depends(get_org_service)],
    session: Annotated[Session, Depends(get_session)],
) -> list[UserSummaryRead]:
    role: Role = claims["role"]
    if role == Role.MANAGER and filters.manager_id not in {None, claims["sub"]}:
        set_audit_context(
            request,
            action="scope.manager_override_ignored",
            detail={"result": {"reason": "managers are pinned to their own subtree"}},
        )
    employee_ids = scope.visible_employee_ids(session, claims["sub"], role, filters)
    return [UserSummaryRead.model_validate(item) for item in org.list_users_by_ids(employee_ids)]


@router.get("/me/tags", response_model=UserTagsRead)
def my_tags(claims: Claims, org: Annotated[OrgService, Depends(get_org_service)]) -> UserTagsRead:
    try:
        return UserTagsRead(tags=org.get_user_tags(claims["sub"]))
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.api.deps import (
    require_manager_or_above,
    require_owner_or_super_admin,
    require_super_admin,
)
from app.domain.models import (
    ApproveUsersRead,
    ApproveUsersRequest,
    DepartmentCreate,
    DepartmentRead,
    HierarchyNodeRead,
    HierarchyRead,
    ManagerAssignmentEdge,
    ManagerAssignmentsRead,
    ManagerAssignmentUpdate,
    TagOptionsRead,
    TeamCreate,
    TeamRead,
    TeamUpdate,
    UserCreate,
    UserRead,
    UserSummaryRead,
    UserTagsRead,
    UserTagsUpdate,
    UserUpdate,
)
from app.infra.audit import set_audit_context
from app.services.org_service import ConflictError, NotFoundError, OrgService, ValidationError

router = APIRouter()


def get_org_service() -> OrgService:
    return OrgService()


SuperAdmin = Annotated[dict[str, Any], Depends(require_super_admin)]
OwnerOrSuperAdmin = Annotated[dict[str, Any], Depends(require_owner_or_super_admin)]
ManagerOrAbove = Annotated[dict[str, Any], Depends(require_manager_or_above)]
Service = Annotated[OrgService, Depends(get_org_service)]


def _handle_org_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc


@router.get("/users", response_model=list[UserRead])
def list_users(_claims: OwnerOrSuperAdmin, service: Service) -> list[UserRead]:
    return [UserRead.model_validate(item) for item in service.list_users()]


@router.get("/users/pending", response_model=list[UserRead])
def list_pending_users(_claims: SuperAdmin, service: Service) -> list[UserRead]:
    return [UserRead.model_validate(item) for item in service.list_pending_users()]


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, _claims: SuperAdmin, service: Service) -> UserRead:
    try:
        return UserRead.model_validate(service.create_user(payload))
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
        raise


@router.patch("/users/{user_id}", response_model=UserRead)
def update_user(user_id: str, payload: UserUpdate, _claims: SuperAdmin, service: Service) -> UserRead:
    try:
        return UserRead.model_validate(service.update_user(user_id, payload))
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
        raise


@router.post("/approve-users", response_model=ApproveUsersRead)
def approve_users(payload: ApproveUsersRequest, _claims: SuperAdmin, service: Service) -> ApproveUsersRead:
    return ApproveUsersRead(approved=service.approve_users(payload.user_ids))


@router.get("/departments", response_model=list[DepartmentRead])
def list_departments(_claims: ManagerOrAbove, service: Service) -> list[DepartmentRead]:
    return [DepartmentRead.model_validate(item) for item in service.list_departments()]


@router.post("/departments", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
def create_department(payload: DepartmentCreate, _claims: SuperAdmin, service: Service) -> DepartmentRead:
    try:
        return DepartmentRead.model_validate(service.create_department(payload))
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
        raise


@router.delete("/departments/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department(department_id: str, _claims: SuperAdmin, service: Service) -> Response:
    try:
        service.delete_department(department_id)
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/teams", response_model=list[TeamRead])
def list_teams(_claims: ManagerOrAbove, service: Service) -> list[TeamRead]:
    return service.list_teams()


@router.post("/teams", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team(payload: TeamCreate, _claims: OwnerOrSuperAdmin, service: Service) -> TeamRead:
    try:
        return service.create_team(payload)
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
        raise


@router.patch("/teams/{team_id}", response_model=TeamRead)
def update_team(team_id: str, payload: TeamUpdate, _claims: OwnerOrSuperAdmin, service: Service) -> TeamRead:
    try:
        return service.update_team(team_id, payload)
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
        raise


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(team_id: str, _claims: OwnerOrSuperAdmin, service: Service) -> Response:
    try:
        service.delete_team(team_id)
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{user_id}/tags", response_model=UserTagsRead)
def get_user_tags(user_id: str, _claims: SuperAdmin, service: Service) -> UserTagsRead:
    try:
        return UserTagsRead(tags=service.get_user_tags(user_id))
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
        raise


@router.put("/users/{user_id}/tags", response_model=UserTagsRead)
def set_user_tags(
    user_id: str,
    payload: UserTagsUpdate,
    request: Request,
    _claims: SuperAdmin,
    service: Service,
) -> UserTagsRead:
    set_audit_context(request, action="user.tags.replace", detail={"what": {"target": {"user_id": user_id}}})
    try:
        return UserTagsRead(tags=service.set_user_tags(user_id, payload.tags))
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
        raise


@router.get("/tag-options", response_model=TagOptionsRead, response_model_exclude_none=True)
def tag_options(_claims: ManagerOrAbove, service: Service, key: str | None = None) -> TagOptionsRead:
    normalized = (key or "").strip()
    if normalized:
        return TagOptionsRead(values=service.tag_values(normalized))
    return TagOptionsRead(keys=service.tag_keys())


@router.get("/manager-assignments", response_model=ManagerAssignmentsRead)
def list_manager_assignments(_claims: OwnerOrSuperAdmin, service: Service) -> ManagerAssignmentsRead:
    managers, employees, edges = service.list_manager_assignments()
    return ManagerAssignmentsRead(
        managers=[UserSummaryRead.model_validate(item) for item in managers],
        employees=[UserSummaryRead.model_validate(item) for item in employees],
        assignments=[ManagerAssignmentEdge.model_validate(item) for item in edges],
    )


@router.post("/manager-assignments", status_code=status.HTTP_204_NO_CONTENT)
def set_manager_assignment(
    payload: ManagerAssignmentUpdate,
    request: Request,
    _claims: OwnerOrSuperAdmin,
    service: Service,
) -> Response:
    set_audit_context(
        request,
        action="manager_assignment.assign" if payload.assigned else "manager_assignment.unassign",
        detail={"what": {"target": {"manager_id": payload.manager_id, "employee_id": payload.employee_id}}},
    )
    try:
        service.set_manager_assignment(payload.manager_id, payload.employee_id, payload.assigned)
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/manager-assignments/hierarchy", response_model=HierarchyRead)
def hierarchy(_claims: OwnerOrSuperAdmin, service: Service) -> HierarchyRead:
    forest = service.hierarchy()
    return HierarchyRead(hierarchy=[HierarchyNodeRead.model_validate(node.to_dict()) for node in forest])


@router.put("/access-grants/{user_id}/{domain}", status_code=status.HTTP_204_NO_CONTENT)
def grant_access(user_id: str, domain: str, claims: SuperAdmin, service: Service) -> Response:
    try:
        service.grant_access(user_id, domain, claims["sub"])
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/access-grants/{user_id}/{domain}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_access(user_id: str, domain: str, _claims: SuperAdmin, service: Service) -> Response:
    try:
        service.revoke_access(user_id, domain)
    except (NotFoundError, ConflictError, ValidationError) as exc:
        _handle_org_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

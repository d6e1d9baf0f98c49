from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import get_current_claims, get_scope_filters
from app.domain.models import ContractorRead, ContractorWrite
from app.services.contractor_service import ContractorService, ForbiddenError, NotFoundError, ValidationError
from app.services.scope_service import ScopeFilters

router = APIRouter()


def get_contractor_service() -> ContractorService:
    return ContractorService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
Service = Annotated[ContractorService, Depends(get_contractor_service)]
Filters = Annotated[ScopeFilters, Depends(get_scope_filters)]


def _handle_contractor_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc


@router.get("", response_model=list[ContractorRead])
def list_contractors(claims: Claims, service: Service, filters: Filters) -> list[ContractorRead]:
    rows = service.list_contractors(claims["sub"], claims["role"], filters)
    return [ContractorRead.model_validate(item) for item in rows]


@router.get("/mine", response_model=list[ContractorRead])
def my_contractors(claims: Claims, service: Service) -> list[ContractorRead]:
    return [ContractorRead.model_validate(item) for item in service.my_contractors(claims["sub"])]


@router.post("", response_model=ContractorRead, status_code=status.HTTP_201_CREATED)
def create_contractor(payload: ContractorWrite, claims: Claims, service: Service) -> ContractorRead:
    try:
        return ContractorRead.model_validate(service.create_contractor(claims["sub"], payload))
    except ValidationError as exc:
        _handle_contractor_error(exc)
        raise


@router.get("/{contractor_id}", response_model=ContractorRead)
def get_contractor(contractor_id: str, _claims: Claims, service: Service) -> ContractorRead:
    try:
        return ContractorRead.model_validate(service.get_contractor(contractor_id))
    except NotFoundError as exc:
        _handle_contractor_error(exc)
        raise


@router.put("/{contractor_id}", response_model=ContractorRead)
def update_contractor(
    contractor_id: str,
    payload: ContractorWrite,
    _claims: Claims,
    service: Service,
) -> ContractorRead:
    try:
        return ContractorRead.model_validate(service.update_contractor(contractor_id, payload))
    except (NotFoundError, ValidationError) as exc:
        _handle_contractor_error(exc)
        raise


@router.delete("/{contractor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contractor(contractor_id: str, claims: Claims, service: Service) -> Response:
    try:
        service.delete_contractor(contractor_id, claims["sub"], claims["role"])
    except (NotFoundError, ForbiddenError) as exc:
        _handle_contractor_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

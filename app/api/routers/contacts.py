from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_current_claims, get_scope_filters
from app.domain.models import ContactRead, ContactUpsert
from app.services.contact_service import ContactService, NotFoundError
from app.services.scope_service import ScopeFilters

router = APIRouter()


def get_contact_service() -> ContactService:
    return ContactService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
Service = Annotated[ContactService, Depends(get_contact_service)]
Filters = Annotated[ScopeFilters, Depends(get_scope_filters)]


@router.get("", response_model=list[ContactRead])
def list_contacts(claims: Claims, service: Service, filters: Filters) -> list[ContactRead]:
    rows = service.list_contacts(claims["sub"], claims["role"], filters)
    return [ContactRead.model_validate(item) for item in rows]


@router.put("/me", response_model=ContactRead)
def upsert_my_contact(payload: ContactUpsert, claims: Claims, service: Service) -> ContactRead:
    try:
        return ContactRead.model_validate(service.upsert_own_contact(claims["sub"], payload))
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/{user_id}", response_model=ContactRead)
def get_contact(user_id: str, claims: Claims, service: Service) -> ContactRead:
    try:
        return ContactRead.model_validate(service.get_contact(user_id, claims["sub"], claims["role"]))
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

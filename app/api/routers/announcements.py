from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.deps import get_current_claims
from app.domain.models import AnnouncementCreate, AnnouncementRead, AnnouncementUpdate
from app.services.announcement_service import AnnouncementService, ForbiddenError, NotFoundError

router = APIRouter()


def get_announcement_service() -> AnnouncementService:
    return AnnouncementService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
Service = Annotated[AnnouncementService, Depends(get_announcement_service)]


def _handle_announcement_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    raise exc


@router.get("", response_model=list[AnnouncementRead])
def list_announcements(
    _claims: Claims,
    service: Service,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> list[AnnouncementRead]:
    return [AnnouncementRead.model_validate(item) for item in service.list_announcements(limit)]


@router.post("", response_model=AnnouncementRead, status_code=status.HTTP_201_CREATED)
def create_announcement(payload: AnnouncementCreate, claims: Claims, service: Service) -> AnnouncementRead:
    try:
        row = service.create_announcement(claims["sub"], claims["role"], payload)
        return AnnouncementRead.model_validate(row)
    except (NotFoundError, ForbiddenError) as exc:
        _handle_announcement_error(exc)
        raise


@router.get("/{announcement_id}", response_model=AnnouncementRead)
def get_announcement(announcement_id: str, _claims: Claims, service: Service) -> AnnouncementRead:
    try:
        return AnnouncementRead.model_validate(service.get_announcement(announcement_id))
    except (NotFoundError, ForbiddenError) as exc:
        _handle_announcement_error(exc)
        raise


@router.patch("/{announcement_id}", response_model=AnnouncementRead)
def update_announcement(
    announcement_id: str,
    payload: AnnouncementUpdate,
    claims: Claims,
    service: Service,
) -> AnnouncementRead:
    try:
        row = service.update_announcement(announcement_id, claims["sub"], claims["role"], payload)
        return AnnouncementRead.model_validate(row)
    except (NotFoundError, ForbiddenError) as exc:
        _handle_announcement_error(exc)
        raise


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_announcement(announcement_id: str, claims: Claims, service: Service) -> Response:
    try:
        service.delete_announcement(announcement_id, claims["sub"], claims["role"])
    except (NotFoundError, ForbiddenError) as exc:
        _handle_announcement_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

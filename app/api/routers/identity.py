from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_current_claims
from app.domain.models import (
    BootstrapAdminRequest,
    DevLoginRequest,
    SignupRequest,
    TokenResponse,
    UserRead,
)
from app.infra.auth import create_access_token
from app.services.identity_service import (
    AuthError,
    ConflictError,
    ForbiddenError,
    IdentityService,
    NotFoundError,
)

router = APIRouter()


def get_identity_service() -> IdentityService:
    return IdentityService()


Claims = Annotated[dict[str, Any], Depends(get_current_claims)]
Service = Annotated[IdentityService, Depends(get_identity_service)]


def _handle_identity_error(exc: Exception) -> None:
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, AuthError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    raise exc


@router.post("/signup", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, service: Service) -> UserRead:
    try:
        user = service.signup(payload)
        return UserRead.model_validate(user)
    except (NotFoundError, ConflictError, AuthError, ForbiddenError) as exc:
        _handle_identity_error(exc)
        raise


@router.post("/bootstrap-admin", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def bootstrap_admin(payload: BootstrapAdminRequest, service: Service) -> UserRead:
    try:
        user = service.bootstrap_admin(payload)
        return UserRead.model_validate(user)
    except (NotFoundError, ConflictError, AuthError, ForbiddenError) as exc:
        _handle_identity_error(exc)
        raise


@router.post("/dev-login", response_model=TokenResponse)
def dev_login(payload: DevLoginRequest, service: Service) -> TokenResponse:
    try:
        user = service.dev_login(payload.email, payload.password)
    except (NotFoundError, ConflictError, AuthError, ForbiddenError) as exc:
        _handle_identity_error(exc)
        raise
    token = create_access_token(user_id=user.id, role=user.role)
    return TokenResponse(access_token=token, role=user.role)


@router.get("/me", response_model=UserRead)
def me(claims: Claims, service: Service) -> UserRead:
    try:
        user = service.get_user(claims["sub"])
        return UserRead.model_validate(user)
    except (NotFoundError, ConflictError, AuthError, ForbiddenError) as exc:
        _handle_identity_error(exc)
        raise

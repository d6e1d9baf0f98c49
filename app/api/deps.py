from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from app.domain.models import User
from app.domain.roles import Role, requires_approval
from app.infra.auth import decode_access_token
from app.infra.context import set_request_context
from app.infra.db import get_session
from app.services.scope_service import ScopeFilters, parse_tag_filters

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/identity/dev-login")


def get_current_claims(
    request: Request,
    session: Annotated[Session, Depends(get_session)],
    token: str = Depends(oauth2_scheme),
) -> dict[str, Any]:
    """Decode the bearer token and refresh its role from the user row.

    A role change or revoked approval takes effect on the next request, not
    when the token expires.
    """
    try:
        claims = decode_access_token(token)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc
    user = session.get(User, claims.get("sub"))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    if requires_approval(user.role) and not user.is_approved:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account pending approval")
    claims["role"] = user.role
    request.state.claims = claims
    set_request_context(claims.get("sub"))
    return claims


def require_roles(*roles: Role) -> Callable[[dict[str, Any]], dict[str, Any]]:
    allowed = frozenset(roles)

    def _checker(
        claims: Annotated[dict[str, Any], Depends(get_current_claims)],
    ) -> dict[str, Any]:
        if claims["role"] not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(sorted(role.value for role in allowed))}",
            )
        return claims

    return _checker


require_super_admin = require_roles(Role.SUPER_ADMIN)
require_owner_or_super_admin = require_roles(Role.OWNER, Role.SUPER_ADMIN)
require_manager_or_above = require_roles(Role.MANAGER, Role.OWNER, Role.SUPER_ADMIN)


def get_scope_filters(
    manager_id: Annotated[str | None, Query(alias="managerId")] = None,
    department_id: Annotated[str | None, Query(alias="departmentId")] = None,
    team_id: Annotated[str | None, Query(alias="teamId")] = None,
    tags: Annotated[list[str] | None, Query()] = None,
) -> ScopeFilters:
    return ScopeFilters(
        manager_id=(manager_id or "").strip() or None,
        department_id=(department_id or "").strip() or None,
        team_id=(team_id or "").strip() or None,
        tags=parse_tag_filters(tags or []),
    )

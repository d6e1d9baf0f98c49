from __future__ import annotations

from typing import Any

from sqlmodel import Session
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.domain.models import AuditLog, now_utc
from app.infra.db import engine

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
# Reads of the reporting graph are sensitive enough to keep a trail.
SENSITIVE_READ_FRAGMENTS = ("/manager-assignments", "/hierarchy")
SKIPPED_PATHS = frozenset({"/healthz", "/readyz"})
AUDIT_STATE_KEY = "_audit_context"


def write_audit_log(
    *,
    actor_id: str | None,
    actor_role: str | None,
    action: str,
    resource: str,
    method: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        resource=resource,
        method=method,
        status_code=status_code,
        detail=detail or {},
    )
    with Session(engine, expire_on_commit=False) as session:
        session.add(entry)
        session.commit()
    return entry


def merge_detail(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay ``extra`` on ``base``; nested dicts are merged, other values replaced."""
    merged = dict(base)
    for key, value in extra.items():
        current = merged.get(key)
        merged[key] = merge_detail(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


def outcome_for(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code in {401, 403, 404}:
        return "denied"
    if status_code in {400, 409, 422}:
        return "rejected"
    return "success"


def is_audited(method: str, path: str) -> bool:
    if path in SKIPPED_PATHS:
        return False
    return method in MUTATING_METHODS or any(fragment in path for fragment in SENSITIVE_READ_FRAGMENTS)


def set_audit_context(
    request: Request,
    *,
    action: str | None = None,
    resource: str | None = None,
    detail: dict[str, Any] | None = None,
) -> None:
    """Attach an explicit action, resource or detail to the current request's audit row.

    Routers call this before doing the work so that denied and failed requests
    are still recorded under a meaningful action name. A read that sets a
    context is audited even when its path would not be.
    """
    existing = getattr(request.state, AUDIT_STATE_KEY, None)
    context: dict[str, Any] = dict(existing) if isinstance(existing, dict) else {}
    if action is not None:
        context["action"] = action
    if resource is not None:
        context["resource"] = resource
    if detail:
        context["detail"] = merge_detail(context.get("detail") or {}, detail)
    setattr(request.state, AUDIT_STATE_KEY, context)


def _actor(request: Request) -> tuple[str | None, str | None]:
    claims = getattr(request.state, "claims", None) or {}
    role = claims.get("role")
    return claims.get("sub"), (str(role) if role is not None else None)


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        method, path = request.method, request.url.path
        context = getattr(request.state, AUDIT_STATE_KEY, None) or {}
        if path in SKIPPED_PATHS or not (is_audited(method, path) or context):
            return response

        actor_id, actor_role = _actor(request)
        action = context.get("action") or f"{method}:{path}"
        resource = context.get("resource") or path
        route = request.scope.get("route")
        detail = {
            "who": {"actor_id": actor_id, "actor_role": actor_role},
            "when": {"request_ts": now_utc().isoformat()},
            "where": {
                "path": path,
                "route": getattr(route, "path", path),
                "query": request.url.query,
                "client_ip": request.client.host if request.client is not None else None,
            },
            "what": {"action": action, "resource": resource, "method": method},
            "result": {"status_code": response.status_code, "outcome": outcome_for(response.status_code)},
        }
        if context.get("detail"):
            detail = merge_detail(detail, context["detail"])

        try:
            write_audit_log(
                actor_id=actor_id,
                actor_role=actor_role,
                action=action,
                resource=resource,
                method=method,
                status_code=response.status_code,
                detail=detail,
            )
        except Exception:
            # A failed audit write never changes the response.
            return response
        return response

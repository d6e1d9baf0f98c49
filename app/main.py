from __future__ import annotations

from fastapi import FastAPI, HTTPException

from app.api.routers import (
    admin,
    announcements,
    checkins,
    contacts,
    contractors,
    identity,
    org,
    submissions,
    training,
)
from app.infra.audit import AuditMiddleware
from app.infra.db import check_db_ready

app = FastAPI(
    title="ops-portal",
    description="Internal operations portal with hierarchy-scoped access control.",
    version="0.1.0",
)

app.add_middleware(AuditMiddleware)

app.include_router(identity.router, prefix="/api/identity", tags=["identity"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(org.router, prefix="/api/org", tags=["org"])
app.include_router(announcements.router, prefix="/api/announcements", tags=["announcements"])
app.include_router(submissions.router, prefix="/api/submissions", tags=["submissions"])
app.include_router(training.router, prefix="/api/training", tags=["training"])
app.include_router(contacts.router, prefix="/api/contacts", tags=["contacts"])
app.include_router(checkins.router, prefix="/api/checkins", tags=["checkins"])
app.include_router(contractors.router, prefix="/api/contractors", tags=["contractors"])


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/readyz")
def readyz() -> dict[str, object]:
    db_ok = check_db_ready()
    checks = {"db": "ok" if db_ok else "fail"}
    if not db_ok:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}

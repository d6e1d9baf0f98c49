from __future__ import annotations

from sqlmodel import Session, col, select

from app.domain.models import Contractor, ContractorWrite, now_utc
from app.domain.roles import Role, is_elevated
from app.infra.db import get_engine
from app.infra.events import event_bus
from app.services.scope_service import ScopeFilters, ScopeService


class ContractorError(Exception):
    pass


class NotFoundError(ContractorError):
    pass


class ForbiddenError(ContractorError):
    pass


class ValidationError(ContractorError):
    pass


def _apply(contractor: Contractor, payload: ContractorWrite) -> None:
    name = payload.name.strip()
    if not name:
        raise ValidationError("contractor name is required")
    contractor.name = name
    for field_name in ContractorWrite.model_fields:
        if field_name == "name":
            continue
        value = getattr(payload, field_name)
        setattr(contractor, field_name, (value or "").strip() or None)


class ContractorService:
    """Shared contractor directory.

    Every signed-in user can read, add and edit entries. Scope filters narrow
    the listing to contractors added by people in the requester's scope.
    """

    def __init__(self, scope: ScopeService | None = None) -> None:
        self.scope = scope if scope is not None else ScopeService()

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _get(self, session: Session, contractor_id: str) -> Contractor:
        contractor = session.get(Contractor, contractor_id)
        if contractor is None:
            raise NotFoundError("contractor not found")
        return contractor

    def list_contractors(
        self,
        requester_id: str,
        role: Role,
        filters: ScopeFilters | None = None,
    ) -> list[Contractor]:
        with self._session() as session:
            statement = select(Contractor)
            if filters is not None and not filters.is_empty:
                added_by = self.scope.record_owner_ids(session, requester_id, role, filters)
                if not added_by:
                    return []
                statement = statement.where(col(Contractor.created_by_id).in_(added_by))
            rows = session.exec(statement).all()
        return sorted(rows, key=lambda item: (item.name.casefold(), item.id))

    def my_contractors(self, requester_id: str) -> list[Contractor]:
        with self._session() as session:
            statement = (
                select(Contractor)
                .where(Contractor.created_by_id == requester_id)
                .order_by(col(Contractor.created_at).desc())
            )
            return list(session.exec(statement).all())

    def get_contractor(self, contractor_id: str) -> Contractor:
        with self._session() as session:
            return self._get(session, contractor_id)

    def create_contractor(self, requester_id: str, payload: ContractorWrite) -> Contractor:
        contractor = Contractor(name="", created_by_id=requester_id)
        _apply(contractor, payload)
        with self._session() as session:
            session.add(contractor)
            session.commit()
            session.refresh(contractor)
        event_bus.publish_dict("contractor.created", {"contractor_id": contractor.id, "name": contractor.name})
        return contractor

    def update_contractor(self, contractor_id: str, payload: ContractorWrite) -> Contractor:
        with self._session() as session:
            contractor = self._get(session, contractor_id)
            _apply(contractor, payload)
            contractor.updated_at = now_utc()
            session.add(contractor)
            session.commit()
            session.refresh(contractor)
            return contractor

    def delete_contractor(self, contractor_id: str, requester_id: str, role: Role) -> None:
        with self._session() as session:
            contractor = self._get(session, contractor_id)
            if contractor.created_by_id != requester_id and not is_elevated(role):
                raise ForbiddenError("only the person who added a contractor or an owner can delete it")
            session.delete(contractor)
            session.commit()
        event_bus.publish_dict("contractor.deleted", {"contractor_id": contractor_id})

from __future__ import annotations

from sqlmodel import Session, col, select

from app.domain.models import ContactUpsert, EmployeeContact, User, now_utc
from app.domain.roles import Role
from app.infra.db import get_engine
from app.services.scope_service import ScopeFilters, ScopeService


class ContactError(Exception):
    pass


class NotFoundError(ContactError):
    pass


class ContactService:
    def __init__(self, scope: ScopeService | None = None) -> None:
        self.scope = scope if scope is not None else ScopeService()

    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def list_contacts(
        self,
        requester_id: str,
        role: Role,
        filters: ScopeFilters | None = None,
    ) -> list[EmployeeContact]:
        with self._session() as session:
            allowed = self.scope.record_owner_ids(session, requester_id, role, filters)
            if not allowed:
                return []
            statement = select(EmployeeContact).where(col(EmployeeContact.user_id).in_(allowed))
            return sorted(session.exec(statement).all(), key=lambda item: item.user_id)

    def get_contact(self, user_id: str, requester_id: str, role: Role) -> EmployeeContact:
        with self._session() as session:
            # Out-of-scope contacts are reported as missing.
            if not self.scope.in_scope(session, requester_id, role, user_id):
                raise NotFoundError("contact not found")
            contact = session.exec(select(EmployeeContact).where(EmployeeContact.user_id == user_id)).first()
            if contact is None:
                raise NotFoundError("contact not found")
            return contact

    def upsert_own_contact(self, user_id: str, payload: ContactUpsert) -> EmployeeContact:
        with self._session() as session:
            if session.get(User, user_id) is None:
                raise NotFoundError("user not found")
            contact = session.exec(select(EmployeeContact).where(EmployeeContact.user_id == user_id)).first()
            if contact is None:
                contact = EmployeeContact(user_id=user_id)
            for field_name in payload.model_fields_set:
                value = getattr(payload, field_name)
                if isinstance(value, str):
                    value = value.strip() or None
                setattr(contact, field_name, value)
            contact.updated_at = now_utc()
            session.add(contact)
            session.commit()
            session.refresh(contact)
            return contact

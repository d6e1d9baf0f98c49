from __future__ import annotations

import hashlib
import hmac
import os

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.domain.models import BootstrapAdminRequest, SignupRequest, User
from app.domain.roles import SELF_SIGNUP_ROLES, Role, requires_approval
from app.infra.db import get_engine
from app.infra.events import event_bus


class IdentityError(Exception):
    pass


class NotFoundError(IdentityError):
    pass


class ConflictError(IdentityError):
    pass


class AuthError(IdentityError):
    pass


class ForbiddenError(IdentityError):
    pass


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(raw_password: str) -> str:
    salt = os.getenv("PASSWORD_SALT", "ops-portal-dev-salt")
    return hashlib.sha256(f"{salt}:{raw_password}".encode()).hexdigest()


class IdentityService:
    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _find_by_email(self, session: Session, email: str) -> User | None:
        return session.exec(select(User).where(User.email == normalize_email(email))).first()

    def _add_user(self, session: Session, user: User) -> User:
        session.add(user)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError("email already registered") from exc
        session.refresh(user)
        return user

    def signup(self, payload: SignupRequest) -> User:
        if payload.role not in SELF_SIGNUP_ROLES:
            raise ForbiddenError(f"role cannot be self-assigned: {payload.role}")
        email = normalize_email(payload.email)
        if not email or not payload.password:
            raise AuthError("email and password are required")
        with self._session() as session:
            if self._find_by_email(session, email) is not None:
                raise ConflictError("email already registered")
            user = self._add_user(
                session,
                User(
                    email=email,
                    name=(payload.name or "").strip() or None,
                    password_hash=hash_password(payload.password),
                    role=payload.role,
                    is_approved=not requires_approval(payload.role),
                ),
            )
        event_bus.publish_dict(
            "user.registered",
            {"user_id": user.id, "role": user.role, "is_approved": user.is_approved},
        )
        return user

    def bootstrap_admin(self, payload: BootstrapAdminRequest) -> User:
        with self._session() as session:
            existing = session.exec(select(User).where(User.role == Role.SUPER_ADMIN)).first()
            if existing is not None:
                raise ConflictError("super admin already initialized")
            user = self._add_user(
                session,
                User(
                    email=normalize_email(payload.email),
                    name=(payload.name or "").strip() or None,
                    password_hash=hash_password(payload.password),
                    role=Role.SUPER_ADMIN,
                    is_approved=True,
                ),
            )
        event_bus.publish_dict("user.bootstrap_admin", {"user_id": user.id})
        return user

    def dev_login(self, email: str, password: str) -> User:
        with self._session() as session:
            user = self._find_by_email(session, email)
            if user is None or not hmac.compare_digest(user.password_hash, hash_password(password)):
                raise AuthError("invalid credentials")
            if requires_approval(user.role) and not user.is_approved:
                raise AuthError("account pending approval")
            return user

    def get_user(self, user_id: str) -> User:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("user not found")
            return user

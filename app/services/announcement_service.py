from __future__ import annotations

from sqlmodel import Session, col, select

from app.domain.models import Announcement, AnnouncementCreate, AnnouncementUpdate, now_utc
from app.domain.roles import Role, can_create_announcement, can_manage_announcement
from app.infra.db import get_engine
from app.infra.events import event_bus


class AnnouncementError(Exception):
    pass


class NotFoundError(AnnouncementError):
    pass


class ForbiddenError(AnnouncementError):
    pass


class AnnouncementService:
    def _session(self) -> Session:
        return Session(get_engine(), expire_on_commit=False)

    def _get(self, session: Session, announcement_id: str) -> Announcement:
        announcement = session.get(Announcement, announcement_id)
        if announcement is None:
            raise NotFoundError("announcement not found")
        return announcement

    def list_announcements(self, limit: int | None = None) -> list[Announcement]:
        """Pinned announcements first, then newest first."""
        with self._session() as session:
            statement = select(Announcement).order_by(
                col(Announcement.pinned).desc(),
                col(Announcement.created_at).desc(),
            )
            if limit is not None:
                statement = statement.limit(limit)
            return list(session.exec(statement).all())

    def get_announcement(self, announcement_id: str) -> Announcement:
        with self._session() as session:
            return self._get(session, announcement_id)

    def create_announcement(self, author_id: str, role: Role, payload: AnnouncementCreate) -> Announcement:
        if not can_create_announcement(role):
            raise ForbiddenError("role cannot create announcements")
        with self._session() as session:
            announcement = Announcement(
                title=payload.title.strip(),
                message=payload.message,
                priority=payload.priority,
                category=(payload.category or "").strip() or None,
                pinned=payload.pinned,
                author_id=author_id,
            )
            session.add(announcement)
            session.commit()
            session.refresh(announcement)
        event_bus.publish_dict(
            "announcement.created",
            {"announcement_id": announcement.id, "author_id": author_id, "priority": announcement.priority},
        )
        return announcement

    def update_announcement(
        self,
        announcement_id: str,
        requester_id: str,
        role: Role,
        payload: AnnouncementUpdate,
    ) -> Announcement:
        with self._session() as session:
            announcement = self._get(session, announcement_id)
            if not can_manage_announcement(role, announcement.author_id, requester_id):
                raise ForbiddenError("cannot manage this announcement")
            fields = payload.model_fields_set
            if payload.title:
                announcement.title = payload.title.strip()
            if payload.message:
                announcement.message = payload.message
            if payload.priority is not None:
                announcement.priority = payload.priority
            if "category" in fields:
                announcement.category = (payload.category or "").strip() or None
            if payload.pinned is not None:
                announcement.pinned = payload.pinned
            announcement.updated_at = now_utc()
            session.add(announcement)
            session.commit()
            session.refresh(announcement)
            return announcement

    def delete_announcement(self, announcement_id: str, requester_id: str, role: Role) -> None:
        with self._session() as session:
            announcement = self._get(session, announcement_id)
            if not can_manage_announcement(role, announcement.author_id, requester_id):
                raise ForbiddenError("cannot manage this announcement")
            session.delete(announcement)
            session.commit()
        event_bus.publish_dict("announcement.deleted", {"announcement_id": announcement_id})

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from sqlmodel import Session

from app.domain.hierarchy import build_adjacency, walk_reports
from app.domain.roles import Role, is_elevated
from app.services.org_graph_store import OrgGraphStore


@dataclass(frozen=True)
class TagFilter:
    key: str
    value: str


@dataclass(frozen=True)
class ScopeFilters:
    manager_id: str | None = None
    department_id: str | None = None
    team_id: str | None = None
    tags: tuple[TagFilter, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.manager_id or self.department_id or self.team_id or self.tags)


def parse_tag_filters(values: Iterable[object]) -> tuple[TagFilter, ...]:
    """Turn repeated ``key:value`` query values into tag filters.

    Entries that are not strings, lack a colon, or have an empty key or value
    are dropped.
    """
    parsed: list[TagFilter] = []
    seen: set[TagFilter] = set()
    for raw in values:
        if not isinstance(raw, str):
            continue
        key, sep, value = raw.partition(":")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            continue
        item = TagFilter(key=key, value=value)
        if item not in seen:
            seen.add(item)
            parsed.append(item)
    return tuple(parsed)


class ScopeService:
    def employees_under_manager(self, session: Session, manager_id: str) -> set[str]:
        store = OrgGraphStore(session)
        adjacency = build_adjacency(store.all_edges())
        return walk_reports(manager_id, adjacency)

    def employee_ids_for_scope(self, session: Session, filters: ScopeFilters) -> list[str]:
        """Ids of users matching every supplied filter; no filters means every user."""
        store = OrgGraphStore(session)
        candidates: list[set[str]] = []

        if filters.manager_id:
            candidates.append(self.employees_under_manager(session, filters.manager_id))
        if filters.department_id:
            candidates.append(store.user_ids_in_department(filters.department_id))
        if filters.team_id:
            candidates.append(store.team_member_ids(filters.team_id))
        for tag in filters.tags:
            candidates.append(store.user_ids_with_tag(tag.key, tag.value))

        if not candidates:
            return sorted(store.all_user_ids())

        allowed = set.intersection(*candidates)
        return sorted(allowed)

    def visible_employee_ids(
        self,
        session: Session,
        requester_id: str,
        role: Role,
        filters: ScopeFilters | None = None,
    ) -> list[str]:
        """Apply role defaults before resolving a scope.

        Employees only ever see themselves. A manager is pinned to their own
        subtree whatever manager filter was requested. Owners and Super Admins
        get the filters as given.
        """
        requested = filters or ScopeFilters()
        if is_elevated(role):
            return self.employee_ids_for_scope(session, requested)
        if role == Role.MANAGER:
            return self.employee_ids_for_scope(session, replace(requested, manager_id=requester_id))
        return [requester_id]

    def record_owner_ids(
        self,
        session: Session,
        requester_id: str,
        role: Role,
        filters: ScopeFilters | None = None,
    ) -> list[str]:
        """Ids whose records (training, contacts, check-ins) the requester may list.

        Same as ``visible_employee_ids`` except that a manager also gets their
        own records, as long as they match the department, team and tag filters.
        """
        visible = self.visible_employee_ids(session, requester_id, role, filters)
        if role != Role.MANAGER or requester_id in visible:
            return visible
        own_filters = replace(filters or ScopeFilters(), manager_id=None)
        if requester_id in self.employee_ids_for_scope(session, own_filters):
            return sorted([*visible, requester_id])
        return visible

    def in_scope(self, session: Session, requester_id: str, role: Role, user_id: str) -> bool:
        if user_id == requester_id or is_elevated(role):
            return True
        if role != Role.MANAGER:
            return False
        return user_id in self.employees_under_manager(session, requester_id)

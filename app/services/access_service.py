from __future__ import annotations

from sqlmodel import Session

from app.domain.access_policy import DOMAIN_CONTENTS_INV, AccessPolicy, load_access_policy
from app.domain.models import InventorySubmission
from app.domain.roles import Role, is_elevated
from app.services.org_graph_store import OrgGraphStore


class AccessService:
    """Authorization decisions over ownership, roles and the reporting graph.

    Every method is a read-only predicate. Callers turn ``False`` into a
    forbidden error before writing anything.
    """

    def __init__(self, policy: AccessPolicy | None = None) -> None:
        self.policy = policy if policy is not None else load_access_policy()

    def is_elevated_manager(
        self,
        session: Session,
        user_id: str,
        domain: str = DOMAIN_CONTENTS_INV,
    ) -> bool:
        store = OrgGraphStore(session)
        user = store.get_user(user_id)
        if user is None:
            return False
        if is_elevated(user.role):
            return True
        if user.role != Role.MANAGER:
            return False
        return self.policy.department_is_elevated(domain, store.department_name(user.department_id))

    def can_view_all(
        self,
        session: Session,
        requester_id: str,
        role: Role,
        domain: str = DOMAIN_CONTENTS_INV,
    ) -> bool:
        if is_elevated(role):
            return True
        if OrgGraphStore(session).has_access_grant(requester_id, domain):
            return True
        return role == Role.MANAGER and self.is_elevated_manager(session, requester_id, domain)

    def can_assign(
        self,
        session: Session,
        requester_id: str,
        assignee_id: str | None,
        domain: str = DOMAIN_CONTENTS_INV,
    ) -> bool:
        if not assignee_id:
            return False
        if not self.is_elevated_manager(session, requester_id, domain):
            return False
        # Direct reports only; the transitive subtree is for viewing.
        return OrgGraphStore(session).has_direct_report(requester_id, assignee_id)

    def can_update_assignment(
        self,
        session: Session,
        requester_id: str,
        assignee_id: str | None,
        domain: str = DOMAIN_CONTENTS_INV,
    ) -> bool:
        if assignee_id is None:
            return self.is_elevated_manager(session, requester_id, domain)
        return self.can_assign(session, requester_id, assignee_id, domain)

    def can_complete(
        self,
        session: Session,
        requester_id: str,
        role: Role,
        submission: InventorySubmission,
        domain: str = DOMAIN_CONTENTS_INV,
    ) -> bool:
        assignee_id = submission.assigned_to_id
        if assignee_id is not None and assignee_id == requester_id:
            return True
        if is_elevated(role):
            return True
        if assignee_id is None:
            return False
        return self.can_assign(session, requester_id, assignee_id, domain)

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from app.domain.roles import Role, role_rank

Adjacency = Mapping[str, frozenset[str]]


class ReportingEdge(Protocol):
    manager_id: str
    employee_id: str


class HierarchyMember(Protocol):
    id: str
    name: str | None
    email: str
    role: Role


@dataclass(frozen=True)
class HierarchyNode:
    id: str
    name: str | None
    email: str
    role: Role
    children: tuple[HierarchyNode, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name or self.email

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "children": [child.to_dict() for child in self.children],
        }


def build_adjacency(edges: Iterable[ReportingEdge]) -> dict[str, frozenset[str]]:
    grouped: dict[str, set[str]] = {}
    for edge in edges:
        grouped.setdefault(edge.manager_id, set()).add(edge.employee_id)
    return {manager_id: frozenset(reports) for manager_id, reports in grouped.items()}


def walk_reports(manager_id: str, adjacency: Adjacency) -> set[str]:
    """Return every direct and indirect report of ``manager_id``.

    Breadth-first over the manager -> employee edges. The root is marked visited
    up front, so it is never reported as its own descendant and a cycle cannot
    expand forever.
    """
    visited = {manager_id}
    result: set[str] = set()
    frontier = {manager_id}
    while frontier:
        next_frontier: set[str] = set()
        for current in frontier:
            for employee_id in adjacency.get(current, frozenset()):
                if employee_id in visited:
                    continue
                visited.add(employee_id)
                result.add(employee_id)
                next_frontier.add(employee_id)
        frontier = next_frontier
    return result


def would_create_cycle(adjacency: Adjacency, manager_id: str, employee_id: str) -> bool:
    if manager_id == employee_id:
        return True
    return manager_id in walk_reports(employee_id, adjacency)


def _sort_key(node: HierarchyNode) -> tuple[int, str, str]:
    return role_rank(node.role), node.display_name.casefold(), node.display_name


def build_hierarchy_tree(
    users: Iterable[HierarchyMember],
    assignments: Iterable[ReportingEdge],
) -> list[HierarchyNode]:
    """Render the reporting graph as a forest.

    A user is a root when nobody manages them. A user with several managers
    appears under each of them. Children are ordered by role rank, then by
    display name. Edges that point at unknown users are ignored and a cycle
    below a root is cut where a node would repeat on its own path.
    """
    members = {user.id: user for user in users}
    edges = [edge for edge in assignments if edge.manager_id in members and edge.employee_id in members]
    adjacency = build_adjacency(edges)
    managed = {edge.employee_id for edge in edges}

    # Subtrees that never hit a cycle cut are the same on every path, so they are
    # built once and shared. Only a subtree containing a cut depends on the path.
    built: dict[str, HierarchyNode] = {}

    def build(user_id: str, path: frozenset[str]) -> tuple[HierarchyNode, bool]:
        if user_id in built:
            return built[user_id], False
        member = members[user_id]
        branch = path | {user_id}
        children: list[HierarchyNode] = []
        was_cut = False
        for child_id in adjacency.get(user_id, frozenset()):
            if child_id in branch:
                was_cut = True
                continue
            child, child_cut = build(child_id, branch)
            children.append(child)
            was_cut = was_cut or child_cut
        node = HierarchyNode(
            id=member.id,
            name=member.name,
            email=member.email,
            role=member.role,
            children=tuple(sorted(children, key=_sort_key)),
        )
        if not was_cut:
            built[user_id] = node
        return node, was_cut

    roots = [build(user_id, frozenset())[0] for user_id in members if user_id not in managed]
    return sorted(roots, key=_sort_key)

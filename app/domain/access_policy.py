from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

DOMAIN_CONTENTS_INV = "contents_inv"

DEFAULT_ELEVATED_DEPARTMENTS = f"{DOMAIN_CONTENTS_INV}=Estimating"


def parse_elevated_departments(raw: str) -> dict[str, frozenset[str]]:
    """Parse ``domain=Dept A|Dept B;other=Dept C`` into a domain -> department names map."""
    parsed: dict[str, set[str]] = {}
    for chunk in raw.split(";"):
        domain, sep, departments = chunk.partition("=")
        domain = domain.strip()
        if not sep or not domain:
            continue
        names = {item.strip() for item in departments.split("|") if item.strip()}
        if names:
            parsed.setdefault(domain, set()).update(names)
    return {domain: frozenset(names) for domain, names in parsed.items()}


@dataclass(frozen=True)
class AccessPolicy:
    elevated_departments: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def department_is_elevated(self, domain: str, department_name: str | None) -> bool:
        if department_name is None:
            return False
        return department_name in self.elevated_departments.get(domain, frozenset())


def load_access_policy() -> AccessPolicy:
    raw = os.getenv("ELEVATED_DEPARTMENTS", DEFAULT_ELEVATED_DEPARTMENTS)
    return AccessPolicy(elevated_departments=parse_elevated_departments(raw))

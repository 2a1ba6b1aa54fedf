from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from app.pageserver.constants import DEFAULT_ACL, ROLE_ADMIN, ROLE_GUEST, ROLE_MEMBER
from app.pageserver.models import User


@dataclass(frozen=True)
class AclRule:
    roles: frozenset[str]
    pattern: re.Pattern[str]
    methods: frozenset[str]

    def applies(self, url: str, method: str) -> bool:
        return method in self.methods and self.pattern.search(url) is not None


class Acl:
    """
    Append-only rule table answering "may role R use method M on URL U".

    Every rule whose pattern and method-set match the request replaces the
    running verdict with ``role in rule.roles``, so rules registered later take
    precedence over earlier ones. No applicable rule means deny.
    """

    def __init__(self) -> None:
        self._rules: list[AclRule] = []

    @classmethod
    def default(cls) -> Acl:
        acl = cls()
        for roles, pattern, methods in DEFAULT_ACL:
            acl.allow(roles, pattern, methods)
        return acl

    @property
    def rules(self) -> tuple[AclRule, ...]:
        return tuple(self._rules)

    def allow(self, roles: Iterable[str], pattern: str | re.Pattern[str], methods: Iterable[str]) -> AclRule:
        rule = AclRule(
            roles=frozenset(roles),
            pattern=re.compile(pattern),
            methods=frozenset(m.upper() for m in methods),
        )
        self._rules.append(rule)
        return rule

    def is_allowed(self, role: str, url: str, method: str) -> bool:
        method = (method or "").upper()
        allowed = False
        for rule in self._rules:
            if rule.applies(url, method):
                allowed = role in rule.roles
        return allowed


def acl_role_for(user: User | None) -> str:
    if not user or not user.is_active:
        return ROLE_GUEST
    if any(role.key == ROLE_ADMIN for role in user.roles):
        return ROLE_ADMIN
    return ROLE_MEMBER

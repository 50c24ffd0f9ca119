"""
Role resolution for lending callers.

The kernel does not authenticate anyone.  It only needs to know which role
identifiers mean "restricted to own loans" and "may see everyone's loans",
and which of them a caller holds.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from lending_kernel.domain.dtos import CallerContext


class Role(str, Enum):
    """Built-in role identifiers."""

    MEMBER = "member"  # Restricted: sees own loans only
    LIBRARIAN = "librarian"  # Elevated: sees all loans


class RoleAuthority(Protocol):
    """Exposes a caller's role set and the scope-relevant role identifiers."""

    member_role: str
    librarian_role: str

    def roles_of(self, caller: CallerContext) -> frozenset[str]:
        ...


class CallerRoleAuthority:
    """
    Reads roles straight from ``CallerContext.roles``.

    Role identifiers are configurable so deployments whose identity provider
    names roles differently need no code change.
    """

    def __init__(
        self,
        member_role: str = Role.MEMBER.value,
        librarian_role: str = Role.LIBRARIAN.value,
    ):
        self.member_role = member_role
        self.librarian_role = librarian_role

    def roles_of(self, caller: CallerContext) -> frozenset[str]:
        return frozenset(caller.roles)

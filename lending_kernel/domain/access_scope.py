"""
AccessScopeFilter -- row scoping for restricted callers.

Responsibility:
    Rewrites a loan query filter so that a caller holding the restricted
    (member) role without the elevated (librarian) role can only ever match
    loans they borrowed themselves.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Called by the loan coordinator before
    a listing query is dispatched to the repository.

Invariants enforced:
    - Scoping is a filter rewrite, never a post-filter of returned rows, so
      counts and pagination reflect the scoped result.
    - A restricted caller's own ``member_id`` always wins over any member_id
      the caller supplied.
"""

from __future__ import annotations

from dataclasses import replace

from lending_kernel.domain.dtos import CallerContext, LoanFilter
from lending_kernel.domain.roles import CallerRoleAuthority, RoleAuthority
from lending_kernel.logging_config import get_logger

logger = get_logger("domain.access_scope")


class AccessScopeFilter:
    """Merges the caller's identity into loan filters for restricted roles."""

    def __init__(self, role_authority: RoleAuthority | None = None):
        self._roles = role_authority or CallerRoleAuthority()

    def is_restricted(self, caller: CallerContext) -> bool:
        """True when the caller may only see their own loans."""
        roles = self._roles.roles_of(caller)
        return self._roles.member_role in roles and self._roles.librarian_role not in roles

    def apply(self, caller: CallerContext, loan_filter: LoanFilter | None) -> LoanFilter:
        """
        Return the filter to dispatch on behalf of ``caller``.

        Postconditions:
            - Unrestricted callers get their filter back unchanged (or an
              empty filter when None was given).
            - Restricted callers get a copy with ``member_id`` set to their
              own actor id.
        """
        loan_filter = loan_filter or LoanFilter()
        if not self.is_restricted(caller):
            return loan_filter

        if loan_filter.member_id is not None and loan_filter.member_id != caller.actor_id:
            logger.info(
                "loan_filter_member_overridden",
                extra={"requested_member_id": str(loan_filter.member_id)},
            )
        return replace(loan_filter, member_id=caller.actor_id)

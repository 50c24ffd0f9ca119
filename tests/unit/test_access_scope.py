"""
Access scoping of loan listings.

Restricted (member-only) callers always have their own id forced into the
filter; anyone holding the elevated role keeps the filter they sent.
"""

from datetime import UTC, datetime
from uuid import uuid4

from lending_kernel.domain.access_scope import AccessScopeFilter
from lending_kernel.domain.dtos import CallerContext, LoanFilter
from lending_kernel.domain.roles import CallerRoleAuthority


class TestAccessScopeFilter:

    def test_member_filter_forced_to_own_id(self, member_caller):
        scope = AccessScopeFilter()
        scoped = scope.apply(member_caller, LoanFilter(member_id=uuid4(), returned=False))

        assert scoped.member_id == member_caller.actor_id
        assert scoped.returned is False

    def test_member_with_no_filter_gets_own_id(self, member_caller):
        scoped = AccessScopeFilter().apply(member_caller, None)
        assert scoped == LoanFilter(member_id=member_caller.actor_id)

    def test_librarian_filter_unchanged(self, librarian_caller):
        requested = LoanFilter(member_id=uuid4(), issue_date_from=datetime(2024, 1, 1, tzinfo=UTC))
        assert AccessScopeFilter().apply(librarian_caller, requested) is requested

    def test_both_roles_are_unrestricted(self, member_librarian_caller):
        scope = AccessScopeFilter()
        assert not scope.is_restricted(member_librarian_caller)
        assert scope.apply(member_librarian_caller, None) == LoanFilter()

    def test_caller_without_roles_is_unrestricted(self):
        caller = CallerContext(actor_id=uuid4())
        assert not AccessScopeFilter().is_restricted(caller)

    def test_input_filter_not_mutated(self, member_caller):
        requested = LoanFilter(member_id=uuid4())
        AccessScopeFilter().apply(member_caller, requested)
        assert requested.member_id != member_caller.actor_id

    def test_custom_role_identifiers(self):
        authority = CallerRoleAuthority(member_role="patron", librarian_role="staff")
        scope = AccessScopeFilter(authority)
        patron = CallerContext(actor_id=uuid4(), roles=frozenset({"patron"}))
        member = CallerContext(actor_id=uuid4(), roles=frozenset({"member"}))

        assert scope.is_restricted(patron)
        assert not scope.is_restricted(member)

    def test_override_is_logged(self, member_caller, captured_logs):
        AccessScopeFilter().apply(member_caller, LoanFilter(member_id=uuid4()))

        messages = [r["message"] for r in captured_logs()]
        assert "loan_filter_member_overridden" in messages

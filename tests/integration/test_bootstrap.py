"""
End-to-end wiring: configuration -> engine -> repositories -> coordinator.
"""

from dataclasses import replace
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from lending_config import get_active_config
from lending_config.schema import LoanPolicyConfig, RoleConfig
from lending_kernel.db.engine import drop_tables, reset_engine
from lending_kernel.domain.clock import DeterministicClock
from lending_kernel.domain.dtos import CallerContext, LoanCreate, LoanUpdate
from lending_kernel.exceptions import ItemOutOfStockError
from lending_services import build_runtime


@pytest.fixture
def runtime(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("LENDING_CONFIG_PATH", raising=False)
    config = replace(
        get_active_config(),
        loan_policy=LoanPolicyConfig(
            default_loan_period_days=14, tenant_overrides=(("express", 3),)
        ),
        roles=RoleConfig(member_role="patron", librarian_role="staff"),
    )
    built = build_runtime(config, clock=DeterministicClock())
    yield built
    drop_tables()
    reset_engine()


class TestBuildRuntime:

    def test_full_loan_lifecycle(self, runtime):
        staff = CallerContext(actor_id=uuid4(), roles=frozenset({"staff"}))
        item = runtime.items.create("INT-1", "Neuromancer", 1, actor_id=staff.actor_id)
        service = runtime.loan_service

        loan = service.create(
            LoanCreate(
                item_id=item.id,
                member_id=uuid4(),
                issue_date=datetime(2024, 1, 1, tzinfo=UTC),
            ),
            staff,
        )
        assert loan.due_date == datetime(2024, 1, 15, tzinfo=UTC)

        with pytest.raises(ItemOutOfStockError):
            service.create(LoanCreate(item_id=item.id, member_id=uuid4()), staff)

        service.update(loan.id, LoanUpdate(return_date=datetime(2024, 1, 10, tzinfo=UTC)), staff)
        assert runtime.items.find_by_id(item.id).stock == 1

        service.destroy_all([loan.id], staff)
        assert runtime.loans.count() == 0

    def test_tenant_override_seeded(self, runtime):
        express = CallerContext(actor_id=uuid4(), tenant_id="express")
        assert runtime.loan_service.due_date_policy.loan_period_days(express) == 3

    def test_configured_roles_drive_scoping(self, runtime):
        staff = CallerContext(actor_id=uuid4(), roles=frozenset({"staff"}))
        patron = CallerContext(actor_id=uuid4(), roles=frozenset({"patron"}))
        item = runtime.items.create("INT-2", "Kindred", 3, actor_id=staff.actor_id)
        for borrower in (patron.actor_id, uuid4()):
            runtime.loan_service.create(LoanCreate(item_id=item.id, member_id=borrower), staff)

        patron_page = runtime.loan_service.find_and_count_all(None, None, patron)
        staff_page = runtime.loan_service.find_and_count_all(None, None, staff)

        assert patron_page.count == 1
        assert patron_page.rows[0].member_id == patron.actor_id
        assert staff_page.count == 2

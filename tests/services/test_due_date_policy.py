"""DueDatePolicy: loan period resolution through the settings resolver."""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from lending_kernel.domain.dtos import CallerContext, LendingSettingsInfo
from lending_kernel.exceptions import ConfigurationError, StorageError
from lending_kernel.repositories.memory import InMemorySettingsResolver, InMemoryStore
from lending_kernel.services.due_date_policy import DueDatePolicy


@pytest.fixture
def caller():
    return CallerContext(actor_id=uuid4(), tenant_id="main")


class TestDueDatePolicy:

    def test_default_period_applied(self, caller):
        policy = DueDatePolicy(InMemorySettingsResolver(InMemoryStore(), 14))
        issue = datetime(2024, 1, 1, tzinfo=UTC)

        assert policy.due_date_for(issue, caller) == datetime(2024, 1, 15, tzinfo=UTC)

    def test_tenant_override(self, caller):
        resolver = InMemorySettingsResolver(InMemoryStore(), 14, overrides={"main": 28})
        policy = DueDatePolicy(resolver)

        assert policy.loan_period_days(caller) == 28

    def test_default_created_once_per_tenant(self, caller):
        store = InMemoryStore()
        resolver = InMemorySettingsResolver(store, 21)

        DueDatePolicy(resolver).loan_period_days(caller)

        assert store.settings == {"main": 21}

    def test_storage_failure_becomes_configuration_error(self, caller):
        resolver = MagicMock()
        resolver.find_or_create_default.side_effect = StorageError("settings", "db down")

        with pytest.raises(ConfigurationError) as exc_info:
            DueDatePolicy(resolver).loan_period_days(caller)

        assert isinstance(exc_info.value.__cause__, StorageError)
        assert exc_info.value.setting == "loan_period_days"

    def test_non_positive_stored_period_rejected(self, caller):
        resolver = MagicMock()
        resolver.find_or_create_default.return_value = LendingSettingsInfo("main", 0)

        with pytest.raises(ConfigurationError):
            DueDatePolicy(resolver).loan_period_days(caller)

    def test_invalid_default_rejected_at_construction(self):
        with pytest.raises(ConfigurationError):
            InMemorySettingsResolver(InMemoryStore(), -3)

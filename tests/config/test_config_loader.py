"""
Configuration loading: YAML parsing, validation, environment overrides,
and the config trace.
"""

import textwrap

import pytest

from lending_config import get_active_config
from lending_config.loader import compute_checksum, load_config, parse_config

VALID_YAML = textwrap.dedent(
    """
    config_id: branch-test
    version: 3
    loan_policy:
      default_loan_period_days: 21
      tenant_overrides:
        north: 7
        south: 28
    roles:
      member_role: patron
      librarian_role: staff
    database:
      url: "sqlite://"
      pool_size: 5
    logging:
      level: debug
    """
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("LENDING_CONFIG_PATH", raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "lending.yaml"
    path.write_text(VALID_YAML)
    return path


class TestLoadConfig:

    def test_parses_all_sections(self, config_file):
        config = load_config(config_file)

        assert config.config_id == "branch-test"
        assert config.version == 3
        assert config.loan_policy.default_loan_period_days == 21
        assert config.loan_policy.tenant_overrides == (("north", 7), ("south", 28))
        assert config.loan_policy.loan_period_for("north") == 7
        assert config.loan_policy.loan_period_for("elsewhere") == 21
        assert config.roles.member_role == "patron"
        assert config.database.pool_size == 5
        assert config.logging.level == "DEBUG"
        assert len(config.checksum) == 64

    def test_defaults_for_missing_sections(self):
        config = parse_config({"config_id": "bare", "version": 1})

        assert config.loan_policy.default_loan_period_days == 14
        assert config.roles.librarian_role == "librarian"
        assert config.database.url == "sqlite://"

    def test_missing_config_id(self):
        with pytest.raises(KeyError):
            parse_config({"version": 1})

    @pytest.mark.parametrize(
        "section, values",
        [
            ("loan_policy", {"default_loan_period_days": 0}),
            ("loan_policy", {"default_loan_period_days": "14"}),
            ("loan_policy", {"tenant_overrides": {"north": -2}}),
            ("roles", {"member_role": "staff", "librarian_role": "staff"}),
            ("logging", {"level": "chatty"}),
        ],
    )
    def test_invalid_values_rejected(self, section, values):
        with pytest.raises(ValueError):
            parse_config({"config_id": "bad", "version": 1, section: values})

    def test_checksum_independent_of_key_order(self):
        assert compute_checksum({"a": 1, "b": {"c": 2}}) == compute_checksum({"b": {"c": 2}, "a": 1})


class TestGetActiveConfig:

    def test_bundled_default(self):
        config = get_active_config()

        assert config.config_id == "lending-default"
        assert config.loan_policy.default_loan_period_days == 14
        assert config.database.create_tables is True

    def test_path_from_environment(self, monkeypatch, config_file):
        monkeypatch.setenv("LENDING_CONFIG_PATH", str(config_file))
        assert get_active_config().config_id == "branch-test"

    def test_database_url_override_keeps_checksum(self, monkeypatch, config_file):
        baseline = get_active_config(config_file)
        monkeypatch.setenv("DATABASE_URL", "postgresql://lending@db/lending")

        overridden = get_active_config(config_file)

        assert overridden.database.url == "postgresql://lending@db/lending"
        assert overridden.database.pool_size == 5
        assert overridden.checksum == baseline.checksum

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_trace_logged(self, config_file, captured_logs):
        config = get_active_config(config_file)

        trace = next(r for r in captured_logs() if r["message"] == "LENDING_CONFIG_TRACE")
        assert trace["config_set_id"] == "branch-test"
        assert trace["checksum"] == config.checksum
        assert trace["database_dialect"] == "sqlite"

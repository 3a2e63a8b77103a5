"""Tests for environment-driven configuration."""

import pytest

from expense_tracker.config import (
    CorrectionSettings,
    ImportSettings,
    get_settings,
    validate_all_settings,
)
from expense_tracker.models.dates import DateFormatHint
from expense_tracker.models.statement import UnparsedDatePolicy


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for settings groups."""

    def test_defaults(self, monkeypatch):
        """Test the defaults match the historical heuristics."""
        for name in ("IMPORT_UNPARSED_DATE_POLICY", "CORRECTION_WINDOW_YEAR"):
            monkeypatch.delenv(name, raising=False)

        imports = ImportSettings()
        corrections = CorrectionSettings()

        assert imports.date_format_hint == DateFormatHint.AUTO
        assert imports.unparsed_date_policy == UnparsedDatePolicy.SKIP
        assert corrections.future_year_threshold == 2027
        assert corrections.assumed_import_year == 2024
        assert corrections.window_year == 2025
        assert corrections.window_months == (6, 7)

    def test_env_prefix(self, monkeypatch):
        """Test each group reads its own prefix."""
        monkeypatch.setenv("IMPORT_UNPARSED_DATE_POLICY", "import_as_now")
        monkeypatch.setenv("CORRECTION_WINDOW_YEAR", "2024")

        settings = get_settings()

        assert settings.imports.unparsed_date_policy == UnparsedDatePolicy.IMPORT_AS_NOW
        assert settings.corrections.window_year == 2024

    def test_validate_all_reports_bad_group(self, monkeypatch):
        """Test a misconfigured group is reported instead of raised."""
        monkeypatch.setenv("BUDGET_INFO_THRESHOLD", "95")

        results = validate_all_settings()

        assert results["imports"] is True
        assert results["budgets"] is False
        assert "budgets_error" in results

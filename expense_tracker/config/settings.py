"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Heuristics that used to be hard-coded (assumed import year, target
correction window, alert thresholds) are explicit settings.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from expense_tracker.models.dates import DateFormatHint, DateRangePreset
from expense_tracker.models.statement import UnparsedDatePolicy


class ImportSettings(BaseSettings):
    """Statement import configuration."""

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        extra="ignore"
    )

    date_format_hint: DateFormatHint = Field(
        default=DateFormatHint.AUTO,
        description="Date field order of imported statements (auto = infer per statement)"
    )
    unparsed_date_policy: UnparsedDatePolicy = Field(
        default=UnparsedDatePolicy.SKIP,
        description="What to do with rows whose date cannot be parsed"
    )
    min_inference_confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Below this confidence the inferred format is ignored and AUTO is used"
    )

    # Semantic validation
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a transaction date can be"
    )
    max_date_age_days: int = Field(
        default=365 * 2,
        ge=1,
        description="Transactions older than this are flagged as suspicious"
    )
    max_amount: float = Field(
        default=100000.0,
        gt=0,
        description="Maximum reasonable transaction amount (for sanity checking)"
    )


class BudgetSettings(BaseSettings):
    """Budget dashboard configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        extra="ignore"
    )

    default_range: DateRangePreset = Field(
        default=DateRangePreset.LAST_30_DAYS,
        description="Date range used when none is selected"
    )
    days_per_budget_month: int = Field(
        default=30,
        ge=1,
        description="Days a monthly budget covers when prorating to a range"
    )
    info_threshold: float = Field(default=50.0, ge=0.0)
    warning_threshold: float = Field(default=80.0, ge=0.0)
    danger_threshold: float = Field(default=100.0, ge=0.0)

    @model_validator(mode='after')
    def validate_threshold_order(self) -> 'BudgetSettings':
        """Thresholds must be ordered info <= warning <= danger."""
        if not self.info_threshold <= self.warning_threshold <= self.danger_threshold:
            raise ValueError("Alert thresholds must satisfy info <= warning <= danger")
        return self


class CorrectionSettings(BaseSettings):
    """Batch date correction configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CORRECTION_",
        extra="ignore"
    )

    # Swapped-year rule
    future_year_threshold: int = Field(
        default=2027,
        description="Dates in or after this year are treated as mis-parsed"
    )
    assumed_import_year: int = Field(
        default=2024,
        description="Year assigned to dates repaired by the swapped-year rule"
    )

    # Window remap rule
    window_year: int = Field(default=2025)
    window_months: tuple[int, int] = Field(
        default=(6, 7),
        description="First and second month of the believed-correct window"
    )
    split_day: int = Field(
        default=15,
        ge=1,
        le=30,
        description="Days up to this map to the first window month, later days to the second"
    )

    update_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per record update before it is reported as failed"
    )

    @field_validator('window_months')
    @classmethod
    def validate_window_months(cls, v: tuple[int, int]) -> tuple[int, int]:
        first, second = v
        if not (1 <= first <= 12 and 1 <= second <= 12):
            raise ValueError("window months must be between 1 and 12")
        if second != first + 1:
            raise ValueError("window months must be consecutive within one year")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def imports(self) -> ImportSettings:
        return ImportSettings()

    @property
    def budgets(self) -> BudgetSettings:
        return BudgetSettings()

    @property
    def corrections(self) -> CorrectionSettings:
        return CorrectionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the failing groups.
    """
    results = {}
    settings = get_settings()

    for name in ("imports", "budgets", "corrections", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

"""
Configuration Management for Finance Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Reconciliation policy lives here, not in code.
The fuzzy-paid threshold and the due-soon window are tunable knobs;
the defaults reproduce the behaviour users already know.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReconciliationSettings(BaseSettings):
    """Recurring-obligation reconciliation policy."""

    model_config = SettingsConfigDict(
        env_prefix="RECONCILE_",
        extra="ignore"
    )

    paid_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Share of the template amount that counts as settled"
    )
    due_soon_days: int = Field(
        default=3,
        ge=0,
        description="Days before the due date an item is flagged as due soon"
    )
    timeline_length: int = Field(
        default=3,
        ge=1,
        le=24,
        description="Number of forward projections per active template"
    )
    smart_match: bool = Field(
        default=False,
        description="Also match unlinked transactions by type, category and amount"
    )
    smart_match_margin: float = Field(
        default=0.20,
        ge=0.0,
        le=1.0,
        description="Allowed amount deviation for a smart match, as a share"
    )


class MatchingSettings(BaseSettings):
    """Scoring policy for linking bank/import transactions to templates."""

    model_config = SettingsConfigDict(
        env_prefix="MATCH_",
        extra="ignore"
    )

    # Weights of the three score components; they sum to 1
    identity_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    amount_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    temporal_weight: float = Field(default=0.2, ge=0.0, le=1.0)

    auto_match_threshold: int = Field(
        default=85,
        ge=0,
        le=100,
        description="Minimum score to link without review"
    )
    suggestion_threshold: int = Field(
        default=65,
        ge=0,
        le=100,
        description="Minimum score to suggest a template"
    )
    tie_breaker_margin: int = Field(
        default=5,
        ge=0,
        description="Lead an auto match needs over the runner-up"
    )

    amount_variance_percentage: float = Field(
        default=5.0,
        gt=0.0,
        le=100.0,
        description="Default allowed amount deviation, in percent"
    )
    temporal_variance_days: int = Field(
        default=3,
        ge=0,
        description="Default allowed date drift, in days"
    )

    fuzzy_token_cutoff: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Minimum similarity for a near-miss token to count"
    )
    fuzzy_token_weight: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Credit given to a near-miss token"
    )

    @model_validator(mode='after')
    def validate_weights(self) -> 'MatchingSettings':
        total = self.identity_weight + self.amount_weight + self.temporal_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Match weights must sum to 1, got {total}")
        if self.suggestion_threshold > self.auto_match_threshold:
            raise ValueError("Suggestion threshold cannot exceed auto-match threshold")
        return self


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept any casing, store upper case."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def reconciliation(self) -> ReconciliationSettings:
        return ReconciliationSettings()

    @property
    def matching(self) -> MatchingSettings:
        return MatchingSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.reconciliation
        results["reconciliation"] = True
    except Exception as e:
        results["reconciliation"] = False
        results["reconciliation_error"] = str(e)

    try:
        _ = settings.matching
        results["matching"] = True
    except Exception as e:
        results["matching"] = False
        results["matching_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

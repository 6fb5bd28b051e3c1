"""Configuration management with pydantic-settings.

Provides type-safe configuration with environment variable validation.
The ``planning_*`` values seed the global PlanningSettings record the first
time a snapshot is created; after that the record is edited explicitly.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.domain.inventory.models import ForecastMethod, LowStockRule, PlanningSettings


class Settings(BaseSettings):
    """Application settings with environment variable validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Planning defaults ===
    planning_default_lead_time_days: int = Field(14, ge=0, description="Lead time when product has none")
    planning_safety_stock_days: float = Field(7, ge=0, description="Safety stock coverage in days")
    planning_review_period_days: float = Field(7, ge=0, description="Days between order reviews")
    planning_low_stock_days_cover_threshold: float = Field(
        21, ge=0, description="Low stock threshold (days of cover)"
    )
    planning_expiry_warning_days: float = Field(60, ge=0, description="Expiry warning window (days)")
    planning_notification_cooldown_hours: float = Field(
        24, ge=0, description="Hours before the same alert may be raised again"
    )
    planning_forecast_method: ForecastMethod = Field(
        ForecastMethod.SIMPLE_AVERAGE_6_MONTHS, description="simpleAverage6Months or weightedAverage"
    )
    planning_weights: str = Field("1,1,1,1,1,5", description="Six weights, oldest month first")
    planning_low_stock_rule: LowStockRule = Field(
        LowStockRule.BELOW_DAYS_COVER, description="belowDaysCover or belowReorderPoint"
    )
    planning_currency_symbol: str = Field("R", description="Currency symbol for cost figures")
    planning_notification_recipients: str = Field(
        "", description="Comma-separated recipients snapshotted into sent alerts"
    )

    # === Logging ===
    log_level: str = Field("INFO", description="Root log level")
    log_file_path: str | None = Field(None, description="JSON log file (None = stdout only)")

    # === Metrics ===
    metrics_enabled: bool = Field(True, description="Record Prometheus metrics")

    @field_validator("planning_weights")
    @classmethod
    def _check_weights(cls, v: str) -> str:
        parts = [p.strip() for p in v.split(",") if p.strip()]
        if len(parts) != 6:
            raise ValueError(f"planning_weights needs 6 values, got {len(parts)}")
        for p in parts:
            float(p)
        return v

    @property
    def weights(self) -> list[float]:
        """Parsed weight vector."""
        return [float(p) for p in self.planning_weights.split(",") if p.strip()]

    @property
    def notification_recipients(self) -> list[str]:
        """Parsed recipient list."""
        return [r.strip() for r in self.planning_notification_recipients.split(",") if r.strip()]

    def default_planning_settings(self) -> PlanningSettings:
        """Build the initial PlanningSettings record from configuration."""
        return PlanningSettings(
            default_lead_time_days=self.planning_default_lead_time_days,
            safety_stock_days=self.planning_safety_stock_days,
            review_period_days=self.planning_review_period_days,
            low_stock_days_cover_threshold=self.planning_low_stock_days_cover_threshold,
            expiry_warning_days=self.planning_expiry_warning_days,
            notification_cooldown_hours=self.planning_notification_cooldown_hours,
            forecast_method=self.planning_forecast_method,
            weights=self.weights,
            low_stock_rule=self.planning_low_stock_rule,
            currency_symbol=self.planning_currency_symbol,
            notification_recipients=self.notification_recipients,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Raises:
        RuntimeError: If environment variables fail validation.

    """
    try:
        return Settings()
    except ValidationError as e:
        bad_fields = [str(error["loc"][0]).upper() for error in e.errors() if error["loc"]]

        error_msg = (
            f"Configuration error: invalid environment variables: "
            f"{', '.join(bad_fields)}\n"
            f"Please fix them in .env file or the environment.\n"
            f"See .env.example for reference."
        )
        raise RuntimeError(error_msg) from e


__all__ = ["Settings", "get_settings"]

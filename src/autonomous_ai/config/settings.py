"""
Configuration models using Pydantic for type-safe validation.

This module defines all configuration models for the orchestrator:
- SystemConfig: Log level and format
- AnalyzerConfig: Timeframe, market type, precision shown to the decision function
- OrchestratorConfig: Debounce/latency timing, supersession, enrichment placeholders
- NotificationConfig: Toast durations and e-mail delivery settings
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


# ============================================================================
# Enums for Configuration
# ============================================================================

class LogLevel(str, Enum):
    """Logging level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ============================================================================
# System Configuration
# ============================================================================

class SystemConfig(BaseModel):
    """System-wide settings."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )

    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines instead of plain text"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )


# ============================================================================
# Analyzer Configuration
# ============================================================================

class AnalyzerConfig(BaseModel):
    """Selection the decision function is evaluated against."""

    selected_timeframe: str = Field(
        default="1m",
        description="Chart timeframe, e.g. 30s, 1m, 5m"
    )

    market_type: str = Field(
        default="spot",
        description="Market type, e.g. spot, futures, forex, binary_options"
    )

    precision: Any = Field(
        default=None,
        description="Analysis precision setting, passed through untouched"
    )

    @field_validator("selected_timeframe", "market_type")
    @classmethod
    def validate_not_blank(cls, v: str, info: ValidationInfo) -> str:
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return v.strip()


# ============================================================================
# Orchestrator Configuration
# ============================================================================

class OrchestratorConfig(BaseModel):
    """Decision cycle timing and enrichment placeholders."""

    debounce_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Quiet window after a qualifying update before the cycle proceeds"
    )

    processing_latency_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Simulated decision latency before the decision function runs"
    )

    supersede_pending: bool = Field(
        default=True,
        description="Cancel a scheduled, not yet processing cycle when a newer update qualifies"
    )

    isolate_enrichment_failures: bool = Field(
        default=True,
        description="Keep the decision and notification when risk evaluation fails"
    )

    placeholder_entry_price: float = Field(
        default=100.0,
        gt=0.0,
        description="Entry price sent with risk assessment requests"
    )

    stop_loss_pct: float = Field(
        default=2.0,
        gt=0.0,
        lt=100.0,
        description="Stop-loss offset from entry, percent"
    )

    take_profit_pct: float = Field(
        default=4.0,
        gt=0.0,
        description="Take-profit offset from entry, percent"
    )

    backtest_min_signals: int = Field(
        default=5,
        ge=0,
        description="Backtest runs when the fast analysis has more results than this"
    )

    backtest_confluences: int = Field(
        default=2,
        ge=0,
        description="Confluence count attached to every backtest input"
    )

    @property
    def total_delay_seconds(self) -> float:
        return self.debounce_seconds + self.processing_latency_seconds


# ============================================================================
# Notification Configuration
# ============================================================================

class EmailChannelConfig(BaseModel):
    """SendGrid e-mail delivery settings."""

    enabled: bool = Field(default=False, description="Deliver notifications by e-mail")
    mock_mode: bool = Field(default=True, description="Log e-mails instead of sending them")
    api_key_env: str = Field(
        default="SENDGRID_API_KEY",
        description="Environment variable holding the SendGrid API key"
    )
    from_email: str = Field(default="ai-decisions@trading.local")
    to_emails: List[str] = Field(default_factory=list)
    max_retries: int = Field(default=3, ge=1, le=10)

    @field_validator("to_emails", mode="before")
    @classmethod
    def split_emails(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [email.strip() for email in v.split(",") if email.strip()]
        return v


class NotificationConfig(BaseModel):
    """Notification rendering and delivery settings."""

    decision_duration_ms: int = Field(default=6000, gt=0)
    wait_duration_ms: int = Field(default=5000, gt=0)
    error_duration_ms: int = Field(default=4000, gt=0)
    email: EmailChannelConfig = Field(default_factory=EmailChannelConfig)


# ============================================================================
# Complete Application Configuration
# ============================================================================

class AppConfig(BaseModel):
    """Complete application configuration."""

    system: SystemConfig = Field(default_factory=SystemConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

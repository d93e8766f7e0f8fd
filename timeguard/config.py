"""
TimeGuard Configuration — pydantic-settings based.

Process-level settings read from environment variables or .env file.
Compliance-rule thresholds are NOT here: they live in the versioned
ComplianceConfig record managed by the configuration provider. The values
below only seed that record when nothing has been persisted yet.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Storage ──
    rules_path: str | None = Field(
        default=None,
        description="JSON file holding the persisted compliance rules. Unset keeps them in memory.",
    )
    entity_snapshot_path: str | None = Field(
        default=None,
        description="Optional JSON dump of mirrored users/projects/issues/time entries loaded at startup",
    )

    # ── Evaluation ──
    parallel_rules: bool = Field(
        default=True,
        description="Run the rule evaluators on a thread pool instead of sequentially",
    )
    max_rule_workers: int = Field(
        default=7, ge=1, description="Thread pool size when parallel_rules is enabled"
    )

    # ── Listing ──
    default_page_size: int = Field(default=50, ge=1, le=500)
    max_page_size: int = Field(default=500, ge=1)
    default_trend_days: int = Field(default=7, ge=1, le=365)

    # ── Cache ──
    overview_cache_ttl_seconds: int = Field(
        default=300, description="Time-to-live for cached overview aggregates"
    )

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    # ── Audit ──
    audit_log_path: str = Field(
        default="audit.jsonl", description="Path to JSON-lines audit log file"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "TIMEGUARD_",
        "case_sensitive": False,
    }


# Singleton instance — imported by other modules
settings = Settings()

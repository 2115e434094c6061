# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for LLM, step execution, cache, knowledge graph
and logging settings. Cross-field rules are checked at load time.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from specweaver.config.pipeline import STEP_ORDER

if TYPE_CHECKING:
    from specweaver.llm.retry import RetryPolicy


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class StepOverride(BaseModel):
    """Per-step execution overrides. Unset fields fall back to defaults."""

    timeout_s: float | None = None
    max_retries: int | None = None
    initial_delay_s: float | None = None
    max_delay_s: float | None = None
    backoff_multiplier: float | None = None
    jitter: bool | None = None


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM ===
    llm_provider: str = "anthropic"
    llm_model: str = "claude-sonnet-4-20250514"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 16000
    anthropic_api_key: str = ""

    # === Steps ===
    enabled_steps: str = ",".join(STEP_ORDER)
    step_timeout_s: float = 180.0
    step_max_retries: int = 2
    retry_initial_delay_s: float = 1.0
    retry_max_delay_s: float = 30.0
    retry_backoff_multiplier: float = 2.0
    retry_jitter: bool = True
    step_overrides: dict[str, StepOverride] = {}
    continue_on_failure: bool = False

    # === Shared context cache ===
    cache_enabled: bool = True
    cache_ttl_s: int = 3600
    cache_seed_steps: str = "pm_spec,arch_design"

    # === Knowledge graph ===
    kg_min_confidence: float = 0.7
    kg_max_depth: int = 3
    kg_batch_size: int = 20
    kg_min_candidate_length: int = 3
    kg_identifier_fields: str = "id,name,title"
    kg_ignored_fields: str = "timestamp,created_at,updated_at,schema_version"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules V-01 to V-06."""
        errors: list[str] = []

        # V-01
        if self.retry_max_delay_s < self.retry_initial_delay_s:
            errors.append("RETRY_MAX_DELAY_S must be >= RETRY_INITIAL_DELAY_S")

        # V-02
        if self.retry_backoff_multiplier < 1:
            errors.append("RETRY_BACKOFF_MULTIPLIER must be >= 1")

        # V-03
        if not 0.0 <= self.kg_min_confidence <= 1.0:
            errors.append("KG_MIN_CONFIDENCE must be within [0, 1]")

        # V-04
        unknown = [s for s in self.enabled_steps_list if s not in STEP_ORDER]
        unknown += [s for s in self.step_overrides if s not in STEP_ORDER]
        if unknown:
            errors.append(f"Unknown step ids: {', '.join(sorted(set(unknown)))}")

        # V-05
        if self.kg_batch_size < 1:
            errors.append("KG_BATCH_SIZE must be >= 1")
        if self.kg_max_depth < 1:
            errors.append("KG_MAX_DEPTH must be >= 1")

        # V-06
        if self.step_max_retries < 0:
            errors.append("STEP_MAX_RETRIES must be >= 0")
        if self.step_timeout_s <= 0:
            errors.append("STEP_TIMEOUT_S must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def enabled_steps_list(self) -> list[str]:
        """Parse comma-separated enabled steps."""
        return [s.strip() for s in self.enabled_steps.split(",") if s.strip()]

    @property
    def cache_seed_steps_list(self) -> list[str]:
        """Parse comma-separated cache seed steps."""
        return [s.strip() for s in self.cache_seed_steps.split(",") if s.strip()]

    @property
    def kg_identifier_fields_list(self) -> list[str]:
        return [f.strip() for f in self.kg_identifier_fields.split(",") if f.strip()]

    @property
    def kg_ignored_fields_list(self) -> list[str]:
        return [f.strip() for f in self.kg_ignored_fields.split(",") if f.strip()]

    def retry_policy_for(self, step_id: str) -> RetryPolicy:
        """Resolve a step's retry policy: per-step override, else pipeline default."""
        from specweaver.llm.retry import RetryPolicy

        override = self.step_overrides.get(step_id) or StepOverride()
        return RetryPolicy(
            max_retries=_pick(override.max_retries, self.step_max_retries),
            initial_delay_s=_pick(override.initial_delay_s, self.retry_initial_delay_s),
            max_delay_s=_pick(override.max_delay_s, self.retry_max_delay_s),
            backoff_multiplier=_pick(
                override.backoff_multiplier, self.retry_backoff_multiplier
            ),
            jitter=_pick(override.jitter, self.retry_jitter),
        )

    def timeout_for(self, step_id: str) -> float:
        """Resolve a step's wall-clock timeout in seconds."""
        override = self.step_overrides.get(step_id)
        if override is not None and override.timeout_s is not None:
            return override.timeout_s
        return self.step_timeout_s


def _pick(value, default):
    return default if value is None else value


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]

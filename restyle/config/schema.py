from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

OPERATION_TYPES = ("network", "structural-mutation", "validation", "generative", "execution")


class BrowserSettings(BaseModel):
    base_url: str = "about:blank"
    browser_matrix: list[str] = Field(default_factory=lambda: ["chrome"])
    default_timeout_seconds: int = 10
    headless: bool = True

    @field_validator("browser_matrix")
    @classmethod
    def validate_browsers(cls, value: list[str]) -> list[str]:
        allowed = {"chrome", "firefox"}
        normalized = [item.lower() for item in value]
        invalid = [item for item in normalized if item not in allowed]
        if invalid:
            raise ValueError(f"Unsupported browsers: {', '.join(invalid)}")
        return normalized


class InterpreterSettings(BaseModel):
    provider: str = "openai"
    model: str | None = None
    timeout_seconds: float = 30.0
    max_tokens: int = 512

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in {"openai", "anthropic", "gemini"}:
            raise ValueError(f"Unsupported interpreter provider: {value}")
        return normalized


class SelectionSettings(BaseModel):
    indicator_attribute: str = "data-restyle-selected"
    max_class_token_length: int = 32
    max_class_tokens: int = 2


class NormalizationSettings(BaseModel):
    default_length_unit: str = "px"


class HistorySettings(BaseModel):
    limit: int = Field(default=50, ge=1)
    destructive_undo: bool = False


class RetryPolicy(BaseModel):
    max_retries: int = Field(ge=1)
    base_delay: float = Field(ge=0)
    max_delay: float = Field(ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)
    jitter_enabled: bool = False
    timeout: float = Field(default=5.0, gt=0)


def _default_policies() -> dict[str, RetryPolicy]:
    return {
        "network": RetryPolicy(
            max_retries=5, base_delay=1.0, max_delay=30.0, backoff_multiplier=2.0, jitter_enabled=True, timeout=10.0
        ),
        "structural-mutation": RetryPolicy(
            max_retries=3, base_delay=0.5, max_delay=5.0, backoff_multiplier=1.5, timeout=5.0
        ),
        "validation": RetryPolicy(max_retries=2, base_delay=0.1, max_delay=1.0, backoff_multiplier=2.0, timeout=2.0),
        "generative": RetryPolicy(
            max_retries=4, base_delay=2.0, max_delay=60.0, backoff_multiplier=2.5, jitter_enabled=True, timeout=45.0
        ),
        "execution": RetryPolicy(max_retries=2, base_delay=0.2, max_delay=2.0, backoff_multiplier=2.0, timeout=8.0),
    }


class RetrySettings(BaseModel):
    policies: dict[str, RetryPolicy] = Field(default_factory=_default_policies)
    max_adaptive_retries: int = 8
    monitoring_interval_seconds: float = 60.0
    history_window_seconds: float = 300.0

    @field_validator("policies")
    @classmethod
    def validate_policies(cls, value: dict[str, RetryPolicy]) -> dict[str, RetryPolicy]:
        unknown = [name for name in value if name not in OPERATION_TYPES]
        if unknown:
            raise ValueError(f"Unknown operation types: {', '.join(unknown)}")
        merged = _default_policies()
        merged.update(value)
        return merged


class RecoverySettings(BaseModel):
    max_recovery_attempts: int = 3
    error_log_size: int = 100
    same_error_threshold: int = 3
    burst_threshold: int = 5
    burst_window_seconds: float = 120.0


class EngineConfig(BaseModel):
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    interpreter: InterpreterSettings = Field(default_factory=InterpreterSettings)
    selection: SelectionSettings = Field(default_factory=SelectionSettings)
    normalization: NormalizationSettings = Field(default_factory=NormalizationSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    recovery: RecoverySettings = Field(default_factory=RecoverySettings)
    artifacts_root: str = "artifacts"

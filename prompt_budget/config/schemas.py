"""
Prompt Budget - Configuration Schemas

Typed runtime configuration validated with Pydantic at startup.
The per-call optimization policy lives in prompt_optimization.policy and is
embedded here as the server-wide default.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..prompt_optimization.policy import OptimizationPolicy
from ..token_optimization.profiles import DEFAULT_MODEL


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ObservabilityConfig(BaseModel):
    """Observability and monitoring configuration."""

    enable_metrics: bool = Field(default=True, description="Enable in-memory metrics collection")
    enable_tracing: bool = Field(default=False, description="Record span durations for traced operations")
    json_logs: bool = Field(default=False, description="Emit log records as JSON lines")


class PromptBudgetConfig(BaseModel):
    """Root configuration for the prompt budget server."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    default_model: str = Field(default=DEFAULT_MODEL, description="Model used when a request names none")
    enable_logging: bool = Field(default=True, description="Log optimization summaries and warnings")

    token_management: OptimizationPolicy = Field(
        default_factory=OptimizationPolicy, description="Default optimization policy"
    )
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @field_validator("default_model")
    @classmethod
    def validate_default_model(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default_model must not be empty")
        return v.strip()

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

"""
Prompt Budget - Configuration Loader

Builds PromptBudgetConfig from an optional .env file and the environment.
Policy fields come from the TOKEN_*, RAG_*, HISTORY_* and PRIORITY_* variables;
the validated result is cached until reload_config().
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..prompt_optimization.policy import OptimizationPolicy
from .schemas import PromptBudgetConfig

logger = logging.getLogger(__name__)

_config_instance: PromptBudgetConfig | None = None

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

# Environment variable -> (policy path, parser)
_POLICY_ENV_VARS: dict[str, tuple[tuple[str, ...], str]] = {
    "TOKEN_MANAGEMENT_ENABLED": (("enabled",), "bool"),
    "RESERVED_COMPLETION_TOKENS": (("reserved_completion_tokens",), "optional_int"),
    "SAFETY_BUFFER_PERCENTAGE": (("safety_buffer_percentage",), "float"),
    "WARNING_THRESHOLD_PERCENTAGE": (("warning_threshold_percentage",), "float"),
    "CONTEXT_WINDOW_OVERRIDE": (("context_window",), "optional_int"),
    "PRIORITY_SYSTEM": (("priorities", "system"), "int"),
    "PRIORITY_USER": (("priorities", "user"), "int"),
    "PRIORITY_RAG": (("priorities", "rag"), "int"),
    "PRIORITY_HISTORY": (("priorities", "history"), "int"),
    "RAG_MAX_TOKENS": (("rag", "max_tokens"), "int"),
    "RAG_MIN_RELEVANCE_SCORE": (("rag", "min_relevance_score"), "float"),
    "RAG_MIN_RESULTS": (("rag", "min_results"), "int"),
    "RAG_MAX_RESULTS": (("rag", "max_results"), "int"),
    "RAG_TRIM_LARGE_RESULTS": (("rag", "trim_large_results"), "bool"),
    "RAG_MAX_TOKENS_PER_RESULT": (("rag", "max_tokens_per_result"), "int"),
    "HISTORY_MAX_MESSAGES": (("history", "max_messages"), "int"),
    "HISTORY_MAX_TOKENS": (("history", "max_tokens"), "int"),
    "HISTORY_MIN_MESSAGES": (("history", "min_messages"), "int"),
}


def _parse_env(name: str, raw: str, kind: str) -> Any:
    """Convert an environment variable string, raising ConfigurationError on bad values."""
    value = raw.strip()
    try:
        if kind == "bool":
            lowered = value.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(f"expected a boolean, got {raw!r}")
        if kind == "optional_int":
            # "auto" (or empty) defers to the model profile
            if value.lower() in {"", "auto", "none"}:
                return None
            return int(value)
        if kind == "int":
            return int(value)
        if kind == "float":
            return float(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {e}",
            details={"variable": name, "value": raw},
        ) from e
    raise ConfigurationError(f"Unknown parser {kind!r} for {name}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return bool(_parse_env(name, raw, "bool"))


def _policy_options_from_env() -> dict[str, Any]:
    """Collect policy overrides for the environment variables that are set."""
    options: dict[str, Any] = {}
    for name, (path, kind) in _POLICY_ENV_VARS.items():
        raw = os.getenv(name)
        if raw is None:
            continue
        section = options
        for key in path[:-1]:
            section = section.setdefault(key, {})
        section[path[-1]] = _parse_env(name, raw, kind)
    return options


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> PromptBudgetConfig:
    """
    Read, validate and cache the server configuration.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated PromptBudgetConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    # Load .env file if exists
    if env_file:
        env_path = Path(env_file)
    else:
        env_path = Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    try:
        policy = OptimizationPolicy.from_options(_policy_options_from_env())
        config_dict = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "default_model": os.getenv("DEFAULT_MODEL", "gpt-4o"),
            "enable_logging": _env_bool("ENABLE_OPTIMIZATION_LOGGING", True),
            "token_management": policy,
            "observability": {
                "enable_metrics": _env_bool("ENABLE_METRICS", True),
                "enable_tracing": _env_bool("ENABLE_TRACING", False),
                "json_logs": _env_bool("JSON_LOGS", False),
            },
        }
        _config_instance = PromptBudgetConfig(**config_dict)  # type: ignore[arg-type]
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment})",
            extra={"environment": _config_instance.environment, "default_model": _config_instance.default_model},
        )
        return _config_instance
    except ConfigurationError as e:
        logger.error(f"Configuration validation failed: {e.message}", extra={"details": e.details})
        raise
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(include_url=False)},
            exc_info=True,
        )
        raise ConfigurationError(
            "Invalid prompt budget configuration; see validation_errors for the offending settings.",
            details={"validation_errors": e.errors(include_url=False, include_context=False)},
        ) from e


def get_config() -> PromptBudgetConfig:
    """
    Cached configuration, loaded on first access.

    Loads the configuration on first access.

    Returns:
        Current PromptBudgetConfig instance
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> PromptBudgetConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded PromptBudgetConfig instance
    """
    return load_config(env_file=env_file, reload=True)

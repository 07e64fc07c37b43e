"""
Unit Tests for Configuration Loading

Tests environment parsing, .env files, validation errors and the
configuration singleton.
"""

import pytest

from prompt_budget.config import PromptBudgetConfig, get_config, load_config, reload_config
from prompt_budget.config.loader import _POLICY_ENV_VARS
from prompt_budget.errors import ConfigurationError
from prompt_budget.prompt_optimization import OptimizationPolicy


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove policy variables and point .env lookups at an empty directory."""
    for name in [*_POLICY_ENV_VARS, "DEFAULT_MODEL", "ENABLE_OPTIMIZATION_LOGGING", "ENABLE_METRICS", "JSON_LOGS"]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, clean_env):
        """Test configuration with no overrides."""
        config = load_config(reload=True)

        assert config.environment == "test"
        assert config.log_level == "DEBUG"
        assert config.default_model == "gpt-4o"
        assert config.enable_logging is True
        assert config.token_management == OptimizationPolicy()
        assert config.observability.enable_metrics is True
        assert config.observability.json_logs is False

    def test_policy_overrides_from_env(self, clean_env):
        """Test policy variables map onto nested policy fields."""
        clean_env.setenv("CONTEXT_WINDOW_OVERRIDE", "1000")
        clean_env.setenv("RESERVED_COMPLETION_TOKENS", "auto")
        clean_env.setenv("TOKEN_MANAGEMENT_ENABLED", "false")
        clean_env.setenv("RAG_MIN_RESULTS", "1")
        clean_env.setenv("RAG_MIN_RELEVANCE_SCORE", "0.5")
        clean_env.setenv("HISTORY_MAX_MESSAGES", "8")
        clean_env.setenv("PRIORITY_HISTORY", "20")

        policy = load_config(reload=True).token_management

        assert policy.context_window == 1000
        assert policy.reserved_completion_tokens is None
        assert policy.enabled is False
        assert policy.rag.min_results == 1
        assert policy.rag.min_relevance_score == 0.5
        assert policy.history.max_messages == 8
        assert policy.priorities.history == 20

    def test_env_file(self, clean_env, tmp_path):
        """Test values from a .env file in the working directory."""
        # Registered so monkeypatch restores them after load_dotenv overrides
        clean_env.setenv("RAG_MAX_RESULTS", "10")
        clean_env.setenv("DEFAULT_MODEL", "gpt-4o")
        (tmp_path / ".env").write_text("RAG_MAX_RESULTS=4\nDEFAULT_MODEL=claude-3-haiku\n")

        config = load_config(reload=True)

        assert config.token_management.rag.max_results == 4
        assert config.default_model == "claude-3-haiku"

    def test_explicit_env_file(self, clean_env, tmp_path):
        """Test loading a named .env file."""
        clean_env.setenv("JSON_LOGS", "false")
        env_file = tmp_path / "custom.env"
        env_file.write_text("JSON_LOGS=true\n")

        config = load_config(env_file=str(env_file), reload=True)

        assert config.observability.json_logs is True

    @pytest.mark.parametrize(
        "name,value",
        [
            ("RAG_MAX_TOKENS", "lots"),
            ("SAFETY_BUFFER_PERCENTAGE", "five"),
            ("TOKEN_MANAGEMENT_ENABLED", "maybe"),
            ("CONTEXT_WINDOW_OVERRIDE", "big"),
        ],
    )
    def test_unparseable_value(self, clean_env, name, value):
        """Test values that cannot be parsed name the variable."""
        clean_env.setenv(name, value)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(reload=True)

        assert exc_info.value.details["variable"] == name
        assert exc_info.value.details["value"] == value

    def test_inconsistent_policy(self, clean_env):
        """Test cross-field policy checks surface as configuration errors."""
        clean_env.setenv("RAG_MIN_RESULTS", "20")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(reload=True)

        assert exc_info.value.details["validation_errors"]

    def test_invalid_environment(self, clean_env):
        """Test unknown environment names are rejected."""
        clean_env.setenv("ENVIRONMENT", "moon")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(reload=True)

        assert exc_info.value.details["validation_errors"]

    def test_blank_default_model(self, clean_env):
        """Test an empty default model is rejected."""
        clean_env.setenv("DEFAULT_MODEL", "   ")

        with pytest.raises(ConfigurationError):
            load_config(reload=True)


class TestConfigSingleton:
    """Tests for get_config and reload_config."""

    def test_get_config_cached(self, clean_env):
        """Test get_config returns the same instance until reloaded."""
        first = get_config()
        assert get_config() is first

        clean_env.setenv("RAG_MAX_RESULTS", "5")
        reloaded = reload_config()

        assert reloaded is not first
        assert reloaded.token_management.rag.max_results == 5
        assert get_config() is reloaded


class TestSchemas:
    """Tests for PromptBudgetConfig validation."""

    def test_model_defaults(self):
        """Test defaults without environment input."""
        config = PromptBudgetConfig()

        assert config.environment == "development"
        assert config.default_model == "gpt-4o"
        assert config.observability.enable_tracing is False

    def test_default_model_stripped(self):
        """Test whitespace around the default model is removed."""
        assert PromptBudgetConfig(default_model="  gpt-4  ").default_model == "gpt-4"

    def test_nested_policy_from_mapping(self):
        """Test the policy section accepts a plain mapping."""
        config = PromptBudgetConfig(token_management={"rag": {"min_results": 1}})
        assert config.token_management.rag.min_results == 1

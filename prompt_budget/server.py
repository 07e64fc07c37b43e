"""
Prompt Budget - Server

FastMCP stdio server (Model Context Protocol).
Exposes the prompt optimizer, token counting and optimization statistics as
MCP tools. Configuration comes from environment variables via config.loader.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from . import __version__
from .config import get_config, load_config
from .errors import ConfigurationError, ErrorCode, extract_error_code, make_error_response
from .observability import (
    get_observability,
    get_optimization_metrics,
    initialize_observability,
    setup_logging,
)
from .prompt_optimization import Message, PromptComponents, PromptOptimizer, RankedDocument
from .token_optimization import get_cost_estimator, get_token_counter, resolve_profile
from .validation import validate_input
from .validation.tool_schemas import (
    CheckStatusInput,
    CountTokensInput,
    EstimateTokensInput,
    GetModelProfileInput,
    GetOptimizationSettingsInput,
    GetOptimizationStatsInput,
    OptimizePromptInput,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def server_lifespan(server: Any) -> Any:
    """Wrap the server's lifetime in initialize_server/cleanup_server."""
    await initialize_server()
    yield
    await cleanup_server()


# Tools register on this instance at import time
mcp = FastMCP("Prompt Budget MCP - Token-Budgeted Prompt Assembly", lifespan=server_lifespan)

# Global state
_initialized = False
_optimizer: PromptOptimizer | None = None


def _get_optimizer() -> PromptOptimizer:
    """Return the server's optimizer, building it from config on first use."""
    global _optimizer

    if _optimizer is None:
        config = get_config()
        _optimizer = PromptOptimizer(counter=get_token_counter(), enable_logging=config.enable_logging)
    return _optimizer


@mcp.tool()
@validate_input(OptimizePromptInput)
async def optimize_prompt(
    system_prompt: str,
    user_message: str,
    rag_results: list[dict[str, Any]] | None = None,
    history: list[dict[str, Any]] | None = None,
    model: str | None = None,
    policy: dict[str, Any] | None = None,
    include_cost: bool = False,
    agent_type: str = "default",
) -> dict[str, Any]:
    """
    Fit a prompt into the model's context window.

    The system prompt and user message are returned verbatim. Retrieved
    documents are filtered by relevance, ranked, truncated and dropped, and
    history is pruned oldest-first, until the prompt fits with room left for
    the reply.

    Args:
        system_prompt: System instruction
        user_message: User message
        rag_results: Documents with content, relevance_score, source, metadata
        history: Prior turns with role and content, oldest first
        model: Target model (configured default if omitted)
        policy: Nested overrides of the configured optimization policy
        include_cost: Include a cost estimate of the optimized prompt
        agent_type: Caller label for per-agent statistics

    Returns:
        Optimized prompt, token estimates, warnings and strategy description
    """
    obs = get_observability()
    obs.increment("tools.optimize_prompt")
    obs.generate_trace_id()
    config = get_config()

    try:
        effective_policy = (
            config.token_management.with_overrides(policy) if policy else config.token_management
        )
    except ConfigurationError as e:
        obs.increment("optimizer.invalid_policy")
        return make_error_response(ErrorCode.CONFIGURATION_ERROR, e.message, e.details)

    try:
        components = PromptComponents(
            system_prompt=system_prompt,
            user_message=user_message,
            rag_results=[RankedDocument(**document) for document in rag_results or []],
            history=[Message(**message) for message in history or []],
        )

        with obs.trace("optimizer.optimize", tags={"agent_type": agent_type}):
            result = _get_optimizer().optimize(components, effective_policy, model or config.default_model)

        cost = get_cost_estimator().estimate_prompt_cost(result)
        get_optimization_metrics().record(result, agent_type=agent_type, cost=cost)

        obs.histogram("optimizer.tokens_saved", result.tokens_saved)
        obs.histogram("optimizer.processing_time_ms", result.processing_time_ms)
        obs.gauge("optimizer.utilization_percentage", result.optimized_estimate.utilization_percentage)
        if result.was_optimized:
            obs.increment("optimizer.optimized")
        for warning in result.diagnostics:
            obs.increment("optimizer.warnings", tags={"code": warning.code.value})

        response: dict[str, Any] = {"success": True, **result.to_dict()}
        if include_cost:
            response["cost"] = cost
        return response

    except Exception as e:
        logger.error(f"Error in optimize_prompt: {e}", exc_info=True)
        return make_error_response(extract_error_code(e), str(e), {"tool": "optimize_prompt"})


@mcp.tool()
@validate_input(CountTokensInput)
async def count_tokens(
    content: str,
    model: str | None = None,
    include_breakdown: bool = False,
) -> dict[str, Any]:
    """
    Count tokens in content with the model's tokenizer.

    Args:
        content: Content to count tokens for
        model: Model name (e.g., "gpt-4o", "claude-3-opus")
        include_breakdown: Include encoding and character breakdown

    Returns:
        Token count and optional metadata
    """
    obs = get_observability()
    obs.increment("tools.count_tokens")

    model = model or get_config().default_model
    counter = get_token_counter()

    result: dict[str, Any] = {
        "success": True,
        "token_count": counter.count_tokens(content, model),
        "model": model,
        "known_model": counter.is_known_model(model),
        "content_length": len(content),
    }
    if include_breakdown:
        result["breakdown"] = counter.get_token_breakdown(content, model)
    return result


@mcp.tool()
@validate_input(EstimateTokensInput)
async def estimate_tokens(
    system_prompt: str = "",
    user_message: str = "",
    rag_context: list[str] | None = None,
    conversation_history: list[str] | None = None,
    model: str | None = None,
) -> dict[str, Any]:
    """
    Estimate tokens for each prompt component without optimizing.

    Reply reservation and window come from the configured policy.

    Args:
        system_prompt: System instruction text
        user_message: User message text
        rag_context: Retrieved document texts
        conversation_history: Prior turn texts, oldest first
        model: Model name (configured default if omitted)

    Returns:
        Per-component token counts and window utilization
    """
    obs = get_observability()
    obs.increment("tools.estimate_tokens")

    config = get_config()
    policy = config.token_management
    model = model or config.default_model
    counter = get_token_counter()

    estimate = counter.estimate_tokens(
        system_prompt,
        user_message,
        rag_context=rag_context,
        conversation_history=conversation_history,
        model=model,
        reserved_completion_tokens=policy.reserved_completion_tokens,
        context_window=policy.context_window,
    )
    return {
        "success": True,
        "model": model,
        "known_model": counter.is_known_model(model),
        **estimate.to_dict(),
    }


@mcp.tool()
@validate_input(GetModelProfileInput)
async def get_model_profile(model: str) -> dict[str, Any]:
    """
    Look up the context window, completion size and tokenizer for a model.

    Unknown names resolve to the default profile with known_model False.

    Args:
        model: Model name

    Returns:
        Model profile and pricing information
    """
    obs = get_observability()
    obs.increment("tools.get_model_profile")

    profile, known = resolve_profile(model)
    return {
        "success": True,
        "requested_model": model,
        "known_model": known,
        "profile": profile.to_dict(),
        "pricing": get_cost_estimator().get_pricing_info(profile.model_id),
    }


@mcp.tool()
@validate_input(GetOptimizationSettingsInput)
async def get_optimization_settings() -> dict[str, Any]:
    """
    Get current prompt optimization settings.

    Returns:
        Default model and the configured optimization policy
    """
    obs = get_observability()
    obs.increment("tools.get_optimization_settings")

    config = get_config()
    return {
        "success": True,
        "default_model": config.default_model,
        "enable_logging": config.enable_logging,
        "policy": config.token_management.model_dump(),
    }


@mcp.tool()
@validate_input(GetOptimizationStatsInput)
async def get_optimization_stats(agent_type: str | None = None) -> dict[str, Any]:
    """
    Get prompt optimization statistics.

    Args:
        agent_type: Restrict per-agent stats to one agent

    Returns:
        Aggregated optimization metrics and a text summary
    """
    obs = get_observability()
    obs.increment("tools.get_optimization_stats")

    metrics = get_optimization_metrics()
    stats = metrics.snapshot()
    if agent_type is not None:
        stats["agent_stats"] = {
            name: value for name, value in stats["agent_stats"].items() if name == agent_type
        }

    return {
        "success": True,
        **stats,
        "summary": metrics.get_summary(),
    }


@mcp.tool()
@validate_input(CheckStatusInput)
async def check_status(include_details: bool = False) -> dict[str, Any]:
    """
    Report service health, configuration highlights and encoding cache state.

    Args:
        include_details: Include encoding cache and observability metrics

    Returns:
        System status information
    """
    obs = get_observability()
    obs.increment("tools.check_status")

    config = get_config()
    counter = get_token_counter()

    status: dict[str, Any] = {
        "status": "healthy",
        "service": "prompt-budget-mcp",
        "version": __version__,
        "environment": config.environment,
        "token_management_enabled": config.token_management.enabled,
        "default_model": config.default_model,
        "encodings_cached": len(counter.cache),
    }

    if include_details:
        status["encoding_cache"] = counter.cache.keys()
        status["observability"] = {
            "metrics_enabled": obs.enable_metrics,
            "tracing_enabled": obs.enable_tracing,
            "metrics": obs.get_metrics(),
        }

    return status


async def initialize_server() -> None:
    """Load configuration, configure logging and build the optimizer (idempotent)."""
    global _initialized, _optimizer

    if _initialized:
        return

    try:
        # Load configuration
        config = load_config()
        setup_logging(config.log_level, json_logs=config.observability.json_logs)
        logger.info(f"Configuration loaded: environment={config.environment}")

        # Initialize observability
        obs = initialize_observability(
            enable_metrics=config.observability.enable_metrics,
            enable_tracing=config.observability.enable_tracing,
        )

        _optimizer = PromptOptimizer(counter=get_token_counter(), enable_logging=config.enable_logging)

        # Record startup
        obs.increment("server.startup")
        obs.event(
            "server_started",
            {
                "environment": config.environment,
                "default_model": config.default_model,
                "token_management_enabled": config.token_management.enabled,
            },
        )

        _initialized = True
        logger.info("Prompt Budget MCP server initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize server: {e}", exc_info=True)
        raise


async def cleanup_server() -> None:
    """Drop the optimizer and log final optimization statistics."""
    global _initialized, _optimizer

    if not _initialized:
        return

    logger.info("Cleaning up Prompt Budget MCP server...")

    obs = get_observability()
    _optimizer = None

    # Record shutdown
    obs.increment("server.shutdown")
    obs.event("server_stopped", {"optimization_stats": get_optimization_metrics().snapshot()})

    _initialized = False
    logger.info("Prompt Budget MCP server cleanup complete")


def main() -> None:
    """CLI entry point for prompt-budget-mcp command."""
    mcp.run()


if __name__ == "__main__":
    main()

"""
ClinicalTrials.gov Search MCP Server

A standalone Model Context Protocol server for clinical trial discovery.

Features:
- Patient-to-trial eligibility matching with ranked results
- Trend analysis across complete result sets
- Study search, lookup and field value discovery

Architecture:
- instructions.py: SERVER_INSTRUCTIONS for AI agents
- tool_registry.py: Centralized tool registration
- tools/: Individual tool implementations by category
- container: DI container (dependency-injector) for service lifecycle
"""

from __future__ import annotations

import logging
import os
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from ctgov_search.container import DEFAULT_CONFIG, ApplicationContainer
from ctgov_search.core.exceptions import ConfigurationError

from .instructions import SERVER_INSTRUCTIONS
from .tool_registry import register_all_mcp_tools

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from ctgov_search.application.matching.matcher import TrialMatcher
    from ctgov_search.application.trends.aggregator import TrendAnalyzer
    from ctgov_search.infrastructure.sources.clinical_trials import ClinicalTrialsGovSource

logger = logging.getLogger(__name__)

# ── Module-level DI container ──────────────────────────────────────────────
_container: ApplicationContainer | None = None


def get_container() -> ApplicationContainer:
    """Get the application DI container.

    Raises:
        RuntimeError: If ``create_server()`` has not been called yet.
    """
    if _container is None:
        msg = "Container not initialized. Call create_server() first."
        raise RuntimeError(msg)
    return _container


def _make_lifespan(
    container: ApplicationContainer,
) -> Callable[[FastMCP[Any]], AbstractAsyncContextManager[ApplicationContainer]]:
    """Create a FastMCP lifespan handler bound to *container*."""

    @asynccontextmanager
    async def _lifespan(server: FastMCP[Any]) -> AsyncIterator[ApplicationContainer]:
        """Application lifecycle: startup → yield → shutdown."""
        logger.info("Lifecycle: startup, resources ready")
        try:
            yield container
        finally:
            # Shutdown: close the record source's httpx client
            source = cast("ClinicalTrialsGovSource", container.record_source())
            await source.close()
            logger.info("Lifecycle: shutdown, HTTP client closed")

    return _lifespan


def create_server(
    base_url: str = DEFAULT_CONFIG["base_url"],
    timeout: float = DEFAULT_CONFIG["timeout"],
    page_delay: float = DEFAULT_CONFIG["page_delay"],
    max_studies_for_analysis: int = DEFAULT_CONFIG["max_studies_for_analysis"],
    match_page_size: int = DEFAULT_CONFIG["match_page_size"],
    analysis_time_limit: float = DEFAULT_CONFIG["analysis_time_limit"],
    name: str = "ctgov-search",
    disable_security: bool = False,
    json_response: bool = False,
    stateless_http: bool = False,
) -> FastMCP:
    """
    Create and configure the ClinicalTrials.gov Search MCP server.

    Args:
        base_url: ClinicalTrials.gov API v2 root.
        timeout: Per-request timeout in seconds.
        page_delay: Pause between page requests in seconds.
        max_studies_for_analysis: Study limit for trend analysis.
        match_page_size: Studies evaluated per eligibility match.
        analysis_time_limit: Seconds a trend analysis may spend paging (0 = no limit).
        name: Server name.
        disable_security: Disable DNS rebinding protection (needed for remote access).
        json_response: Use JSON responses instead of SSE.
        stateless_http: Use stateless HTTP mode (no session management).

    Returns:
        Configured FastMCP server instance.
    """
    global _container
    logger.info("Initializing ClinicalTrials.gov Search MCP Server...")

    # ── DI container ────────────────────────────────────────────────────
    _container = ApplicationContainer()
    _container.config.from_dict(
        {
            "base_url": base_url,
            "timeout": timeout,
            "page_delay": page_delay,
            "max_studies_for_analysis": max_studies_for_analysis,
            "match_page_size": match_page_size,
            "analysis_time_limit": analysis_time_limit,
        }
    )

    source = cast("ClinicalTrialsGovSource", _container.record_source())
    matcher = cast("TrialMatcher", _container.matcher())
    analyzer = cast("TrendAnalyzer", _container.trend_analyzer())
    logger.info("Record source: %s (timeout %.1fs)", base_url, timeout)

    # ── Transport security ──────────────────────────────────────────────
    if disable_security:
        transport_security = TransportSecuritySettings(enable_dns_rebinding_protection=False)
        logger.info("DNS rebinding protection disabled for remote access")
    else:
        transport_security = None

    # ── Create MCP server with lifespan ─────────────────────────────────
    mcp = FastMCP(
        name,
        instructions=SERVER_INSTRUCTIONS,
        transport_security=transport_security,
        json_response=json_response,
        stateless_http=stateless_http,
        lifespan=_make_lifespan(_container),
    )

    # ── Register all tools via centralized registry ─────────────────────
    stats = register_all_mcp_tools(
        mcp=mcp,
        source=source,
        matcher=matcher,
        analyzer=analyzer,
        analysis_time_limit=_container.config.analysis_time_limit(),
    )
    logger.info("Tool registration complete: %s", stats)

    logger.info("ClinicalTrials.gov Search MCP Server initialized successfully")
    return mcp


def _env_number(name: str, default: float, cast_to: type = float) -> Any:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast_to(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


def settings_from_env() -> dict[str, Any]:
    """Read server settings from CTGOV_* environment variables."""
    return {
        "base_url": os.environ.get("CTGOV_BASE_URL", "").strip() or DEFAULT_CONFIG["base_url"],
        "timeout": _env_number("CTGOV_TIMEOUT", DEFAULT_CONFIG["timeout"]),
        "page_delay": _env_number("CTGOV_PAGE_DELAY", DEFAULT_CONFIG["page_delay"]),
        "max_studies_for_analysis": _env_number(
            "CTGOV_MAX_STUDIES_FOR_ANALYSIS", DEFAULT_CONFIG["max_studies_for_analysis"], int
        ),
        "analysis_time_limit": _env_number("CTGOV_ANALYSIS_TIME_LIMIT", DEFAULT_CONFIG["analysis_time_limit"]),
    }


def main():
    """Run the MCP server."""

    # Configure logging (stderr, safe for stdio transport)
    level_name = os.environ.get("CTGOV_LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    server = create_server(**settings_from_env())

    # Run stdio MCP server (blocks)
    server.run()


if __name__ == "__main__":
    main()

"""
Tool Registry - Central registration and lookup of MCP tools.

Usage:
    from .tool_registry import register_all_mcp_tools, list_registered_tools

    # Register all tools
    register_all_mcp_tools(mcp, source, matcher, analyzer)

    # List registered tools
    tools = list_registered_tools()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ctgov_search.application.matching.matcher import TrialMatcher
    from ctgov_search.application.trends.aggregator import TrendAnalyzer
    from ctgov_search.infrastructure.sources.clinical_trials import ClinicalTrialsGovSource

logger = logging.getLogger(__name__)


# ============================================================================
# Tool Categories
# ============================================================================

TOOL_CATEGORIES = {
    "matching": {
        "name": "Patient Matching",
        "description": "Eligibility screening and ranking",
        "tools": ["find_eligible_studies"],
    },
    "trends": {
        "name": "Trend Analysis",
        "description": "Counts over full result sets",
        "tools": ["analyze_trends"],
    },
    "studies": {
        "name": "Study Lookup",
        "description": "Search, fetch and field discovery",
        "tools": ["search_studies", "get_study", "get_field_values"],
    },
    "results": {
        "name": "Study Results",
        "description": "Posted outcomes, adverse events, participant flow and baseline",
        "tools": ["get_study_results"],
    },
}


# ============================================================================
# Registration Functions
# ============================================================================


def register_all_mcp_tools(
    mcp: FastMCP,
    source: ClinicalTrialsGovSource,
    matcher: TrialMatcher,
    analyzer: TrendAnalyzer,
    analysis_time_limit: float | None = None,
) -> dict[str, int]:
    """
    Register every MCP tool.

    Args:
        analysis_time_limit: Paging time limit for analyze_trends, in seconds

    Returns:
        Dict with category ids and tool counts
    """
    from .tools import register_all_tools

    logger.info("Registering ClinicalTrials.gov tools...")
    register_all_tools(mcp, source, matcher, analyzer, analysis_time_limit=analysis_time_limit)

    stats = {cat_id: len(cat_info["tools"]) for cat_id, cat_info in TOOL_CATEGORIES.items()}
    logger.info(f"Total registered: {sum(stats.values())} tools")
    return stats


def list_registered_tools() -> dict[str, list[str]]:
    """List all tools grouped by category."""
    return {cat_id: list(cat_info["tools"]) for cat_id, cat_info in TOOL_CATEGORIES.items()}


def get_tool_info(tool_name: str) -> dict[str, str] | None:
    """
    Look up the category of a tool.

    Returns:
        Dict with category name and description, or None if not found
    """
    for cat_id, cat_info in TOOL_CATEGORIES.items():
        if tool_name in cat_info["tools"]:
            return {
                "name": tool_name,
                "category": cat_info["name"],
                "category_id": cat_id,
                "category_description": cat_info["description"],
            }
    return None

"""
ClinicalTrials.gov MCP Tools

✅ Patient matching (1)：
- find_eligible_studies: Rank trials a patient is likely eligible for

✅ Trend analysis (1)：
- analyze_trends: Count all matching studies by status, country, phase, ...

✅ Studies (3)：
- search_studies: One page of studies with continuation token
- get_study: Full records or summaries for up to 5 NCT IDs
- get_field_values: Distinct field values with study counts

✅ Results (1)：
- get_study_results: Outcomes, adverse events, participant flow and baseline

Usage:
    from .tools import register_all_tools
    register_all_tools(mcp, source, matcher, analyzer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .eligibility import register_eligibility_tools
from .results import register_results_tools
from .studies import register_study_tools
from .trends import register_trend_tools

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ctgov_search.application.matching.matcher import TrialMatcher
    from ctgov_search.application.trends.aggregator import TrendAnalyzer
    from ctgov_search.infrastructure.sources.clinical_trials import ClinicalTrialsGovSource


def register_all_tools(
    mcp: FastMCP,
    source: ClinicalTrialsGovSource,
    matcher: TrialMatcher,
    analyzer: TrendAnalyzer,
    analysis_time_limit: float | None = None,
) -> None:
    """Register all 6 tools on ``mcp``."""
    register_eligibility_tools(mcp, matcher)
    register_trend_tools(mcp, analyzer, time_limit=analysis_time_limit)
    register_study_tools(mcp, source)
    register_results_tools(mcp, source)


__all__ = [
    "register_all_tools",
    "register_eligibility_tools",
    "register_trend_tools",
    "register_study_tools",
    "register_results_tools",
]

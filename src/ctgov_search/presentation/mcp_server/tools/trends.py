"""
Trend MCP Tools - Statistical analysis over study sets

Provides:
- analyze_trends: Count all studies matching a query by status, country,
  sponsor type, phase, year, month, study type or intervention type
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Union

from ctgov_search.application.matching.pagination import CancellationToken
from ctgov_search.core.exceptions import CtgovSearchError, OperationCancelledError, QuotaExceededError
from ctgov_search.domain.entities.study import StudyQuery
from ctgov_search.domain.entities.trends import Dimension, TrendResult

from ._common import InputNormalizer, ResponseFormatter

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ctgov_search.application.trends.aggregator import TrendAnalyzer

logger = logging.getLogger(__name__)

TOP_CATEGORIES = 10


def format_trend_result(result: TrendResult) -> str:
    lines = [
        f"Analysis: {result.dimension.value}",
        f"Total Studies: {result.total_studies}",
        "Top Categories:",
    ]
    for category, count in result.top(TOP_CATEGORIES):
        percentage = count / result.total_studies * 100 if result.total_studies else 0.0
        lines.append(f"  • {category}: {count} ({percentage:.1f}%)")
    remaining = len(result.buckets) - TOP_CATEGORIES
    if remaining > 0:
        lines.append(f"  ...and {remaining} more")
    return "\n".join(lines)


def format_trend_results(results: list[TrendResult]) -> str:
    """Render trend results as plain text separated by horizontal rules."""
    count = len(results)
    header = f"Completed {count} {'analysis' if count == 1 else 'analyses'}"
    return header + "\n\n" + "\n\n---\n\n".join(format_trend_result(r) for r in results)


def register_trend_tools(mcp: FastMCP, analyzer: TrendAnalyzer, time_limit: float | None = None) -> None:
    """
    Register trend analysis tools (1 tool).

    Each call may page for at most ``time_limit`` seconds; None or 0 means
    no limit.
    """

    @mcp.tool()
    async def analyze_trends(
        analysis_type: Union[str, list[str]],
        query: str | None = None,
        filter: str | None = None,
        output_format: str = "text",
    ) -> str:
        """
        Aggregate statistics over ALL studies matching a query.

        ═══════════════════════════════════════════════════════════════
        ANALYSIS TYPES
        ═══════════════════════════════════════════════════════════════

        - countByStatus: Overall recruitment status
        - countByCountry: Countries with at least one site
        - countBySponsorType: Lead sponsor class (INDUSTRY, NIH, ...)
        - countByPhase: Declared phases
        - countByYear / countByMonth: Study start date
        - countByStudyType: INTERVENTIONAL, OBSERVATIONAL, ...
        - countByInterventionType: DRUG, DEVICE, BEHAVIORAL, ...

        Multi-valued analyses (country, phase, intervention type) count a
        study once per distinct value, so percentages may sum past 100%.

        ⚠️ Every matching study is downloaded. Queries matching more than
        the configured limit (default 5000) are refused; narrow them with
        query or filter first.

        Args:
            analysis_type: One analysis name, a comma-separated list, or a list
            query: Full-text search (query.term)
            filter: Advanced filter expression (filter.advanced),
                    e.g. "AREA[StartDate]RANGE[2020-01-01,MAX]"
            output_format: "text" (default) or "json"

        Returns:
            Top 10 categories per analysis with counts and percentages.

        Examples:
            analyze_trends(analysis_type="countByPhase", query="pembrolizumab")
            analyze_trends(analysis_type="countByStatus,countByYear", query="long covid")
        """
        try:
            dimensions = Dimension.parse_many(analysis_type)
            search = StudyQuery(
                term=InputNormalizer.normalize_query(query) or None,
                advanced_filter=InputNormalizer.normalize_query(filter) or None,
            )

            cancel_token = CancellationToken(timeout=time_limit or None)
            results = await analyzer.analyze_trends(search, dimensions, cancel_signal=cancel_token)

            if output_format == "json":
                return json.dumps({"analysis": [r.to_dict() for r in results]}, indent=2, ensure_ascii=False)
            return format_trend_results(results)

        except QuotaExceededError as e:
            logger.info(f"Trend analysis refused: {e}")
            return ResponseFormatter.error(
                e,
                suggestion="Add a more specific query or filter (e.g. a date range or status) and try again",
                example='analyze_trends(analysis_type="countByPhase", query="melanoma", '
                'filter="AREA[StartDate]RANGE[2022-01-01,MAX]")',
                tool_name="analyze_trends",
            )
        except OperationCancelledError as e:
            logger.info(f"Trend analysis stopped after {e.pages_fetched} page(s): {e}")
            return ResponseFormatter.error(
                f"Analysis stopped after {e.pages_fetched} page(s): the time limit of {time_limit:g}s was reached",
                suggestion="Narrow the query or filter so fewer pages are needed",
                tool_name="analyze_trends",
            )
        except CtgovSearchError as e:
            logger.warning(f"Trend analysis failed: {e}")
            return ResponseFormatter.error(e, tool_name="analyze_trends")
        except Exception as e:
            logger.exception(f"Trend analysis failed: {e}")
            return ResponseFormatter.error(
                error=str(e),
                suggestion="Try a narrower query or check network connection",
                tool_name="analyze_trends",
            )

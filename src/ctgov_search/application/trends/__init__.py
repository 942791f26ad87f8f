"""
Trend Analysis - per-dimension study counts.

Usage:
    from ctgov_search.application.trends import TrendAnalyzer

    analyzer = TrendAnalyzer(PageAccumulator(source), max_studies=5000)
    results = await analyzer.analyze_trends(StudyQuery(term="melanoma"), [Dimension.PHASE])
"""

from .aggregator import (
    ANALYSIS_PAGE_SIZE,
    DEFAULT_MAX_STUDIES,
    TrendAggregator,
    TrendAnalyzer,
)

__all__ = [
    "TrendAggregator",
    "TrendAnalyzer",
    "ANALYSIS_PAGE_SIZE",
    "DEFAULT_MAX_STUDIES",
]

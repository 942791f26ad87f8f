"""
Application DI Container (dependency-injector).

Centralizes creation of the record source and the engines built on it.

Usage::

    from ctgov_search.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict({
        "base_url": "https://clinicaltrials.gov/api/v2",
        "timeout": 30.0,
        "page_delay": 0.25,
        "max_studies_for_analysis": 5000,
        "match_page_size": 100,
        "analysis_time_limit": 120.0,
    })

    matcher = container.matcher()
    analyzer = container.trend_analyzer()

    # In tests, override any provider:
    container.record_source.override(providers.Object(fake_source))
"""

from __future__ import annotations

import logging

from dependency_injector import containers, providers

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "base_url": "https://clinicaltrials.gov/api/v2",
    "timeout": 30.0,
    "page_delay": 0.25,
    "max_studies_for_analysis": 5000,
    "match_page_size": 100,
    "analysis_time_limit": 120.0,
}


def _create_record_source(base_url: str | None, timeout: float | None) -> object:
    """Lazy factory for ClinicalTrialsGovSource (avoids top-level httpx import)."""
    from ctgov_search.infrastructure.sources.clinical_trials import ClinicalTrialsGovSource

    return ClinicalTrialsGovSource(
        base_url=base_url or DEFAULT_CONFIG["base_url"],
        timeout=float(timeout or DEFAULT_CONFIG["timeout"]),
    )


def _create_page_accumulator(source: object, page_delay: float | None) -> object:
    from ctgov_search.application.matching.pagination import PageAccumulator

    delay = DEFAULT_CONFIG["page_delay"] if page_delay is None else float(page_delay)
    return PageAccumulator(source, page_delay=delay)


def _create_matcher(accumulator: object, page_size: int | None) -> object:
    from ctgov_search.application.matching.matcher import TrialMatcher

    size = DEFAULT_CONFIG["match_page_size"] if page_size is None else int(page_size)
    return TrialMatcher(accumulator, page_size=size)


def _create_trend_analyzer(accumulator: object, max_studies: int | None) -> object:
    from ctgov_search.application.trends.aggregator import TrendAnalyzer

    limit = DEFAULT_CONFIG["max_studies_for_analysis"] if max_studies is None else int(max_studies)
    return TrendAnalyzer(accumulator, max_studies=limit)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the ClinicalTrials.gov search application.

    Manages creation and lifecycle of all core services:
    - ``record_source``: ClinicalTrials.gov API v2 client
    - ``page_accumulator``: Paced pagination over the record source
    - ``matcher``: Patient eligibility matching
    - ``trend_analyzer``: Trend aggregation over full result sets
    """

    config = providers.Configuration()

    record_source = providers.Singleton(
        _create_record_source,
        base_url=config.base_url,
        timeout=config.timeout,
    )

    page_accumulator = providers.Singleton(
        _create_page_accumulator,
        source=record_source,
        page_delay=config.page_delay,
    )

    matcher = providers.Singleton(
        _create_matcher,
        accumulator=page_accumulator,
        page_size=config.match_page_size,
    )

    trend_analyzer = providers.Singleton(
        _create_trend_analyzer,
        accumulator=page_accumulator,
        max_studies=config.max_studies_for_analysis,
    )


__all__ = ["ApplicationContainer", "DEFAULT_CONFIG"]

"""
Trend Aggregator - Categorical and temporal counts over study sets.

Counts studies along one or more dimensions. Single-valued dimensions
(status, sponsor type, study type, year, month) put each study in exactly
one bucket. Multi-valued dimensions (country, phase, intervention type)
de-duplicate values within a study first, so a study with ten US sites
counts once for "United States".

TrendAnalyzer wires the aggregator to a PageAccumulator: it fetches every
page of a query (refusing queries whose total exceeds the quota) and then
aggregates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ctgov_search.application.matching.pagination import PageAccumulator
from ctgov_search.domain.entities.study import CancelSignal, StudyQuery, StudyRecord
from ctgov_search.domain.entities.trends import Dimension, TrendResult

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
ANALYSIS_PAGE_SIZE = 1000
DEFAULT_MAX_STUDIES = 5000


def _text(value: Any) -> str:
    return value if isinstance(value, str) and value else UNKNOWN


def _single(value: str | None) -> list[str]:
    return [value or UNKNOWN]


def _status_keys(record: StudyRecord) -> list[str]:
    return _single(record.overall_status)


def _sponsor_type_keys(record: StudyRecord) -> list[str]:
    return _single(record.lead_sponsor_class)


def _study_type_keys(record: StudyRecord) -> list[str]:
    return _single(record.study_type)


def _country_keys(record: StudyRecord) -> list[str]:
    return [_text(site.get("country")) for site in record.locations]


def _phase_keys(record: StudyRecord) -> list[str]:
    phases = record.phases
    if not phases:
        return [UNKNOWN]
    return phases


def _intervention_type_keys(record: StudyRecord) -> list[str]:
    interventions = record.interventions
    if not interventions:
        return [UNKNOWN]
    return [_text(intervention.get("type")) for intervention in interventions]


def _year_keys(record: StudyRecord) -> list[str]:
    start = record.start_date
    return [start[:4]] if start else [UNKNOWN]


def _month_keys(record: StudyRecord) -> list[str]:
    start = record.start_date
    return [start[:7]] if start and len(start) >= 7 else [UNKNOWN]


BUCKET_EXTRACTORS: dict[Dimension, Callable[[StudyRecord], list[str]]] = {
    Dimension.STATUS: _status_keys,
    Dimension.COUNTRY: _country_keys,
    Dimension.SPONSOR_TYPE: _sponsor_type_keys,
    Dimension.PHASE: _phase_keys,
    Dimension.YEAR: _year_keys,
    Dimension.MONTH: _month_keys,
    Dimension.STUDY_TYPE: _study_type_keys,
    Dimension.INTERVENTION_TYPE: _intervention_type_keys,
}


class TrendAggregator:
    """
    Counts studies per bucket for each requested dimension.

    Example:
        >>> aggregator = TrendAggregator()
        >>> [result] = aggregator.aggregate(studies, [Dimension.PHASE])
        >>> result.buckets
        {'PHASE2': 1, 'PHASE3': 2}
    """

    def aggregate(
        self,
        studies: Sequence[dict[str, Any]],
        dimensions: Sequence[Dimension],
    ) -> list[TrendResult]:
        records = [StudyRecord(study) for study in studies]
        return [self.aggregate_dimension(records, dimension) for dimension in dimensions]

    def aggregate_dimension(self, records: Sequence[StudyRecord], dimension: Dimension) -> TrendResult:
        extract = BUCKET_EXTRACTORS[dimension]
        buckets: dict[str, int] = {}
        for record in records:
            keys = extract(record)
            if dimension.multi_valued:
                keys = list(dict.fromkeys(keys))
            for key in keys:
                buckets[key] = buckets.get(key, 0) + 1
        return TrendResult(dimension=dimension, total_studies=len(records), buckets=buckets)


class TrendAnalyzer:
    """
    Fetches every study matching a query and aggregates it.

    Args:
        accumulator: Page accumulator bound to a record source
        max_studies: Default quota on the reported total count
        aggregator: Aggregator instance (default: new TrendAggregator)
    """

    def __init__(
        self,
        accumulator: PageAccumulator,
        max_studies: int = DEFAULT_MAX_STUDIES,
        aggregator: TrendAggregator | None = None,
    ) -> None:
        self._accumulator = accumulator
        self._max_studies = max_studies
        self._aggregator = aggregator or TrendAggregator()

    @property
    def max_studies(self) -> int:
        return self._max_studies

    async def analyze_trends(
        self,
        query: StudyQuery,
        dimensions: Sequence[Dimension],
        quota: int | None = None,
        cancel_signal: CancelSignal | None = None,
    ) -> list[TrendResult]:
        """
        Aggregate all studies matching ``query`` along ``dimensions``.

        Raises:
            QuotaExceededError: The query matches more than ``quota`` studies
            OperationCancelledError: Cancelled between pages
        """
        limit = self._max_studies if quota is None else quota
        logger.debug(f"Fetching all studies for analysis (limit {limit})")

        fetched = await self._accumulator.accumulate(
            query,
            page_size=ANALYSIS_PAGE_SIZE,
            quota=limit,
            cancel_signal=cancel_signal,
        )
        results = self._aggregator.aggregate(fetched.studies, dimensions)
        logger.info(f"Completed trend analysis: {len(results)} dimension(s) over {len(fetched.studies)} studies")
        return results

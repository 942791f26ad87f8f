"""
Page Accumulator - Sequential pagination into an in-memory study set.

Drives a RecordSource page by page, following continuation tokens until the
source runs dry, the reported total is reached, or an optional record cap
is hit. The first page doubles as the total-count check: when the reported
total exceeds the quota, nothing beyond page one is requested.

Suspension points are the page fetch itself and the pacing delay between
pages. Cancellation is checked immediately before each of them; once set,
no further request is started and the whole accumulation fails.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ctgov_search.core.exceptions import OperationCancelledError, QuotaExceededError
from ctgov_search.domain.entities.study import CancelSignal, RecordSource, StudyQuery

logger = logging.getLogger(__name__)

DEFAULT_PAGE_DELAY = 0.25  # seconds between page requests


class CancellationToken:
    """
    Cooperative cancellation flag with an optional time limit.

    Once ``timeout`` seconds have passed since creation the token reports
    itself cancelled, so a long pagination stops at the next page boundary.

    Example:
        token = CancellationToken(timeout=120.0)
        task = asyncio.create_task(accumulator.accumulate(query, 1000, 5000, token))
        token.cancel()
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = asyncio.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._event.is_set()


@dataclass
class AccumulatedStudies:
    """Studies gathered across pages plus the total reported upstream."""

    studies: list[dict[str, Any]] = field(default_factory=list)
    total_count: int | None = None
    pages_fetched: int = 0

    @property
    def was_truncated(self) -> bool:
        return self.total_count is not None and self.total_count > len(self.studies)


class PageAccumulator:
    """
    Collects every page of a query from a RecordSource.

    Args:
        source: Record source to page through
        page_delay: Pause between page requests in seconds
        sleep: Awaitable sleep function (injectable for tests)
    """

    def __init__(
        self,
        source: RecordSource,
        page_delay: float = DEFAULT_PAGE_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._page_delay = page_delay
        self._sleep = sleep

    async def accumulate(
        self,
        query: StudyQuery,
        page_size: int,
        quota: int | None = None,
        cancel_signal: CancelSignal | None = None,
        max_records: int | None = None,
    ) -> AccumulatedStudies:
        """
        Fetch all pages for ``query``.

        Args:
            query: Search parameters
            page_size: Studies requested per page
            quota: Maximum reported total allowed; None disables the check
            cancel_signal: Checked before every request after the first
            max_records: Stop once this many studies are held

        Returns:
            AccumulatedStudies with the studies in page order

        Raises:
            QuotaExceededError: Reported total exceeds ``quota``
            OperationCancelledError: Cancellation observed between pages
        """
        paged_query = query.with_page_size(page_size)

        first_page = await self._source.list_studies(paged_query)
        total = first_page.total_count

        if quota is not None and total is not None and total > quota:
            logger.warning(f"Query matched {total} studies, exceeding the limit of {quota}")
            raise QuotaExceededError(total, quota)

        result = AccumulatedStudies(
            studies=list(first_page.studies),
            total_count=total,
            pages_fetched=1,
        )
        token = first_page.next_page_token

        while token and not self._is_complete(result, max_records):
            self._check_cancelled(cancel_signal, result)
            await self._sleep(self._page_delay)
            self._check_cancelled(cancel_signal, result)

            page = await self._source.list_studies(paged_query, page_token=token)
            result.studies.extend(page.studies)
            result.pages_fetched += 1
            token = page.next_page_token
            logger.debug(f"Fetched page {result.pages_fetched}: {len(result.studies)} studies so far")

        if max_records is not None and len(result.studies) > max_records:
            del result.studies[max_records:]

        logger.info(f"Fetched a total of {len(result.studies)} studies in {result.pages_fetched} page(s)")
        return result

    @staticmethod
    def _is_complete(result: AccumulatedStudies, max_records: int | None) -> bool:
        held = len(result.studies)
        if result.total_count is not None and held >= result.total_count:
            return True
        return max_records is not None and held >= max_records

    @staticmethod
    def _check_cancelled(cancel_signal: CancelSignal | None, result: AccumulatedStudies) -> None:
        if cancel_signal is not None and cancel_signal.is_cancelled():
            logger.info(f"Pagination cancelled after {result.pages_fetched} page(s)")
            raise OperationCancelledError(pages_fetched=result.pages_fetched)

"""Tests for PageAccumulator pagination, quota and cancellation."""

from __future__ import annotations

import pytest

from ctgov_search.application.matching.pagination import CancellationToken, PageAccumulator
from ctgov_search.core.exceptions import NetworkError, OperationCancelledError, QuotaExceededError
from ctgov_search.domain.entities.study import StudyPage, StudyQuery


def _studies(prefix: str, count: int) -> list[dict]:
    return [{"protocolSection": {"identificationModule": {"nctId": f"{prefix}{i}"}}} for i in range(count)]


class TestAccumulate:
    async def test_single_page(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 3)])
        result = await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(term="x"), page_size=1000)

        assert len(result.studies) == 3
        assert result.total_count == 3
        assert result.pages_fetched == 1
        assert len(source.calls) == 1
        assert no_sleep.delays == []

    async def test_follows_tokens_in_order(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 2), _studies("B", 2), _studies("C", 1)])
        result = await PageAccumulator(source, page_delay=0.25, sleep=no_sleep).accumulate(
            StudyQuery(term="x"), page_size=2
        )

        ids = [s["protocolSection"]["identificationModule"]["nctId"] for s in result.studies]
        assert ids == ["A0", "A1", "B0", "B1", "C0"]
        assert [token for _, token in source.calls] == [None, "page-2", "page-3"]
        assert no_sleep.delays == [0.25, 0.25]

    async def test_page_size_applied_to_every_request(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 1), _studies("B", 1)])
        await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(term="x", page_size=10), page_size=1000)
        assert all(query.page_size == 1000 for query, _ in source.calls)

    async def test_total_zero_makes_one_call(self, fake_source_factory, no_sleep):
        source = fake_source_factory([[]], total_count=0)
        result = await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(), page_size=1000, quota=5000)

        assert result.studies == []
        assert result.total_count == 0
        assert len(source.calls) == 1

    async def test_stops_when_total_reached(self, fake_source_factory, no_sleep):
        # Source keeps offering a token even though the total is already held
        source = fake_source_factory([_studies("A", 2), _studies("B", 2)], total_count=2)
        result = await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(), page_size=2)
        assert len(result.studies) == 2
        assert len(source.calls) == 1


class TestQuota:
    async def test_exceeded_after_one_call(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 2), _studies("B", 2)], total_count=6000)

        with pytest.raises(QuotaExceededError) as exc_info:
            await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(), page_size=1000, quota=5000)

        assert exc_info.value.total_count == 6000
        assert exc_info.value.quota == 5000
        assert len(source.calls) == 1

    async def test_total_equal_to_quota_is_allowed(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 2)], total_count=2)
        result = await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(), page_size=1000, quota=2)
        assert len(result.studies) == 2


class TestMaxRecords:
    async def test_truncates_to_first_slice(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 100), _studies("B", 100)], total_count=250)
        result = await PageAccumulator(source, sleep=no_sleep).accumulate(
            StudyQuery(), page_size=100, max_records=100
        )

        assert len(result.studies) == 100
        assert result.was_truncated is True
        assert len(source.calls) == 1

    async def test_trims_overshoot(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 3), _studies("B", 3)], total_count=6)
        result = await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(), page_size=3, max_records=4)
        assert len(result.studies) == 4


class TestCancellation:
    async def test_cancel_before_second_page(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 2), _studies("B", 2)])
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError) as exc_info:
            await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(), page_size=2, cancel_signal=token)

        assert exc_info.value.pages_fetched == 1
        assert len(source.calls) == 1

    async def test_cancel_during_delay(self, fake_source_factory):
        source = fake_source_factory([_studies("A", 2), _studies("B", 2)])
        token = CancellationToken()

        async def cancelling_sleep(seconds):
            token.cancel()

        with pytest.raises(OperationCancelledError):
            await PageAccumulator(source, sleep=cancelling_sleep).accumulate(
                StudyQuery(), page_size=2, cancel_signal=token
            )
        assert len(source.calls) == 1

    def test_token_flag(self):
        token = CancellationToken()
        assert token.is_cancelled() is False
        token.cancel()
        assert token.is_cancelled() is True

    def test_token_time_limit(self):
        assert CancellationToken(timeout=0).is_cancelled() is True
        assert CancellationToken(timeout=3600).is_cancelled() is False

    async def test_expired_token_stops_before_second_page(self, fake_source_factory, no_sleep):
        source = fake_source_factory([_studies("A", 2), _studies("B", 2)])

        with pytest.raises(OperationCancelledError):
            await PageAccumulator(source, sleep=no_sleep).accumulate(
                StudyQuery(), page_size=2, cancel_signal=CancellationToken(timeout=0)
            )
        assert len(source.calls) == 1


class TestUpstreamErrors:
    async def test_error_on_later_page_propagates(self, no_sleep):
        class FailingSource:
            def __init__(self):
                self.calls = 0

            async def list_studies(self, query, page_token=None):
                self.calls += 1
                if page_token:
                    raise NetworkError("connection reset")
                return StudyPage(studies=_studies("A", 1), total_count=2, next_page_token="next")

        source = FailingSource()
        with pytest.raises(NetworkError):
            await PageAccumulator(source, sleep=no_sleep).accumulate(StudyQuery(), page_size=1)
        assert source.calls == 2

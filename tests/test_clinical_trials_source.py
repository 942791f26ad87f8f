"""
Tests for the ClinicalTrials.gov API record source.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ctgov_search.core.exceptions import (
    APIError,
    InvalidNCTIdError,
    NetworkError,
    NotFoundError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
)
from ctgov_search.domain.entities.study import StudyQuery
from ctgov_search.infrastructure.sources.clinical_trials import (
    BASE_URL,
    DEFAULT_TIMEOUT,
    ClinicalTrialsGovSource,
    build_params,
    build_phase_filter,
    normalize_nct_id,
)


def _response(status_code: int = 200, json_data=None, headers=None, text: str = ""):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def source():
    src = ClinicalTrialsGovSource()
    src._client = AsyncMock()
    src._client.is_closed = False
    return src


# =============================================================================
# Basics
# =============================================================================


class TestClinicalTrialsGovSourceBasic:
    async def test_init_default(self):
        src = ClinicalTrialsGovSource()
        assert src.base_url == BASE_URL
        assert src.timeout == DEFAULT_TIMEOUT
        assert src._client is None

    async def test_trailing_slash_stripped(self):
        assert ClinicalTrialsGovSource(base_url="http://localhost:9000/api/v2/").base_url == (
            "http://localhost:9000/api/v2"
        )

    async def test_client_property_lazy_init(self):
        src = ClinicalTrialsGovSource()
        http_client = src.client
        assert isinstance(http_client, httpx.AsyncClient)
        assert src.client is http_client
        await src.close()
        assert src._client is None

    async def test_async_context_manager_closes(self):
        async with ClinicalTrialsGovSource() as src:
            _ = src.client
        assert src._client is None


# =============================================================================
# Parameter building
# =============================================================================


class TestBuildParams:
    def test_minimal(self):
        assert build_params(StudyQuery()) == {"pageSize": 10, "countTotal": "true"}

    def test_all_fields(self):
        query = StudyQuery(
            term="insulin",
            condition='"Type 2 Diabetes" OR Asthma',
            intervention="metformin",
            sponsor="NIH",
            location="Boston, Massachusetts",
            advanced_filter="AREA[StartDate]RANGE[2020-01-01,MAX]",
            status_filter=("RECRUITING", "NOT_YET_RECRUITING"),
            phase_filter=("PHASE2", "PHASE3"),
            geo_filter="distance(42.36,-71.06,50mi)",
            page_size=100,
            sort="LastUpdatePostDate:desc",
            fields=("NCTId", "BriefTitle"),
        )
        params = build_params(query, page_token="tok")
        assert params["query.term"] == "insulin"
        assert params["query.cond"] == '"Type 2 Diabetes" OR Asthma'
        assert params["query.intr"] == "metformin"
        assert params["query.spons"] == "NIH"
        assert params["query.locn"] == "Boston, Massachusetts"
        assert params["filter.advanced"] == (
            "AREA[StartDate]RANGE[2020-01-01,MAX] AND AREA[Phase](PHASE2 OR PHASE3)"
        )
        assert params["filter.overallStatus"] == "RECRUITING,NOT_YET_RECRUITING"
        assert params["filter.geo"] == "distance(42.36,-71.06,50mi)"
        assert params["pageSize"] == 100
        assert params["pageToken"] == "tok"
        assert params["sort"] == "LastUpdatePostDate:desc"
        assert params["fields"] == "NCTId,BriefTitle"
        assert params["countTotal"] == "true"

    def test_phase_filter(self):
        assert build_phase_filter(()) is None
        assert build_phase_filter(("PHASE3",)) == "AREA[Phase]PHASE3"
        assert build_phase_filter(["PHASE1", "PHASE2"]) == "AREA[Phase](PHASE1 OR PHASE2)"


class TestNormalizeNctId:
    @pytest.mark.parametrize("value", ["NCT01234567", "nct01234567", " NcT01234567 "])
    def test_valid(self, value):
        assert normalize_nct_id(value) == "NCT01234567"

    @pytest.mark.parametrize("value", ["NCT1234567", "NCT012345678", "01234567", "NCTABCDEFGH", "", None])
    def test_invalid(self, value):
        with pytest.raises(InvalidNCTIdError):
            normalize_nct_id(value)


# =============================================================================
# list_studies
# =============================================================================


class TestListStudies:
    async def test_success(self, source):
        source._client.get = AsyncMock(
            return_value=_response(
                json_data={
                    "studies": [{"protocolSection": {}}, "garbage"],
                    "totalCount": 42,
                    "nextPageToken": "abc",
                }
            )
        )
        page = await source.list_studies(StudyQuery(condition="Asthma", page_size=2))

        assert page.total_count == 42
        assert page.next_page_token == "abc"
        assert page.studies == [{"protocolSection": {}}]

        url = source._client.get.call_args.args[0]
        params = source._client.get.call_args.kwargs["params"]
        assert url == f"{BASE_URL}/studies"
        assert params["query.cond"] == "Asthma"
        assert params["pageSize"] == 2

    async def test_page_token_forwarded(self, source):
        source._client.get = AsyncMock(return_value=_response(json_data={"studies": []}))
        page = await source.list_studies(StudyQuery(), page_token="next-one")

        assert source._client.get.call_args.kwargs["params"]["pageToken"] == "next-one"
        assert page.studies == []
        assert page.total_count is None
        assert page.next_page_token is None

    async def test_timeout_maps_to_network_error(self, source):
        source._client.get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(NetworkError):
            await source.list_studies(StudyQuery())

    async def test_transport_error_maps_to_network_error(self, source):
        source._client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(NetworkError):
            await source.list_studies(StudyQuery())

    async def test_rate_limit(self, source):
        source._client.get = AsyncMock(return_value=_response(429, headers={"Retry-After": "7"}))
        with pytest.raises(RateLimitError) as exc_info:
            await source.list_studies(StudyQuery())
        assert exc_info.value.context.retry_after == 7.0
        assert source._client.get.call_count == 1

    async def test_server_error(self, source):
        source._client.get = AsyncMock(return_value=_response(503))
        with pytest.raises(ServiceUnavailableError) as exc_info:
            await source.list_studies(StudyQuery())
        assert exc_info.value.status_code == 503

    async def test_client_error(self, source):
        source._client.get = AsyncMock(return_value=_response(400, text="bad filter"))
        with pytest.raises(APIError) as exc_info:
            await source.list_studies(StudyQuery())
        assert exc_info.value.status_code == 400
        assert exc_info.value.retryable is False
        assert "bad filter" in str(exc_info.value)

    async def test_malformed_json(self, source):
        source._client.get = AsyncMock(return_value=_response(json_data=ValueError("not json")))
        with pytest.raises(ParseError):
            await source.list_studies(StudyQuery())

    async def test_non_object_body(self, source):
        source._client.get = AsyncMock(return_value=_response(json_data=[1, 2, 3]))
        with pytest.raises(ParseError):
            await source.list_studies(StudyQuery())


# =============================================================================
# fetch_study / get_field_values / health_check
# =============================================================================


class TestFetchStudy:
    async def test_success(self, source):
        study = {"protocolSection": {"identificationModule": {"nctId": "NCT01234567"}}}
        source._client.get = AsyncMock(return_value=_response(json_data=study))

        result = await source.fetch_study("nct01234567")

        assert result == study
        assert source._client.get.call_args.args[0] == f"{BASE_URL}/studies/NCT01234567"

    async def test_invalid_id_never_calls_api(self, source):
        source._client.get = AsyncMock()
        with pytest.raises(InvalidNCTIdError):
            await source.fetch_study("12345")
        source._client.get.assert_not_called()

    async def test_not_found(self, source):
        source._client.get = AsyncMock(return_value=_response(404, text="Not Found"))
        with pytest.raises(NotFoundError):
            await source.fetch_study("NCT01234567")


class TestFieldValues:
    async def test_values(self, source):
        source._client.get = AsyncMock(
            return_value=_response(
                json_data={
                    "field": "OverallStatus",
                    "topValues": [
                        {"value": "COMPLETED", "studiesCount": 300},
                        {"value": "RECRUITING", "studiesCount": 100},
                        {"studiesCount": 5},
                    ],
                }
            )
        )
        values = await source.get_field_values("OverallStatus")

        assert [(v.value, v.count) for v in values] == [("COMPLETED", 300), ("RECRUITING", 100)]
        assert source._client.get.call_args.args[0] == f"{BASE_URL}/stats/fieldValues/OverallStatus"

    async def test_missing_list(self, source):
        source._client.get = AsyncMock(return_value=_response(json_data={"field": "Phase"}))
        assert await source.get_field_values("Phase") == []


class TestHealthCheck:
    async def test_healthy(self, source):
        source._client.get = AsyncMock(return_value=_response(json_data={"apiVersion": "2.0.3"}))
        assert await source.health_check() is True
        assert source._client.get.call_args.args[0] == f"{BASE_URL}/version"

    async def test_unhealthy(self, source):
        source._client.get = AsyncMock(return_value=_response(500))
        assert await source.health_check() is False

    async def test_network_down(self, source):
        source._client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        assert await source.health_check() is False

"""
ClinicalTrials.gov API Source

Record source backed by the public ClinicalTrials.gov API v2. No
registration or API key is required.

API Documentation: https://clinicaltrials.gov/data-api/api

Features:
- Paginated study listing (implements the RecordSource protocol)
- Single study lookup by NCT ID
- Distinct field values with study counts
- Health check against the /version endpoint

Transport failures are mapped onto the core exception hierarchy and
raised; nothing is retried here.

Usage:
    >>> async with ClinicalTrialsGovSource() as source:
    ...     page = await source.list_studies(StudyQuery(condition="asthma", page_size=5))
    ...     print(page.total_count, len(page.studies))
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx
from typing_extensions import Self

from ctgov_search.core.exceptions import (
    APIError,
    ErrorContext,
    InvalidNCTIdError,
    NetworkError,
    NotFoundError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
)
from ctgov_search.domain.entities.study import FieldValue, StudyPage, StudyQuery

logger = logging.getLogger(__name__)

# Base URL for ClinicalTrials.gov API v2
BASE_URL = "https://clinicaltrials.gov/api/v2"
DEFAULT_TIMEOUT = 30.0

NCT_ID_PATTERN = re.compile(r"^[Nn][Cc][Tt]\d{8}$")


def normalize_nct_id(nct_id: str) -> str:
    """
    Validate an NCT identifier and return it upper-cased.

    Raises:
        InvalidNCTIdError: Not "NCT" followed by exactly 8 digits
    """
    candidate = nct_id.strip() if isinstance(nct_id, str) else nct_id
    if not isinstance(candidate, str) or not NCT_ID_PATTERN.match(candidate):
        raise InvalidNCTIdError(nct_id)
    return candidate.upper()


def build_phase_filter(phases: tuple[str, ...] | list[str]) -> str | None:
    """Build an ``AREA[Phase]`` expression for ``filter.advanced``."""
    if not phases:
        return None
    if len(phases) == 1:
        return f"AREA[Phase]{phases[0]}"
    return f"AREA[Phase]({' OR '.join(phases)})"


def build_params(query: StudyQuery, page_token: str | None = None) -> dict[str, Any]:
    """Translate a StudyQuery into API v2 request parameters."""
    params: dict[str, Any] = {
        "pageSize": query.page_size,
        "countTotal": "true",
    }

    for key, value in (
        ("query.term", query.term),
        ("query.cond", query.condition),
        ("query.intr", query.intervention),
        ("query.spons", query.sponsor),
        ("query.locn", query.location),
        ("filter.geo", query.geo_filter),
        ("sort", query.sort),
        ("pageToken", page_token),
    ):
        if value:
            params[key] = value

    advanced = [part for part in (query.advanced_filter, build_phase_filter(query.phase_filter)) if part]
    if advanced:
        params["filter.advanced"] = " AND ".join(advanced)

    if query.status_filter:
        params["filter.overallStatus"] = ",".join(query.status_filter)
    if query.fields:
        params["fields"] = ",".join(query.fields)

    return params


class ClinicalTrialsGovSource:
    """Record source for the ClinicalTrials.gov public API."""

    def __init__(self, base_url: str = BASE_URL, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize source.

        Args:
            base_url: API root (no trailing slash needed)
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            logger.warning(f"ClinicalTrials.gov timeout: {path}")
            raise NetworkError(
                f"Request to ClinicalTrials.gov timed out after {self.timeout}s",
                context=ErrorContext(operation=path, suggestion="Try again or narrow the query"),
            ) from e
        except httpx.TransportError as e:
            logger.warning(f"ClinicalTrials.gov transport error: {e}")
            raise NetworkError(f"Could not reach ClinicalTrials.gov: {e}", context=ErrorContext(operation=path)) from e

        self._raise_for_status(response, path)

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON response: {e}", source="ClinicalTrials.gov") from e
        if not isinstance(data, dict):
            raise ParseError(f"Expected a JSON object, got {type(data).__name__}", source="ClinicalTrials.gov")
        return data

    @staticmethod
    def _raise_for_status(response: httpx.Response, path: str) -> None:
        status = response.status_code
        if status < 400:
            return

        logger.warning(f"ClinicalTrials.gov HTTP {status} for {path}")
        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimitError(retry_after=retry_after, context=ErrorContext(operation=path))
        if status >= 500:
            raise ServiceUnavailableError(f"HTTP {status}", status_code=status)
        raise APIError(
            f"ClinicalTrials.gov returned HTTP {status}: {response.text[:200]}",
            status_code=status,
            context=ErrorContext(operation=path),
            retryable=False,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def list_studies(self, query: StudyQuery, page_token: str | None = None) -> StudyPage:
        """
        Fetch one page of studies.

        Args:
            query: Search parameters
            page_token: Continuation token from the previous page

        Returns:
            StudyPage with raw study dicts, the total count and the next token
        """
        data = await self._get_json("/studies", params=build_params(query, page_token))
        studies = data.get("studies")
        if not isinstance(studies, list):
            studies = []

        total = data.get("totalCount")
        return StudyPage(
            studies=[s for s in studies if isinstance(s, dict)],
            total_count=total if isinstance(total, int) else None,
            next_page_token=data.get("nextPageToken") or None,
        )

    async def fetch_study(self, nct_id: str) -> dict[str, Any]:
        """
        Fetch a single study by NCT ID.

        Raises:
            InvalidNCTIdError: Malformed identifier
            NotFoundError: The API does not know the study
        """
        normalized = normalize_nct_id(nct_id)
        try:
            return await self._get_json(f"/studies/{normalized}")
        except APIError as e:
            if e.status_code == 404:
                raise NotFoundError("Study", normalized) from e
            raise

    async def get_field_values(self, field_name: str) -> list[FieldValue]:
        """Get distinct values of ``field_name`` with their study counts."""
        data = await self._get_json(f"/stats/fieldValues/{field_name}")
        top_values = data.get("topValues")
        if not isinstance(top_values, list):
            return []

        values = []
        for item in top_values:
            if not isinstance(item, dict) or item.get("value") is None:
                continue
            values.append(FieldValue(value=str(item["value"]), count=int(item.get("studiesCount") or 0)))
        return values

    async def health_check(self) -> bool:
        """Return True when the API answers /version."""
        try:
            await self._get_json("/version")
            return True
        except (APIError, ParseError) as e:
            logger.warning(f"ClinicalTrials.gov health check failed: {e}")
            return False


def _parse_retry_after(value: str | None) -> float:
    try:
        return max(float(value), 0.0) if value else 1.0
    except ValueError:
        return 1.0

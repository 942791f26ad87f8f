"""
Study Entities - ClinicalTrials.gov Record Model

A study arrives from the API v2 as a deeply nested, partially populated
JSON object. Any module of the ``protocolSection`` may be missing, and a
missing module means "unknown", not "empty". ``StudyRecord`` wraps the raw
dict and exposes named accessors so callers never chain ``.get()`` calls.

Key Entities:
    - StudyRecord: Read-only view over one raw study
    - StudyQuery: Search parameters understood by a record source
    - StudyPage: One page of results plus total count and continuation token
    - RecordSource / CancelSignal: Protocols consumed by the engine

Example:
    >>> record = StudyRecord({"protocolSection": {"identificationModule": {"nctId": "NCT00000001"}}})
    >>> record.nct_id
    'NCT00000001'
    >>> record.phases is None
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable

OVERALL_STATUSES = (
    "ACTIVE_NOT_RECRUITING",
    "COMPLETED",
    "ENROLLING_BY_INVITATION",
    "NOT_YET_RECRUITING",
    "RECRUITING",
    "SUSPENDED",
    "TERMINATED",
    "WITHDRAWN",
    "AVAILABLE",
    "NO_LONGER_AVAILABLE",
    "TEMPORARILY_NOT_AVAILABLE",
    "APPROVED_FOR_MARKETING",
    "WITHHELD",
    "UNKNOWN",
)

STUDY_PHASES = ("EARLY_PHASE1", "PHASE1", "PHASE2", "PHASE3", "PHASE4", "NA")


def _as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def _as_list(value: Any) -> list[Any] | None:
    return value if isinstance(value, list) else None


@dataclass(frozen=True)
class StudyRecord:
    """
    Read-only accessor view over one raw ClinicalTrials.gov study.

    Every property returns ``None`` (or an empty list for collections that
    are only ever iterated) when the underlying facet is absent.
    """

    raw: dict[str, Any]

    # ------------------------------------------------------------------
    # Module access
    # ------------------------------------------------------------------

    @property
    def protocol(self) -> dict[str, Any]:
        return _as_dict(self.raw.get("protocolSection")) or {}

    def module(self, name: str) -> dict[str, Any] | None:
        """Return a protocol module by name, or None when absent."""
        return _as_dict(self.protocol.get(name))

    def _get(self, module_name: str, *path: str) -> Any:
        node: Any = self.module(module_name)
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    def _get_str(self, module_name: str, *path: str) -> str | None:
        value = self._get(module_name, *path)
        return value if isinstance(value, str) else None

    # ------------------------------------------------------------------
    # Identification / description
    # ------------------------------------------------------------------

    @property
    def nct_id(self) -> str | None:
        return self._get_str("identificationModule", "nctId")

    @property
    def brief_title(self) -> str | None:
        return self._get_str("identificationModule", "briefTitle")

    @property
    def official_title(self) -> str | None:
        return self._get_str("identificationModule", "officialTitle")

    @property
    def brief_summary(self) -> str | None:
        return self._get_str("descriptionModule", "briefSummary")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def overall_status(self) -> str | None:
        return self._get_str("statusModule", "overallStatus")

    @property
    def start_date(self) -> str | None:
        return self._get_str("statusModule", "startDateStruct", "date")

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    @property
    def eligibility(self) -> dict[str, Any] | None:
        return self.module("eligibilityModule")

    @property
    def minimum_age(self) -> str | None:
        return self._get_str("eligibilityModule", "minimumAge")

    @property
    def maximum_age(self) -> str | None:
        return self._get_str("eligibilityModule", "maximumAge")

    @property
    def sex(self) -> str | None:
        return self._get_str("eligibilityModule", "sex")

    @property
    def healthy_volunteers(self) -> bool | None:
        value = self._get("eligibilityModule", "healthyVolunteers")
        return value if isinstance(value, bool) else None

    @property
    def eligibility_criteria(self) -> str | None:
        return self._get_str("eligibilityModule", "eligibilityCriteria")

    # ------------------------------------------------------------------
    # Conditions / sites / contacts
    # ------------------------------------------------------------------

    @property
    def conditions(self) -> list[str]:
        values = _as_list(self._get("conditionsModule", "conditions")) or []
        return [c for c in values if isinstance(c, str)]

    @property
    def locations(self) -> list[dict[str, Any]]:
        values = _as_list(self._get("contactsLocationsModule", "locations")) or []
        return [loc for loc in values if isinstance(loc, dict)]

    @property
    def central_contacts(self) -> list[dict[str, Any]]:
        values = _as_list(self._get("contactsLocationsModule", "centralContacts")) or []
        return [c for c in values if isinstance(c, dict)]

    # ------------------------------------------------------------------
    # Sponsor / design / interventions
    # ------------------------------------------------------------------

    @property
    def lead_sponsor_name(self) -> str | None:
        return self._get_str("sponsorCollaboratorsModule", "leadSponsor", "name")

    @property
    def lead_sponsor_class(self) -> str | None:
        return self._get_str("sponsorCollaboratorsModule", "leadSponsor", "class")

    @property
    def phases(self) -> list[str] | None:
        values = _as_list(self._get("designModule", "phases"))
        if values is None:
            return None
        return [p for p in values if isinstance(p, str)]

    @property
    def study_type(self) -> str | None:
        return self._get_str("designModule", "studyType")

    @property
    def enrollment_count(self) -> int | None:
        value = self._get("designModule", "enrollmentInfo", "count")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return int(value)

    @property
    def interventions(self) -> list[dict[str, Any]] | None:
        values = _as_list(self._get("armsInterventionsModule", "interventions"))
        if values is None:
            return None
        return [i for i in values if isinstance(i, dict)]

    @property
    def has_results(self) -> bool:
        return self.raw.get("hasResults") is True

    @property
    def results_section(self) -> dict[str, Any] | None:
        return _as_dict(self.raw.get("resultsSection"))


@dataclass(frozen=True)
class StudyQuery:
    """
    Search parameters for listing studies.

    Attributes map onto ClinicalTrials.gov API v2 query parameters:
        term -> query.term (full text), condition -> query.cond,
        intervention -> query.intr, sponsor -> query.spons,
        location -> query.locn, advanced_filter -> filter.advanced,
        status_filter -> filter.overallStatus, phase_filter -> AREA[Phase],
        geo_filter -> filter.geo.
    """

    term: str | None = None
    condition: str | None = None
    intervention: str | None = None
    sponsor: str | None = None
    location: str | None = None
    advanced_filter: str | None = None
    status_filter: tuple[str, ...] = ()
    phase_filter: tuple[str, ...] = ()
    geo_filter: str | None = None
    page_size: int = 10
    sort: str | None = None
    fields: tuple[str, ...] = ()

    def with_page_size(self, page_size: int) -> StudyQuery:
        """Return a copy requesting ``page_size`` studies per page."""
        return replace(self, page_size=page_size)


@dataclass
class StudyPage:
    """One page of studies as returned by a record source."""

    studies: list[dict[str, Any]] = field(default_factory=list)
    total_count: int | None = None
    next_page_token: str | None = None

    @property
    def has_more(self) -> bool:
        return bool(self.next_page_token)


@dataclass(frozen=True)
class FieldValue:
    """A distinct value of an API field with its study count."""

    value: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "count": self.count}


@runtime_checkable
class RecordSource(Protocol):
    """A paginated catalog of studies.

    Implementations own transport, timeouts and retries. Errors they raise
    are propagated to the caller unchanged.
    """

    async def list_studies(self, query: StudyQuery, page_token: str | None = None) -> StudyPage: ...


@runtime_checkable
class CancelSignal(Protocol):
    """Cooperative cancellation flag checked between page requests."""

    def is_cancelled(self) -> bool: ...

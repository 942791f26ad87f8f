"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from typing import Any

import pytest

from ctgov_search.domain.entities.matching import CandidateProfile, PatientLocation, Sex
from ctgov_search.domain.entities.study import StudyPage, StudyQuery

# ============================================================
# Study Record Fixtures
# ============================================================


def build_study(
    nct_id: str = "NCT00000001",
    title: str = "Test Study",
    conditions: list[str] | None = None,
    status: str | None = "RECRUITING",
    minimum_age: str | None = "18 Years",
    maximum_age: str | None = "65 Years",
    sex: str | None = "ALL",
    healthy_volunteers: bool | None = False,
    locations: list[dict[str, Any]] | None = None,
    phases: list[str] | None = None,
    enrollment: int | None = None,
    sponsor: str | None = "Test Sponsor",
    sponsor_class: str | None = "OTHER",
    study_type: str | None = "INTERVENTIONAL",
    start_date: str | None = "2023-05-01",
    interventions: list[dict[str, Any]] | None = None,
    contacts: list[dict[str, Any]] | None = None,
    with_eligibility: bool = True,
) -> dict[str, Any]:
    """Build a raw API v2 study dict. ``None`` leaves the field out."""
    protocol: dict[str, Any] = {
        "identificationModule": {"nctId": nct_id, "briefTitle": title},
        "conditionsModule": {"conditions": conditions if conditions is not None else ["Type 2 Diabetes"]},
        "contactsLocationsModule": {
            "locations": locations
            if locations is not None
            else [{"facility": "General Hospital", "city": "Boston", "state": "Massachusetts", "country": "United States"}],
        },
        "sponsorCollaboratorsModule": {"leadSponsor": {}},
        "designModule": {},
        "statusModule": {},
    }
    if status is not None:
        protocol["statusModule"]["overallStatus"] = status
    if start_date is not None:
        protocol["statusModule"]["startDateStruct"] = {"date": start_date}
    if sponsor is not None:
        protocol["sponsorCollaboratorsModule"]["leadSponsor"]["name"] = sponsor
    if sponsor_class is not None:
        protocol["sponsorCollaboratorsModule"]["leadSponsor"]["class"] = sponsor_class
    if phases is not None:
        protocol["designModule"]["phases"] = phases
    if enrollment is not None:
        protocol["designModule"]["enrollmentInfo"] = {"count": enrollment}
    if study_type is not None:
        protocol["designModule"]["studyType"] = study_type
    if interventions is not None:
        protocol["armsInterventionsModule"] = {"interventions": interventions}
    if contacts is not None:
        protocol["contactsLocationsModule"]["centralContacts"] = contacts

    if with_eligibility:
        eligibility: dict[str, Any] = {"eligibilityCriteria": "Inclusion Criteria:\n* Adults"}
        if minimum_age is not None:
            eligibility["minimumAge"] = minimum_age
        if maximum_age is not None:
            eligibility["maximumAge"] = maximum_age
        if sex is not None:
            eligibility["sex"] = sex
        if healthy_volunteers is not None:
            eligibility["healthyVolunteers"] = healthy_volunteers
        protocol["eligibilityModule"] = eligibility

    return {"protocolSection": protocol}


@pytest.fixture
def make_study():
    """Factory for raw study dicts."""
    return build_study


@pytest.fixture
def make_profile():
    """Factory for patient profiles (adult, US, type 2 diabetes by default)."""

    def _make(**overrides: Any) -> CandidateProfile:
        values: dict[str, Any] = {
            "age": 45,
            "sex": Sex.FEMALE,
            "conditions": ("Type 2 Diabetes",),
            "location": PatientLocation(country="United States", state="Massachusetts", city="Boston"),
        }
        values.update(overrides)
        return CandidateProfile(**values)

    return _make


# ============================================================
# Fake Record Source
# ============================================================


class FakeRecordSource:
    """
    Serves pre-built pages in order and records every call.

    Page tokens are "page-2", "page-3", ... so tests can assert on them.
    """

    def __init__(self, pages: list[list[dict[str, Any]]], total_count: int | None = None):
        self.pages = pages
        self.total_count = total_count if total_count is not None else sum(len(p) for p in pages)
        self.calls: list[tuple[StudyQuery, str | None]] = []

    async def list_studies(self, query: StudyQuery, page_token: str | None = None) -> StudyPage:
        self.calls.append((query, page_token))
        index = 0 if page_token is None else int(page_token.split("-")[1]) - 1
        studies = self.pages[index] if index < len(self.pages) else []
        next_token = f"page-{index + 2}" if index + 1 < len(self.pages) else None
        return StudyPage(studies=list(studies), total_count=self.total_count, next_page_token=next_token)


@pytest.fixture
def fake_source_factory():
    """Factory for FakeRecordSource."""
    return FakeRecordSource


@pytest.fixture
def no_sleep():
    """Awaitable sleep replacement that records requested delays."""
    delays: list[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep

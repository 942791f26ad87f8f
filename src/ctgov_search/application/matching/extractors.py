"""
Study extractors - display fields pulled out of raw study records.
"""

from __future__ import annotations

from ctgov_search.domain.entities.matching import (
    EligibilityHighlights,
    PatientLocation,
    StudyContact,
    StudyDetails,
    StudyLocation,
)
from ctgov_search.domain.entities.study import StudyRecord

CRITERIA_SNIPPET_LENGTH = 300


def _same(a: object, b: str | None) -> bool:
    return isinstance(a, str) and bool(a) and bool(b) and a.strip().lower() == b.strip().lower()


def extract_relevant_locations(record: StudyRecord, location: PatientLocation) -> list[StudyLocation]:
    """
    Sites in the patient's country, nearest administrative match first.

    Order: same city and state, then same state (or city), then the rest of
    the country. Sites keep their record order within each group.
    """
    relevant: list[tuple[int, StudyLocation]] = []
    for site in record.locations:
        if not _same(site.get("country"), location.country):
            continue

        same_state = _same(site.get("state"), location.state)
        same_city = _same(site.get("city"), location.city)
        if same_state and same_city:
            rank = 0
        elif same_state or same_city:
            rank = 1
        else:
            rank = 2

        relevant.append(
            (
                rank,
                StudyLocation(
                    facility=site.get("facility"),
                    city=site.get("city"),
                    state=site.get("state"),
                    country=site.get("country"),
                ),
            )
        )

    relevant.sort(key=lambda item: item[0])
    return [loc for _, loc in relevant]


def extract_contact_info(record: StudyRecord) -> StudyContact | None:
    """First central contact, or None when the study lists none."""
    for contact in record.central_contacts:
        name, phone, email = contact.get("name"), contact.get("phone"), contact.get("email")
        if name or phone or email:
            return StudyContact(name=name, phone=phone, email=email)
    return None


def extract_study_details(record: StudyRecord) -> StudyDetails:
    phases = record.phases
    return StudyDetails(
        status=record.overall_status or "Unknown",
        phases=tuple(phases) if phases is not None else None,
        enrollment_count=record.enrollment_count,
        sponsor=record.lead_sponsor_name,
    )


def extract_eligibility_highlights(record: StudyRecord) -> EligibilityHighlights:
    criteria = record.eligibility_criteria
    return EligibilityHighlights(
        age_range=f"{record.minimum_age or 'N/A'} - {record.maximum_age or 'N/A'}",
        sex=record.sex or "All",
        healthy_volunteers=record.healthy_volunteers,
        criteria_snippet=criteria[:CRITERIA_SNIPPET_LENGTH] if criteria else None,
    )

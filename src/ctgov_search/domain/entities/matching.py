"""
Matching Entities - Patient Profile and Trial Match Domain Model

Key Entities:
    - CandidateProfile: Demographic and condition input for one matching run
    - GateResult / GateChainResult: Outcome of the eligibility gates
    - ScoredTrialMatch: An eligible study with score, reasons and display fields
    - MatchResult: Ranked, truncated output of a matching run

All entities are created per invocation and never shared between runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ctgov_search.core.exceptions import InvalidParameterError

MAX_PATIENT_AGE = 120
MAX_MATCH_RESULTS = 50


class Sex(Enum):
    """Biological sex as used by ClinicalTrials.gov eligibility."""

    ALL = "All"
    FEMALE = "Female"
    MALE = "Male"

    @classmethod
    def parse(cls, value: str | Sex) -> Sex:
        """Parse "female", "FEMALE", "Female" etc."""
        if isinstance(value, Sex):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise InvalidParameterError("sex", value, "one of All, Female, Male")


@dataclass(frozen=True)
class PatientLocation:
    """Patient location. Only ``country`` is used as a hard filter."""

    country: str
    state: str | None = None
    city: str | None = None
    postal_code: str | None = None

    def __post_init__(self) -> None:
        if not self.country or not self.country.strip():
            raise InvalidParameterError("location.country", self.country, "a non-empty country name")

    @property
    def label(self) -> str:
        """Most specific location component available."""
        return self.city or self.state or self.country


@dataclass(frozen=True)
class CandidateProfile:
    """
    Patient profile matched against trial eligibility.

    Attributes:
        age: Age in whole years (0-120)
        sex: Biological sex
        conditions: Medical conditions or diagnoses (at least one)
        location: Patient location
        healthy_volunteer: Whether the patient is a healthy volunteer
        max_results: Maximum matching studies to return (1-50)
        recruiting_only: Only consider recruiting / not-yet-recruiting studies
    """

    age: int
    sex: Sex
    conditions: tuple[str, ...]
    location: PatientLocation
    healthy_volunteer: bool = False
    max_results: int = 10
    recruiting_only: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.age, bool) or not isinstance(self.age, int):
            raise InvalidParameterError("age", self.age, "an integer number of years")
        if not 0 <= self.age <= MAX_PATIENT_AGE:
            raise InvalidParameterError("age", self.age, f"0-{MAX_PATIENT_AGE}")
        if not isinstance(self.sex, Sex):
            object.__setattr__(self, "sex", Sex.parse(self.sex))
        conditions = tuple(c.strip() for c in self.conditions if c and c.strip())
        if not conditions:
            raise InvalidParameterError("conditions", list(self.conditions), "at least one condition")
        object.__setattr__(self, "conditions", conditions)
        if not 1 <= self.max_results <= MAX_MATCH_RESULTS:
            raise InvalidParameterError("max_results", self.max_results, f"1-{MAX_MATCH_RESULTS}")

    @property
    def summary(self) -> str:
        return f"{self.age} years old, {self.sex.value}"


@dataclass(frozen=True)
class GateResult:
    """Outcome of one eligibility gate. ``reason`` is always populated."""

    gate: str
    passed: bool
    reason: str


@dataclass(frozen=True)
class GateChainResult:
    """
    Outcome of the whole gate chain for one study.

    ``results`` holds every gate evaluated so far; when rejected, the last
    entry is the failing gate.
    """

    passed: bool
    results: tuple[GateResult, ...] = ()

    @classmethod
    def accepted(cls, results: list[GateResult]) -> GateChainResult:
        return cls(passed=True, results=tuple(results))

    @classmethod
    def rejected(cls, results: list[GateResult]) -> GateChainResult:
        return cls(passed=False, results=tuple(results))

    @property
    def failing_gate(self) -> str | None:
        if self.passed or not self.results:
            return None
        return self.results[-1].gate

    @property
    def reason(self) -> str | None:
        if self.passed or not self.results:
            return None
        return self.results[-1].reason


@dataclass(frozen=True)
class StudyLocation:
    """A study site."""

    facility: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class StudyContact:
    """Central contact for a study."""

    name: str | None = None
    phone: str | None = None
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class StudyDetails:
    """Study fields used for ranking and display."""

    status: str
    phases: tuple[str, ...] | None = None
    enrollment_count: int | None = None
    sponsor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status}
        if self.phases is not None:
            result["phase"] = list(self.phases)
        if self.enrollment_count is not None:
            result["enrollment_count"] = self.enrollment_count
        if self.sponsor is not None:
            result["sponsor"] = self.sponsor
        return result


@dataclass(frozen=True)
class EligibilityHighlights:
    """Eligibility excerpt shown next to a match."""

    age_range: str
    sex: str
    healthy_volunteers: bool | None = None
    criteria_snippet: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "age_range": self.age_range,
            "sex": self.sex,
            "healthy_volunteers": self.healthy_volunteers,
            "criteria_snippet": self.criteria_snippet,
        }


@dataclass
class ScoredTrialMatch:
    """
    An eligible study with its match score.

    Only built for studies that passed every gate and have a condition
    relevance above zero.
    """

    nct_id: str
    title: str
    match_score: int
    match_reasons: list[str]
    eligibility_highlights: EligibilityHighlights
    locations: list[StudyLocation]
    details: StudyDetails
    contact: StudyContact | None = None
    brief_summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "nct_id": self.nct_id,
            "title": self.title,
            "match_score": self.match_score,
            "match_reasons": list(self.match_reasons),
            "eligibility_highlights": self.eligibility_highlights.to_dict(),
            "locations": [loc.to_dict() for loc in self.locations],
            "study_details": self.details.to_dict(),
        }
        if self.brief_summary:
            result["brief_summary"] = self.brief_summary
        if self.contact:
            result["contact"] = self.contact.to_dict()
        return result


@dataclass
class MatchResult:
    """Ranked output of a matching run."""

    eligible_studies: list[ScoredTrialMatch]
    total_matches: int
    conditions: tuple[str, ...]
    location: str
    patient: str
    total_available: int | None = None
    evaluated: int = 0

    @property
    def was_truncated(self) -> bool:
        return self.total_available is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "eligible_studies": [s.to_dict() for s in self.eligible_studies],
            "total_matches": self.total_matches,
            "search_criteria": {
                "conditions": list(self.conditions),
                "location": self.location,
                "patient": self.patient,
            },
        }
        if self.total_available is not None:
            result["total_available"] = self.total_available
        return result

"""
Eligibility Gatekeeper - Demographic hard filters for trial matching.

Four independent gates run in a fixed order against each study:

1. Age: patient age within the study's minimum/maximum age (inclusive)
2. Sex: study accepts all sexes or exactly the patient's sex
3. Healthy volunteers: a healthy volunteer is rejected only by studies that
   explicitly exclude healthy volunteers
4. Location: at least one site in the patient's country

The first failing gate ends evaluation for that study. A study without an
eligibility module is rejected before any gate runs.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from ctgov_search.core.exceptions import InsufficientDataError
from ctgov_search.domain.entities.matching import (
    CandidateProfile,
    GateChainResult,
    GateResult,
    Sex,
)
from ctgov_search.domain.entities.study import StudyRecord

from .extractors import extract_relevant_locations

logger = logging.getLogger(__name__)

# Conversion factors to years for the units used in minimumAge/maximumAge
_AGE_UNITS: dict[str, float] = {
    "year": 1.0,
    "month": 1.0 / 12,
    "week": 7.0 / 365,
    "day": 1.0 / 365,
    "hour": 1.0 / (365 * 24),
    "minute": 1.0 / (365 * 24 * 60),
}

_AGE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)?\s*$")

Gate = Callable[[StudyRecord, CandidateProfile], GateResult]


def parse_age(value: str | None) -> float | None:
    """
    Parse an age string like "18 Years" or "6 Months" into years.

    A bare number is read as years. Returns None for missing or
    unparseable values so the bound is treated as unconstrained.

    Example:
        >>> parse_age("18 Years")
        18.0
        >>> parse_age("6 Months")
        0.5
        >>> parse_age(None) is None
        True
    """
    if not value:
        return None
    match = _AGE_PATTERN.match(value)
    if not match:
        return None
    number = float(match.group(1))
    unit = (match.group(2) or "years").lower().rstrip("s")
    factor = _AGE_UNITS.get(unit)
    if factor is None:
        return None
    return number * factor


def check_age_eligibility(minimum_age: str | None, maximum_age: str | None, age: int) -> GateResult:
    """Check patient age against the study's inclusive age bounds."""
    min_years = parse_age(minimum_age)
    max_years = parse_age(maximum_age)

    if min_years is not None and age < min_years:
        return GateResult("age", False, f"Age {age} is below minimum age ({minimum_age})")
    if max_years is not None and age > max_years:
        return GateResult("age", False, f"Age {age} is above maximum age ({maximum_age})")

    if min_years is None and max_years is None:
        return GateResult("age", True, "No age restrictions")
    return GateResult(
        "age",
        True,
        f"Age within range ({minimum_age or 'No minimum'} - {maximum_age or 'No maximum'})",
    )


def check_sex_eligibility(study_sex: str | None, patient_sex: Sex) -> GateResult:
    """Study sex "All" (or missing) accepts anyone; otherwise exact match."""
    if not study_sex or study_sex.strip().lower() == Sex.ALL.value.lower():
        return GateResult("sex", True, "Study accepts all sexes")
    if study_sex.strip().lower() == patient_sex.value.lower():
        return GateResult("sex", True, f"Study accepts {patient_sex.value.lower()} participants")
    return GateResult("sex", False, f"Study is restricted to {study_sex.strip().lower()} participants")


def check_healthy_volunteer_eligibility(accepts_healthy: bool | None, is_healthy_volunteer: bool) -> GateResult:
    """Fail only when the study excludes healthy volunteers and the patient is one."""
    if is_healthy_volunteer and accepts_healthy is False:
        return GateResult("healthy_volunteer", False, "Study does not accept healthy volunteers")
    if is_healthy_volunteer:
        return GateResult("healthy_volunteer", True, "Study accepts healthy volunteers")
    return GateResult("healthy_volunteer", True, "Eligibility status matches study requirements")


def _require_eligibility(record: StudyRecord) -> None:
    if record.eligibility is None:
        raise InsufficientDataError(record.nct_id, "eligibility information")


def _age_gate(record: StudyRecord, profile: CandidateProfile) -> GateResult:
    return check_age_eligibility(record.minimum_age, record.maximum_age, profile.age)


def _sex_gate(record: StudyRecord, profile: CandidateProfile) -> GateResult:
    return check_sex_eligibility(record.sex, profile.sex)


def _healthy_volunteer_gate(record: StudyRecord, profile: CandidateProfile) -> GateResult:
    return check_healthy_volunteer_eligibility(record.healthy_volunteers, profile.healthy_volunteer)


def _location_gate(record: StudyRecord, profile: CandidateProfile) -> GateResult:
    country = profile.location.country
    matching = extract_relevant_locations(record, profile.location)
    if matching:
        return GateResult("location", True, f"{len(matching)} location(s) in {country}")
    return GateResult("location", False, f"No locations in {country}")


DEFAULT_GATES: tuple[Gate, ...] = (
    _age_gate,
    _sex_gate,
    _healthy_volunteer_gate,
    _location_gate,
)


class EligibilityGatekeeper:
    """
    Runs the eligibility gates against a study, first failure wins.

    Example:
        >>> gatekeeper = EligibilityGatekeeper()
        >>> outcome = gatekeeper.evaluate(StudyRecord(study), profile)
        >>> outcome.passed, outcome.failing_gate
    """

    def __init__(self, gates: tuple[Gate, ...] = DEFAULT_GATES) -> None:
        self._gates = gates

    def evaluate(self, record: StudyRecord, profile: CandidateProfile) -> GateChainResult:
        try:
            _require_eligibility(record)
        except InsufficientDataError as e:
            logger.debug(f"Skipping study: {e}")
            return GateChainResult.rejected([GateResult("eligibility", False, f"Insufficient data: {e}")])

        results: list[GateResult] = []
        for gate in self._gates:
            outcome = gate(record, profile)
            results.append(outcome)
            if not outcome.passed:
                logger.debug(f"Study {record.nct_id} rejected by {outcome.gate} gate: {outcome.reason}")
                return GateChainResult.rejected(results)

        return GateChainResult.accepted(results)

"""
TrialMatcher - Patient-to-trial eligibility matching.

Pipeline:
    profile → condition query → PageAccumulator (first slice only)
            → EligibilityGatekeeper → condition relevance → match score
            → rank_studies → top ``max_results``

The condition query targets the condition/synonym index (``query.cond``)
rather than full text, which keeps studies that merely mention a condition
in their exclusion criteria out of the candidate set.
"""

from __future__ import annotations

import logging

from ctgov_search.domain.entities.matching import (
    CandidateProfile,
    MatchResult,
    ScoredTrialMatch,
)
from ctgov_search.domain.entities.study import CancelSignal, StudyQuery, StudyRecord

from .eligibility import EligibilityGatekeeper
from .extractors import (
    extract_contact_info,
    extract_eligibility_highlights,
    extract_relevant_locations,
    extract_study_details,
)
from .pagination import PageAccumulator
from .scoring import calculate_condition_relevance, calculate_match_score, rank_studies

logger = logging.getLogger(__name__)

DEFAULT_MATCH_PAGE_SIZE = 100
RECRUITING_STATUSES = ("RECRUITING", "NOT_YET_RECRUITING")


def build_condition_query(conditions: tuple[str, ...] | list[str]) -> str:
    """
    OR-join conditions, quoting multi-word ones and escaping embedded quotes.

    Example:
        >>> build_condition_query(["Type 2 Diabetes", "Hypertension"])
        '"Type 2 Diabetes" OR Hypertension'
    """
    parts = []
    for condition in conditions:
        escaped = condition.replace('"', '\\"')
        parts.append(f'"{escaped}"' if " " in condition else escaped)
    return " OR ".join(parts)


class TrialMatcher:
    """
    Finds and ranks trials a patient is eligible for.

    Args:
        accumulator: Page accumulator bound to a record source
        gatekeeper: Eligibility gate chain
        page_size: Number of candidate studies evaluated per run
    """

    def __init__(
        self,
        accumulator: PageAccumulator,
        gatekeeper: EligibilityGatekeeper | None = None,
        page_size: int = DEFAULT_MATCH_PAGE_SIZE,
    ) -> None:
        self._accumulator = accumulator
        self._gatekeeper = gatekeeper or EligibilityGatekeeper()
        self._page_size = page_size

    def build_query(self, profile: CandidateProfile, base: StudyQuery | None = None) -> StudyQuery:
        base = base or StudyQuery()
        return StudyQuery(
            term=base.term,
            condition=build_condition_query(profile.conditions),
            intervention=base.intervention,
            sponsor=base.sponsor,
            location=base.location,
            advanced_filter=base.advanced_filter,
            status_filter=RECRUITING_STATUSES if profile.recruiting_only else base.status_filter,
            phase_filter=base.phase_filter,
            geo_filter=base.geo_filter,
            page_size=self._page_size,
            sort=base.sort,
            fields=base.fields,
        )

    async def match_eligible_trials(
        self,
        profile: CandidateProfile,
        query: StudyQuery | None = None,
        cancel_signal: CancelSignal | None = None,
    ) -> MatchResult:
        """
        Match ``profile`` against the catalog.

        Args:
            profile: Patient profile (carries max_results / recruiting_only)
            query: Optional extra search parameters; the condition query and
                   recruiting filter are always derived from the profile
            cancel_signal: Optional cancellation flag

        Returns:
            MatchResult with ranked studies truncated to ``max_results``.
            ``total_available`` is set only when the catalog held more
            studies than were evaluated.
        """
        search = self.build_query(profile, query)
        logger.info(f"Searching for studies with conditions: {search.condition}")

        fetched = await self._accumulator.accumulate(
            search,
            page_size=self._page_size,
            cancel_signal=cancel_signal,
            max_records=self._page_size,
        )
        evaluated = len(fetched.studies)
        if fetched.was_truncated:
            logger.warning(
                f"Query matched {fetched.total_count} studies but only {evaluated} were evaluated for eligibility"
            )

        eligible = self.filter_by_eligibility(fetched.studies, profile)
        logger.info(f"{len(eligible)} of {evaluated} studies passed eligibility checks")

        ranked = rank_studies(eligible)
        return MatchResult(
            eligible_studies=ranked[: profile.max_results],
            total_matches=len(eligible),
            total_available=fetched.total_count if fetched.was_truncated else None,
            evaluated=evaluated,
            conditions=profile.conditions,
            location=profile.location.label,
            patient=profile.summary,
        )

    def filter_by_eligibility(self, studies: list[dict], profile: CandidateProfile) -> list[ScoredTrialMatch]:
        """Score every study that passes all gates and has relevance > 0."""
        eligible: list[ScoredTrialMatch] = []
        for study in studies:
            match = self.score_study(StudyRecord(study), profile)
            if match is not None:
                eligible.append(match)
        return eligible

    def score_study(self, record: StudyRecord, profile: CandidateProfile) -> ScoredTrialMatch | None:
        outcome = self._gatekeeper.evaluate(record, profile)
        if not outcome.passed:
            return None

        study_conditions = record.conditions
        relevance = calculate_condition_relevance(study_conditions, profile.conditions)
        if relevance == 0:
            logger.debug(f"Excluding study with zero condition relevance: {record.nct_id} {study_conditions}")
            return None

        reasons = [result.reason for result in outcome.results]
        reasons.append(f"Condition relevance: {round(relevance * 100)}% ({', '.join(study_conditions)})")

        return ScoredTrialMatch(
            nct_id=record.nct_id or "Unknown",
            title=record.brief_title or "No title",
            brief_summary=record.brief_summary,
            match_score=calculate_match_score(relevance, outcome.results),
            match_reasons=reasons,
            eligibility_highlights=extract_eligibility_highlights(record),
            locations=extract_relevant_locations(record, profile.location),
            contact=extract_contact_info(record),
            details=extract_study_details(record),
        )

"""
Trial Matching - eligibility gates, relevance scoring and ranking.

Usage:
    from ctgov_search.application.matching import PageAccumulator, TrialMatcher

    matcher = TrialMatcher(PageAccumulator(source))
    result = await matcher.match_eligible_trials(profile)
"""

from .eligibility import (
    EligibilityGatekeeper,
    check_age_eligibility,
    check_healthy_volunteer_eligibility,
    check_sex_eligibility,
    parse_age,
)
from .extractors import (
    extract_contact_info,
    extract_eligibility_highlights,
    extract_relevant_locations,
    extract_study_details,
)
from .matcher import TrialMatcher, build_condition_query
from .pagination import AccumulatedStudies, CancellationToken, PageAccumulator
from .scoring import (
    calculate_condition_relevance,
    calculate_match_score,
    get_phase_weight,
    normalize_tokens,
    rank_studies,
)

__all__ = [
    # Pagination
    "PageAccumulator",
    "AccumulatedStudies",
    "CancellationToken",
    # Eligibility
    "EligibilityGatekeeper",
    "parse_age",
    "check_age_eligibility",
    "check_sex_eligibility",
    "check_healthy_volunteer_eligibility",
    # Scoring / ranking
    "normalize_tokens",
    "calculate_condition_relevance",
    "calculate_match_score",
    "get_phase_weight",
    "rank_studies",
    # Extractors
    "extract_relevant_locations",
    "extract_contact_info",
    "extract_study_details",
    "extract_eligibility_highlights",
    # Matching
    "TrialMatcher",
    "build_condition_query",
]

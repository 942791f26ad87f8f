"""
Relevance, Match Scoring and Ranking for Trial Matching.

1. **Condition relevance** - asymmetric token overlap between the study's
   listed conditions and the patient's conditions, in [0, 1]
   - Per patient condition: best |shared tokens| / |patient tokens| over all
     study conditions; result is the mean over patient conditions
   - 0 means the study only matched the full-text search incidentally

2. **Match score** - integer 0-100
   - Formula: round(relevance × 60 + passed_gates / total_gates × 40)

3. **Ranking** - stable sort, descending, by
   match score → relevant site count → highest phase → enrollment target

Architecture:
    Stateless functions. They never touch the network and hold no state
    between calls.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence

from ctgov_search.domain.entities.matching import GateResult, ScoredTrialMatch

CONDITION_WEIGHT = 60
DEMOGRAPHIC_WEIGHT = 40
MAX_MATCH_SCORE = 100

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

# Phase label (upper-cased, spaces/underscores removed) -> ordinal
PHASE_WEIGHTS: dict[str, int] = {
    "PHASE4": 4,
    "PHASE3": 3,
    "PHASE2": 2,
    "PHASE1": 1,
    "N/A": 0,
    "NA": 0,
    "NOTAPPLICABLE": 0,
}


# =============================================================================
# Condition relevance
# =============================================================================


def normalize_tokens(text: str) -> set[str]:
    """
    Lowercase, replace non-alphanumerics with spaces, drop 1-char tokens.

    Example:
        >>> sorted(normalize_tokens("Diabetes Mellitus, Type 2"))
        ['diabetes', 'mellitus', 'type']
    """
    cleaned = _NON_ALNUM.sub(" ", text.lower())
    return {token for token in cleaned.split() if len(token) > 1}


def calculate_condition_relevance(
    study_conditions: Sequence[str],
    patient_conditions: Sequence[str],
) -> float:
    """
    Score how well a study's conditions cover the patient's conditions.

    The denominator is the patient condition's token count only, so a study
    condition that mentions every patient token scores 1.0 no matter how
    many extra tokens it carries.

    Args:
        study_conditions: Conditions listed on the study
        patient_conditions: Conditions the patient reported

    Returns:
        Relevance in [0, 1]; 0 when either list is empty

    Example:
        >>> calculate_condition_relevance(["Diabetes Mellitus, Type 2", "Hyperglycemia"], ["Type 2 Diabetes"])
        1.0
    """
    if not study_conditions or not patient_conditions:
        return 0.0

    study_token_sets = [normalize_tokens(c) for c in study_conditions]

    total = 0.0
    for condition in patient_conditions:
        patient_tokens = normalize_tokens(condition)
        if not patient_tokens:
            continue
        best = max(len(patient_tokens & study_tokens) / len(patient_tokens) for study_tokens in study_token_sets)
        total += best

    return total / len(patient_conditions)


# =============================================================================
# Match score
# =============================================================================


def calculate_match_score(condition_relevance: float, gate_results: Sequence[GateResult]) -> int:
    """
    Combine condition relevance (0-60) with the share of passed gates (0-40).

    With every gate passed the demographic term is the full 40; the
    proportion is kept so partially eligible studies could be scored too.
    Rounds half up.

    Example:
        >>> calculate_match_score(0.85, [GateResult("age", True, "ok")] * 4)
        91
    """
    relevance = min(max(condition_relevance, 0.0), 1.0)
    condition_score = relevance * CONDITION_WEIGHT

    if gate_results:
        passed = sum(1 for result in gate_results if result.passed)
        demographic_score = passed / len(gate_results) * DEMOGRAPHIC_WEIGHT
    else:
        demographic_score = 0.0

    score = math.floor(condition_score + demographic_score + 0.5)
    return min(max(score, 0), MAX_MATCH_SCORE)


# =============================================================================
# Ranking
# =============================================================================


def get_phase_weight(phases: Sequence[str] | None) -> int:
    """
    Highest phase ordinal across a (possibly multi-phase) study.

    Accepts API labels ("PHASE3") and display labels ("Phase 3").
    "N/A", "Not Applicable" and unrecognised labels weigh 0.

    Example:
        >>> get_phase_weight(["PHASE1", "PHASE2"])
        2
        >>> get_phase_weight(None)
        0
    """
    if not phases:
        return 0
    return max(PHASE_WEIGHTS.get(re.sub(r"[\s_]", "", phase.upper()), 0) for phase in phases)


def ranking_key(match: ScoredTrialMatch) -> tuple[int, int, int, int]:
    """Sort key, larger is better."""
    return (
        match.match_score,
        len(match.locations),
        get_phase_weight(match.details.phases),
        match.details.enrollment_count or 0,
    )


def rank_studies(matches: Sequence[ScoredTrialMatch]) -> list[ScoredTrialMatch]:
    """
    Rank eligible studies, best first.

    Python's sort is stable, so studies tied on every key keep their input
    order.
    """
    return sorted(matches, key=ranking_key, reverse=True)

"""
Domain Entities

Core business objects for trial matching and trend analysis.
"""

from __future__ import annotations

from .matching import (
    CandidateProfile,
    EligibilityHighlights,
    GateChainResult,
    GateResult,
    MatchResult,
    PatientLocation,
    ScoredTrialMatch,
    Sex,
    StudyContact,
    StudyDetails,
    StudyLocation,
)
from .study import (
    OVERALL_STATUSES,
    STUDY_PHASES,
    CancelSignal,
    FieldValue,
    RecordSource,
    StudyPage,
    StudyQuery,
    StudyRecord,
)
from .trends import Dimension, TrendResult

__all__ = [
    # Study entities
    "StudyRecord",
    "StudyQuery",
    "StudyPage",
    "FieldValue",
    "RecordSource",
    "CancelSignal",
    "OVERALL_STATUSES",
    "STUDY_PHASES",
    # Matching entities
    "CandidateProfile",
    "PatientLocation",
    "Sex",
    "GateResult",
    "GateChainResult",
    "ScoredTrialMatch",
    "StudyLocation",
    "StudyContact",
    "StudyDetails",
    "EligibilityHighlights",
    "MatchResult",
    # Trend entities
    "Dimension",
    "TrendResult",
]

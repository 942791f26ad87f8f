"""
Domain Layer - Core Business Objects

Contains:
- entities: Study records, patient profiles, matches and trend results
"""

from .entities import (
    CandidateProfile,
    Dimension,
    MatchResult,
    PatientLocation,
    ScoredTrialMatch,
    Sex,
    StudyPage,
    StudyQuery,
    StudyRecord,
    TrendResult,
)

__all__ = [
    "StudyRecord",
    "StudyQuery",
    "StudyPage",
    "CandidateProfile",
    "PatientLocation",
    "Sex",
    "ScoredTrialMatch",
    "MatchResult",
    "Dimension",
    "TrendResult",
]

"""
ClinicalTrials.gov Search - Trial matching and trend analysis

Finds trials a patient is likely eligible for, ranks them, and aggregates
statistics over large study sets from the ClinicalTrials.gov API v2.

Usage:
    from ctgov_search import ClinicalTrialsGovSource, PageAccumulator, TrialMatcher

    async with ClinicalTrialsGovSource() as source:
        matcher = TrialMatcher(PageAccumulator(source))
        result = await matcher.match_eligible_trials(profile)

Features:
    - Eligibility gates: age, sex, healthy volunteers, site country
    - Condition relevance scoring and multi-key ranking
    - Paced, cancellable pagination with a study quota
    - Trend counts by status, country, sponsor, phase, date, type
    - MCP server exposing all of the above as tools
"""

from .application.matching import PageAccumulator, TrialMatcher
from .application.trends import TrendAggregator, TrendAnalyzer
from .domain.entities import CandidateProfile, Dimension, PatientLocation, Sex, StudyQuery
from .infrastructure.sources import ClinicalTrialsGovSource

__version__ = "0.1.0"

__all__ = [
    "ClinicalTrialsGovSource",
    "PageAccumulator",
    "TrialMatcher",
    "TrendAggregator",
    "TrendAnalyzer",
    "CandidateProfile",
    "PatientLocation",
    "Sex",
    "Dimension",
    "StudyQuery",
]

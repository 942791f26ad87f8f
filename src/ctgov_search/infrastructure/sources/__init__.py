"""
Record Sources - External study catalogs.

Currently supported:
- ClinicalTrials.gov API v2
"""

from .clinical_trials import (
    BASE_URL,
    DEFAULT_TIMEOUT,
    ClinicalTrialsGovSource,
    build_params,
    build_phase_filter,
    normalize_nct_id,
)

__all__ = [
    "ClinicalTrialsGovSource",
    "BASE_URL",
    "DEFAULT_TIMEOUT",
    "build_params",
    "build_phase_filter",
    "normalize_nct_id",
]

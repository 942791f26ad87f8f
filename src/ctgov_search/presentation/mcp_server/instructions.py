"""
MCP Server Instructions - Usage guide for AI agents.

Kept out of server.py so it can be maintained and reviewed on its own.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
ClinicalTrials.gov Search MCP Server - clinical trial discovery for AI agents

═══════════════════════════════════════════════════════════════════════════════
🎯 CHOOSING A TOOL
═══════════════════════════════════════════════════════════════════════════════

## 1️⃣ A specific patient wants to know which trials they could join
───────────────────────────────────────────────────────────────────────────────
Call find_eligible_studies() with age, sex, conditions and country.
Results are screened on structured fields only (age range, sex, healthy
volunteers, site country). Always tell the user the full eligibility
criteria still decide and a study team must confirm.

```
find_eligible_studies(age=52, sex="Female", conditions="Breast Cancer", country="United States", state="Texas")
```

## 2️⃣ The user asks "how many", "which countries", "what phases"
───────────────────────────────────────────────────────────────────────────────
Call analyze_trends(). Every matching study is downloaded, so broad queries
are refused above the study limit (default 5000). Narrow with query/filter.

```
analyze_trends(analysis_type="countByPhase,countBySponsorType", query="CAR-T lymphoma")
```

## 3️⃣ The user wants to browse or look up studies
───────────────────────────────────────────────────────────────────────────────
- search_studies(): one page at a time, pass page_token for the next page
- get_study(): full record for up to 5 NCT IDs
- get_field_values(): valid values for a field before filtering

## 4️⃣ The user asks what a completed study found
───────────────────────────────────────────────────────────────────────────────
Call get_study_results() for up to 5 NCT IDs. Only studies that posted
results have outcomes, adverse events, participant flow and baseline data.

```
get_study_results(nct_ids="NCT04280705", sections="outcomes,adverseEvents")
```

═══════════════════════════════════════════════════════════════════════════════
⚠️ NOTES
═══════════════════════════════════════════════════════════════════════════════
- Status values: RECRUITING, NOT_YET_RECRUITING, ACTIVE_NOT_RECRUITING,
  COMPLETED, TERMINATED, WITHDRAWN, SUSPENDED, ...
- Phase values: EARLY_PHASE1, PHASE1, PHASE2, PHASE3, PHASE4, NA
- Rate limited responses are reported, not retried. Wait and call again.
- Trend analyses stop at the paging time limit (default 120 s).
"""

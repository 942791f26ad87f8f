"""
Eligibility MCP Tools - Patient-to-Trial Matching

Provides:
- find_eligible_studies: Match a patient profile against recruiting trials

The tool evaluates the first page of condition matches (100 studies) against
age, sex, healthy-volunteer and country gates, scores survivors by condition
relevance and returns them ranked.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Union

from ctgov_search.core.exceptions import CtgovSearchError
from ctgov_search.domain.entities.matching import (
    MAX_MATCH_RESULTS,
    CandidateProfile,
    MatchResult,
    PatientLocation,
    ScoredTrialMatch,
    Sex,
)

from ._common import InputNormalizer, ResponseFormatter

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ctgov_search.application.matching.matcher import TrialMatcher

logger = logging.getLogger(__name__)

MAX_LOCATIONS_SHOWN = 3


def format_study_match(index: int, study: ScoredTrialMatch) -> str:
    """Render one ranked match as a Markdown section."""
    highlights = study.eligibility_highlights
    details = study.details

    lines = [
        f"## {index}. {study.title}",
        f"**NCT ID:** {study.nct_id}",
        "",
        f"**Match Score:** {study.match_score}/100",
        "",
        "**Why You Match:**",
        *(f"- {reason}" for reason in study.match_reasons),
        "",
        "**Eligibility Summary:**",
        f"- Age Range: {highlights.age_range}",
        f"- Sex: {highlights.sex}",
        f"- Healthy Volunteers: {'Yes' if highlights.healthy_volunteers else 'No'}",
        "",
    ]
    if study.brief_summary:
        lines += ["**Study Summary:**", study.brief_summary, ""]

    lines += [
        "**Study Details:**",
        f"- Phase: {', '.join(details.phases) if details.phases else 'N/A'}",
        f"- Status: {details.status}",
        f"- Sponsor: {details.sponsor or 'N/A'}",
    ]
    if details.enrollment_count:
        lines.append(f"- Target Enrollment: {details.enrollment_count}")

    lines += ["", f"**Nearby Locations ({len(study.locations)}):**"]
    for loc in study.locations[:MAX_LOCATIONS_SHOWN]:
        lines.append(f"- {loc.facility or 'Unknown facility'} - {loc.city or 'N/A'}, {loc.state or 'N/A'}")
    if len(study.locations) > MAX_LOCATIONS_SHOWN:
        lines.append(f"- ...and {len(study.locations) - MAX_LOCATIONS_SHOWN} more locations")

    if study.contact:
        contact = f"**Contact:** {study.contact.name or 'N/A'}"
        if study.contact.phone:
            contact += f" | {study.contact.phone}"
        if study.contact.email:
            contact += f" | {study.contact.email}"
        lines += ["", contact]

    lines += ["", "---", ""]
    return "\n".join(lines)


def format_match_result(result: MatchResult) -> str:
    """Render a MatchResult as a Markdown report."""
    shown = len(result.eligible_studies)
    lines = [
        "# Eligible Clinical Trials",
        "",
        f"Found **{result.total_matches}** matching studies for:",
        f"- **Conditions:** {', '.join(result.conditions)}",
        f"- **Location:** {result.location}",
        f"- **Patient:** {result.patient}",
        "",
    ]
    if result.was_truncated:
        lines += [
            f"> **Note:** {result.total_available} studies matched the query but only the first "
            f"{result.evaluated} were evaluated for eligibility. Narrow your search for more precise results.",
            "",
        ]
    lines += [
        f"Showing top {shown} {'result' if shown == 1 else 'results'}:",
        "",
        "---",
        "",
    ]
    body = [format_study_match(i, study) for i, study in enumerate(result.eligible_studies, 1)]
    return "\n".join(lines) + "".join(body)


def register_eligibility_tools(mcp: FastMCP, matcher: TrialMatcher) -> None:
    """Register patient matching tools (1 tool)."""

    @mcp.tool()
    async def find_eligible_studies(
        age: Union[int, str],
        sex: str,
        conditions: Union[str, list[str]],
        country: str,
        state: str | None = None,
        city: str | None = None,
        postal_code: str | None = None,
        healthy_volunteer: Union[bool, str] = False,
        max_results: Union[int, str] = 10,
        recruiting_only: Union[bool, str] = True,
        output_format: str = "markdown",
    ) -> str:
        """
        Find clinical trials a specific patient is likely eligible for.

        ═══════════════════════════════════════════════════════════════
        🎯 HOW MATCHING WORKS
        ═══════════════════════════════════════════════════════════════

        1. Search the condition index for any of the patient's conditions
        2. Evaluate the first 100 candidates against hard gates:
           age range → sex → healthy volunteers → site in country
        3. Score survivors by condition relevance (0-100)
        4. Rank by score, nearby sites, phase, enrollment target

        Screening only. The full eligibility criteria still decide.

        Args:
            age: Patient age in years (0-120)
            sex: "All", "Female" or "Male"
            conditions: One or more conditions, comma-separated or a list
                        Example: "Type 2 Diabetes, Hypertension"
            country: Patient country (sites in other countries are excluded)
            state: State or region, used to order nearby sites
            city: City, used to order nearby sites
            postal_code: Postal code (informational)
            healthy_volunteer: Patient is a healthy volunteer
            max_results: Maximum studies to return (1-50, default 10)
            recruiting_only: Only RECRUITING / NOT_YET_RECRUITING studies
            output_format: "markdown" (default) or "json"

        Returns:
            Ranked eligible studies with match reasons and nearby sites.

        Examples:
            find_eligible_studies(age=45, sex="Female", conditions="Breast Cancer", country="United States")
            find_eligible_studies(age=30, sex="Male", conditions=["Asthma"], country="Canada", city="Toronto")
        """
        try:
            try:
                age_value = int(age)
            except (TypeError, ValueError):
                return ResponseFormatter.error(
                    f"Invalid age: {age!r}",
                    suggestion="Provide age as a whole number of years (0-120)",
                    example='find_eligible_studies(age=45, sex="Female", conditions="Asthma", country="United States")',
                    tool_name="find_eligible_studies",
                )

            profile = CandidateProfile(
                age=age_value,
                sex=Sex.parse(sex),
                conditions=tuple(InputNormalizer.normalize_list(conditions)),
                location=PatientLocation(
                    country=InputNormalizer.normalize_query(country),
                    state=state.strip() if state else None,
                    city=city.strip() if city else None,
                    postal_code=postal_code.strip() if postal_code else None,
                ),
                healthy_volunteer=InputNormalizer.normalize_bool(healthy_volunteer),
                max_results=InputNormalizer.normalize_limit(max_results, default=10, max_val=MAX_MATCH_RESULTS),
                recruiting_only=InputNormalizer.normalize_bool(recruiting_only, default=True),
            )

            result = await matcher.match_eligible_trials(profile)

            if output_format == "json":
                return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

            if not result.eligible_studies:
                return ResponseFormatter.no_results(
                    query=f"{', '.join(profile.conditions)} ({profile.summary}, {profile.location.label})",
                    suggestions=[
                        "Set recruiting_only=False to include completed or active studies",
                        "Use broader condition names",
                        "Check the country spelling (e.g. 'United States')",
                    ],
                )
            return format_match_result(result)

        except CtgovSearchError as e:
            logger.warning(f"Eligibility matching failed: {e}")
            return ResponseFormatter.error(e, tool_name="find_eligible_studies")
        except Exception as e:
            logger.exception(f"Eligibility matching failed: {e}")
            return ResponseFormatter.error(
                error=str(e),
                suggestion="Check the patient profile or try again later",
                tool_name="find_eligible_studies",
            )

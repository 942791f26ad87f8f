"""
Study MCP Tools - Search and lookup on ClinicalTrials.gov

Provides:
- search_studies: One page of studies for a query, with a continuation token
- get_study: Full records or concise summaries for up to 5 NCT IDs
- get_field_values: Distinct values of an API field with study counts
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Union

from ctgov_search.core.exceptions import CtgovSearchError, InvalidParameterError
from ctgov_search.domain.entities.study import (
    OVERALL_STATUSES,
    STUDY_PHASES,
    StudyPage,
    StudyQuery,
    StudyRecord,
)

from ._common import InputNormalizer, ResponseFormatter

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ctgov_search.infrastructure.sources.clinical_trials import ClinicalTrialsGovSource

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200
MAX_NCT_IDS = 5
STUDIES_SHOWN = 5


def _validate_enum(param_name: str, values: list[str], allowed: tuple[str, ...]) -> tuple[str, ...]:
    invalid = [v for v in values if v not in allowed]
    if invalid:
        raise InvalidParameterError(param_name, ", ".join(invalid), "one of " + ", ".join(allowed))
    return tuple(values)


def summarize_study(study: dict[str, Any]) -> dict[str, Any]:
    """Concise view of a full study record."""
    record = StudyRecord(study)
    return {
        "nct_id": record.nct_id,
        "title": record.official_title or record.brief_title,
        "brief_summary": record.brief_summary,
        "overall_status": record.overall_status,
        "conditions": record.conditions,
        "interventions": [{"name": i.get("name"), "type": i.get("type")} for i in record.interventions or []],
        "lead_sponsor": record.lead_sponsor_name,
    }


def format_study_page(page: StudyPage) -> str:
    count = len(page.studies)
    summary = f"Found {count} {'study' if count == 1 else 'studies'}"
    if page.total_count:
        summary += f" of {page.total_count} total"
    if page.has_more:
        summary += " (more pages available)"

    lines = [summary, ""]
    for study in page.studies[:STUDIES_SHOWN]:
        record = StudyRecord(study)
        lines.append(f"• {record.nct_id or 'Unknown'}: {record.brief_title or 'No title'}")
        lines.append(f"  Status: {record.overall_status or 'Unknown status'}")
    if count > STUDIES_SHOWN:
        lines.append(f"...and {count - STUDIES_SHOWN} more")
    if page.has_more:
        lines += ["", f"Next page token: {page.next_page_token}"]
    return "\n".join(lines)


def format_study_summaries(summaries: list[dict[str, Any]], errors: list[dict[str, str]]) -> str:
    parts = [f"# {len(summaries)} Studies Retrieved", ""]
    if errors:
        parts += ["> **Errors:** " + "; ".join(f"{e['nct_id']}: {e['error']}" for e in errors), ""]
    for summary in summaries:
        parts.append(f"## {summary['nct_id'] or 'Unknown'}: {summary['title'] or 'No title'}")
        parts.append(f"- **Status:** {summary['overall_status'] or 'Unknown'}")
        if summary["conditions"]:
            parts.append(f"- **Conditions:** {', '.join(summary['conditions'])}")
        parts.append(f"- **Sponsor:** {summary['lead_sponsor'] or 'N/A'}")
        parts.append("")
    return "\n".join(parts)


def register_study_tools(mcp: FastMCP, source: ClinicalTrialsGovSource) -> None:
    """Register study search and lookup tools (3 tools)."""

    @mcp.tool()
    async def search_studies(
        query: str | None = None,
        condition_query: str | None = None,
        intervention_query: str | None = None,
        sponsor_query: str | None = None,
        filter: str | None = None,
        status_filter: Union[str, list[str], None] = None,
        phase_filter: Union[str, list[str], None] = None,
        country: str | None = None,
        state: str | None = None,
        city: str | None = None,
        geo_filter: str | None = None,
        page_size: Union[int, str] = 10,
        page_token: str | None = None,
        sort: str | None = None,
        fields: Union[str, list[str], None] = None,
        output_format: str = "text",
    ) -> str:
        """
        Search ClinicalTrials.gov and return one page of studies.

        ═══════════════════════════════════════════════════════════════
        QUERY PARAMETERS
        ═══════════════════════════════════════════════════════════════

        - query: Full text across all fields
        - condition_query: Condition / disease index (synonym aware)
        - intervention_query: Drug, device or procedure
        - sponsor_query: Lead sponsor or collaborator
        - filter: Advanced Essie expression,
                  e.g. "AREA[StartDate]RANGE[2023-01-01,MAX]"
        - status_filter: RECRUITING, COMPLETED, ... (comma-separated)
        - phase_filter: EARLY_PHASE1, PHASE1, PHASE2, PHASE3, PHASE4, NA
        - country / state / city: Site location text search
        - geo_filter: "distance(lat,lon,50mi)"

        Args:
            page_size: Studies per page (1-200, default 10)
            page_token: Token from a previous page
            sort: e.g. "LastUpdatePostDate:desc"
            fields: Restrict returned fields, e.g. "NCTId,BriefTitle"
            output_format: "text" (default) or "json"

        Returns:
            Page summary (first 5 studies) and the next page token, or JSON.

        Examples:
            search_studies(condition_query="Type 2 Diabetes", status_filter="RECRUITING")
            search_studies(intervention_query="semaglutide", phase_filter="PHASE3", page_size=50)
        """
        try:
            statuses = _validate_enum(
                "status_filter", InputNormalizer.normalize_enum_list(status_filter), OVERALL_STATUSES
            )
            phases = _validate_enum("phase_filter", InputNormalizer.normalize_enum_list(phase_filter), STUDY_PHASES)
            location = ", ".join(part.strip() for part in (city, state, country) if part and part.strip())

            search = StudyQuery(
                term=InputNormalizer.normalize_query(query) or None,
                condition=InputNormalizer.normalize_query(condition_query) or None,
                intervention=InputNormalizer.normalize_query(intervention_query) or None,
                sponsor=InputNormalizer.normalize_query(sponsor_query) or None,
                location=location or None,
                advanced_filter=InputNormalizer.normalize_query(filter) or None,
                status_filter=statuses,
                phase_filter=phases,
                geo_filter=geo_filter.strip() if geo_filter else None,
                page_size=InputNormalizer.normalize_limit(page_size, default=10, max_val=MAX_PAGE_SIZE),
                sort=sort.strip() if sort else None,
                fields=tuple(InputNormalizer.normalize_list(fields)),
            )

            page = await source.list_studies(search, page_token=page_token or None)

            if output_format == "json":
                return json.dumps(
                    {
                        "studies": page.studies,
                        "total_count": page.total_count,
                        "next_page_token": page.next_page_token,
                    },
                    indent=2,
                    ensure_ascii=False,
                )
            if not page.studies:
                return ResponseFormatter.no_results(
                    query=search.term or search.condition or search.intervention or "the given filters",
                    suggestions=["Remove status or phase filters", "Use broader terms", "Check spelling"],
                )
            return format_study_page(page)

        except CtgovSearchError as e:
            logger.warning(f"Study search failed: {e}")
            return ResponseFormatter.error(e, tool_name="search_studies")
        except Exception as e:
            logger.exception(f"Study search failed: {e}")
            return ResponseFormatter.error(
                error=str(e),
                suggestion="Check the query parameters or try again later",
                tool_name="search_studies",
            )

    @mcp.tool()
    async def get_study(
        nct_ids: Union[str, list[str]],
        summary_only: Union[bool, str] = False,
    ) -> str:
        """
        Fetch studies by NCT ID.

        Args:
            nct_ids: Up to 5 NCT IDs, comma-separated or a list
                     Example: "NCT04280705, NCT04368728"
            summary_only: Return concise summaries instead of full records

        Returns:
            One ID: full JSON record (or its summary).
            Several IDs: Markdown summaries; lookups that fail are listed
            as errors rather than failing the whole call.
        """
        ids = InputNormalizer.normalize_nct_ids(nct_ids)
        if not ids:
            return ResponseFormatter.error(
                "No NCT IDs provided",
                suggestion="Provide one or more NCT IDs",
                example='get_study(nct_ids="NCT04280705")',
                tool_name="get_study",
            )
        if len(ids) > MAX_NCT_IDS:
            return ResponseFormatter.error(
                f"Too many NCT IDs ({len(ids)})",
                suggestion=f"Request at most {MAX_NCT_IDS} studies per call",
                tool_name="get_study",
            )

        want_summary = InputNormalizer.normalize_bool(summary_only)
        studies: list[dict[str, Any]] = []
        errors: list[dict[str, str]] = []

        for nct_id in ids:
            try:
                study = await source.fetch_study(nct_id)
            except CtgovSearchError as e:
                logger.warning(f"Failed to fetch {nct_id}: {e}")
                errors.append({"nct_id": nct_id, "error": str(e)})
                continue
            except Exception as e:
                logger.exception(f"Failed to fetch {nct_id}: {e}")
                errors.append({"nct_id": nct_id, "error": str(e)})
                continue
            studies.append(summarize_study(study) if want_summary else study)

        if not studies:
            return ResponseFormatter.error(
                "; ".join(f"{e['nct_id']}: {e['error']}" for e in errors),
                suggestion="Check the NCT IDs (format: NCT followed by 8 digits)",
                tool_name="get_study",
            )
        if len(studies) == 1 and not errors:
            return json.dumps(studies[0], indent=2, ensure_ascii=False)

        summaries = studies if want_summary else [summarize_study(s) for s in studies]
        return format_study_summaries(summaries, errors)

    @mcp.tool()
    async def get_field_values(field_name: str) -> str:
        """
        List distinct values of a ClinicalTrials.gov field with study counts.

        Useful for discovering valid filter values.

        Args:
            field_name: API field name, e.g. "OverallStatus", "Phase",
                        "LeadSponsorClass", "InterventionType"

        Returns:
            Values sorted by study count, most common first.
        """
        field_name = InputNormalizer.normalize_query(field_name)
        if not field_name:
            return ResponseFormatter.error(
                "Empty field_name",
                suggestion="Provide an API field name",
                example='get_field_values(field_name="OverallStatus")',
                tool_name="get_field_values",
            )

        try:
            values = await source.get_field_values(field_name)
            if not values:
                return ResponseFormatter.no_results(
                    query=field_name,
                    suggestions=["Check the field name (PascalCase, e.g. 'OverallStatus')"],
                )

            values = sorted(values, key=lambda v: v.count, reverse=True)
            lines = [f"# Field Values: {field_name}", f"**{len(values)}** distinct values", ""]
            lines += [f"- **{v.value}**: {v.count:,} studies" for v in values]
            return "\n".join(lines)

        except CtgovSearchError as e:
            logger.warning(f"Field value lookup failed: {e}")
            return ResponseFormatter.error(e, tool_name="get_field_values")
        except Exception as e:
            logger.exception(f"Field value lookup failed: {e}")
            return ResponseFormatter.error(error=str(e), tool_name="get_field_values")

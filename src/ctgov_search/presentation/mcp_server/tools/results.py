"""
Results MCP Tools - Posted results of completed studies

Provides:
- get_study_results: Outcome measures, adverse events, participant flow and
  baseline characteristics for up to 5 NCT IDs

Only studies that have posted results carry a ``resultsSection``. Studies
without one are listed separately, and lookups that fail are reported per
NCT ID instead of failing the whole call.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Union

from ctgov_search.core.exceptions import CtgovSearchError, InvalidParameterError
from ctgov_search.domain.entities.study import StudyRecord

from ._common import InputNormalizer, ResponseFormatter
from .studies import MAX_NCT_IDS

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ctgov_search.infrastructure.sources.clinical_trials import ClinicalTrialsGovSource

logger = logging.getLogger(__name__)

RESULT_SECTIONS = ("outcomes", "adverseEvents", "participantFlow", "baseline")
BASELINE_MEASURES_SHOWN = 10

_SECTION_NAMES = {name.lower(): name for name in RESULT_SECTIONS}


def _dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _group_titles(groups: list[dict[str, Any]]) -> dict[Any, Any]:
    return {g.get("id"): g.get("title") or g.get("id") for g in groups}


def _groups(groups: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{"title": g.get("title"), "description": g.get("description")} for g in groups]


def _measurements(classes: Any, group_titles: dict[Any, Any]) -> list[dict[str, Any]]:
    """Flatten classes/categories into one row per category."""
    rows = []
    for cls in _dicts(classes):
        for category in _dicts(cls.get("categories")):
            rows.append(
                {
                    "category": category.get("title") or cls.get("title"),
                    "values": [
                        {
                            "group_title": group_titles.get(m.get("groupId"), m.get("groupId")),
                            "value": m.get("value"),
                            "spread": m.get("spread"),
                        }
                        for m in _dicts(category.get("measurements"))
                    ],
                }
            )
    return rows


def parse_sections(value: Any) -> tuple[str, ...]:
    """
    Normalize the requested result sections.

    Names are matched case-insensitively and may use underscores
    ("adverse_events"). No value selects every section.

    Raises:
        InvalidParameterError: Unknown section name
    """
    names = InputNormalizer.normalize_list(value)
    if not names:
        return RESULT_SECTIONS
    parsed = []
    for name in names:
        section = _SECTION_NAMES.get(name.replace("_", "").lower())
        if section is None:
            raise InvalidParameterError("sections", name, "one of " + ", ".join(RESULT_SECTIONS))
        parsed.append(section)
    return tuple(dict.fromkeys(parsed))


def extract_outcomes(module: dict[str, Any]) -> list[dict[str, Any]]:
    outcomes = []
    for measure in _dicts(module.get("outcomeMeasures")):
        groups = _dicts(measure.get("groups"))
        outcomes.append(
            {
                "type": measure.get("type"),
                "title": measure.get("title"),
                "description": measure.get("description"),
                "time_frame": measure.get("timeFrame"),
                "unit_of_measure": measure.get("unitOfMeasure"),
                "groups": _groups(groups),
                "measurements": _measurements(measure.get("classes"), _group_titles(groups)),
                "analyses": [
                    {"p_value": a.get("pValue"), "method": a.get("statisticalMethod")}
                    for a in _dicts(measure.get("analyses"))
                ],
            }
        )
    return outcomes


def extract_adverse_events(module: dict[str, Any]) -> dict[str, Any]:
    serious = module.get("seriousEvents")
    other = module.get("otherEvents")
    return {
        "time_frame": module.get("timeFrame"),
        "description": module.get("description"),
        "groups": [
            {
                "title": g.get("title"),
                "serious_num_affected": g.get("seriousNumAffected"),
                "serious_num_at_risk": g.get("seriousNumAtRisk"),
                "other_num_affected": g.get("otherNumAffected"),
                "other_num_at_risk": g.get("otherNumAtRisk"),
            }
            for g in _dicts(module.get("eventGroups"))
        ],
        "serious_event_count": len(serious) if isinstance(serious, list) else 0,
        "other_event_count": len(other) if isinstance(other, list) else 0,
    }


def extract_participant_flow(module: dict[str, Any]) -> dict[str, Any]:
    groups = _dicts(module.get("groups"))
    titles = _group_titles(groups)
    return {
        "groups": _groups(groups),
        "periods": [
            {
                "title": period.get("title"),
                "milestones": [
                    {
                        "type": milestone.get("type"),
                        "counts": [
                            {
                                "group_title": titles.get(a.get("groupId"), a.get("groupId")),
                                "subjects": a.get("numSubjects"),
                            }
                            for a in _dicts(milestone.get("achievements"))
                        ],
                    }
                    for milestone in _dicts(period.get("milestones"))
                ],
            }
            for period in _dicts(module.get("periods"))
        ],
    }


def extract_baseline(module: dict[str, Any]) -> dict[str, Any]:
    groups = _dicts(module.get("groups"))
    titles = _group_titles(groups)
    return {
        "groups": _groups(groups),
        "measures": [
            {
                "title": m.get("title"),
                "param_type": m.get("paramType"),
                "unit_of_measure": m.get("unitOfMeasure"),
                "measurements": _measurements(m.get("classes"), titles),
            }
            for m in _dicts(module.get("measures"))
        ],
    }


_SECTION_MODULES = {
    "outcomes": ("outcomeMeasuresModule", extract_outcomes),
    "adverseEvents": ("adverseEventsModule", extract_adverse_events),
    "participantFlow": ("participantFlowModule", extract_participant_flow),
    "baseline": ("baselineCharacteristicsModule", extract_baseline),
}

_RESULT_KEYS = {
    "outcomes": "outcomes",
    "adverseEvents": "adverse_events",
    "participantFlow": "participant_flow",
    "baseline": "baseline",
}


def extract_study_results(record: StudyRecord, sections: tuple[str, ...] = RESULT_SECTIONS) -> dict[str, Any]:
    """Pull the requested sections out of a study's ``resultsSection``."""
    results_section = record.results_section or {}
    result: dict[str, Any] = {
        "nct_id": record.nct_id,
        "title": record.brief_title,
        "has_results": record.has_results,
    }
    for section in sections:
        module_name, extract = _SECTION_MODULES[section]
        module = results_section.get(module_name)
        if isinstance(module, dict):
            result[_RESULT_KEYS[section]] = extract(module)
    return result


def _format_values(values: list[dict[str, Any]]) -> list[str]:
    lines = []
    for v in values:
        spread = f" ({v['spread']})" if v.get("spread") else ""
        lines.append(f"  - {v.get('group_title') or 'Group'}: {v.get('value') or 'N/A'}{spread}")
    return lines


def _format_outcomes(outcomes: list[dict[str, Any]]) -> list[str]:
    parts = [f"## Outcome Measures ({len(outcomes)})"]
    for outcome in outcomes:
        parts.append(f"### {outcome['type'] or 'Outcome'}: {outcome['title'] or 'Untitled'}")
        if outcome["description"]:
            parts.append(outcome["description"])
        if outcome["time_frame"]:
            parts.append(f"**Time Frame:** {outcome['time_frame']}")
        if outcome["unit_of_measure"]:
            parts.append(f"**Unit:** {outcome['unit_of_measure']}")
        for row in outcome["measurements"]:
            if row["category"]:
                parts.append(f"- {row['category']}")
            parts.extend(_format_values(row["values"]))
        for analysis in outcome["analyses"]:
            if analysis["p_value"]:
                parts.append(f"**p-value:** {analysis['p_value']} ({analysis['method'] or 'method not specified'})")
        parts.append("")
    return parts


def _format_adverse_events(events: dict[str, Any]) -> list[str]:
    parts = ["## Adverse Events"]
    if events["time_frame"]:
        parts.append(f"**Time Frame:** {events['time_frame']}")
    for group in events["groups"]:
        counts = []
        if group["serious_num_affected"] is not None:
            counts.append(f"{group['serious_num_affected']}/{group['serious_num_at_risk']} serious")
        if group["other_num_affected"] is not None:
            counts.append(f"{group['other_num_affected']}/{group['other_num_at_risk']} other")
        parts.append(f"- **{group['title'] or 'Group'}:** {', '.join(counts) or 'N/A'}")
    parts.append(f"- Serious event types: {events['serious_event_count']}")
    parts.append(f"- Other event types: {events['other_event_count']}")
    parts.append("")
    return parts


def _format_participant_flow(flow: dict[str, Any]) -> list[str]:
    parts = ["## Participant Flow"]
    if flow["groups"]:
        parts.append(f"**Groups:** {', '.join(g['title'] or 'Group' for g in flow['groups'])}")
    for period in flow["periods"]:
        parts.append(f"### {period['title'] or 'Period'}")
        for milestone in period["milestones"]:
            counts = ", ".join(
                f"{c['group_title'] or 'Group'} {c['subjects'] if c['subjects'] is not None else '?'}"
                for c in milestone["counts"]
            )
            parts.append(f"- {milestone['type'] or 'Milestone'}: {counts or 'N/A'}")
    parts.append("")
    return parts


def _format_baseline(baseline: dict[str, Any]) -> list[str]:
    parts = ["## Baseline Characteristics"]
    measures = baseline["measures"]
    if measures:
        parts.append(f"{len(measures)} measures recorded")
        for measure in measures[:BASELINE_MEASURES_SHOWN]:
            parts.append(
                f"- **{measure['title'] or 'Measure'}** "
                f"({measure['param_type'] or 'N/A'}, {measure['unit_of_measure'] or 'N/A'})"
            )
            for row in measure["measurements"]:
                parts.extend(_format_values(row["values"]))
        if len(measures) > BASELINE_MEASURES_SHOWN:
            parts.append(f"- ...and {len(measures) - BASELINE_MEASURES_SHOWN} more")
    parts.append("")
    return parts


def format_study_results(
    results: list[dict[str, Any]],
    without_results: list[str],
    errors: list[dict[str, str]],
) -> str:
    parts = []
    if errors:
        parts.append("> **Fetch errors:** " + "; ".join(f"{e['nct_id']}: {e['error']}" for e in errors) + "\n")
    if without_results:
        parts.append(f"> **Note:** no results posted for {', '.join(without_results)}\n")

    for study in results:
        parts.append(f"# {study['title'] or study['nct_id']}")
        parts.append(f"**NCT ID:** {study['nct_id']}\n")
        if study.get("outcomes"):
            parts += _format_outcomes(study["outcomes"])
        if "adverse_events" in study:
            parts += _format_adverse_events(study["adverse_events"])
        if "participant_flow" in study:
            parts += _format_participant_flow(study["participant_flow"])
        if "baseline" in study:
            parts += _format_baseline(study["baseline"])
        parts.append("---\n")
    return "\n".join(parts)


def register_results_tools(mcp: FastMCP, source: ClinicalTrialsGovSource) -> None:
    """Register study results tools (1 tool)."""

    @mcp.tool()
    async def get_study_results(
        nct_ids: Union[str, list[str]],
        sections: Union[str, list[str], None] = None,
        output_format: str = "text",
    ) -> str:
        """
        Posted results for completed studies.

        ═══════════════════════════════════════════════════════════════
        SECTIONS
        ═══════════════════════════════════════════════════════════════

        - outcomes: Outcome measures with per-group values and p-values
        - adverseEvents: Serious / other adverse events per group
        - participantFlow: Enrolment, completion and drop-out milestones
        - baseline: Baseline characteristics per group

        Args:
            nct_ids: Up to 5 NCT IDs, comma-separated or a list
            sections: Sections to include (default: all)
            output_format: "text" (default) or "json"

        Returns:
            Results per study. Studies without posted results and lookups
            that failed are listed separately.

        Examples:
            get_study_results(nct_ids="NCT04280705")
            get_study_results(nct_ids="NCT04280705, NCT04368728", sections="outcomes")
        """
        ids = InputNormalizer.normalize_nct_ids(nct_ids)
        if not ids:
            return ResponseFormatter.error(
                "No NCT IDs provided",
                suggestion="Provide one or more NCT IDs of completed studies",
                example='get_study_results(nct_ids="NCT04280705")',
                tool_name="get_study_results",
            )
        if len(ids) > MAX_NCT_IDS:
            return ResponseFormatter.error(
                f"Too many NCT IDs ({len(ids)})",
                suggestion=f"Request at most {MAX_NCT_IDS} studies per call",
                tool_name="get_study_results",
            )
        try:
            wanted = parse_sections(sections)
        except InvalidParameterError as e:
            return ResponseFormatter.error(e, tool_name="get_study_results")

        results: list[dict[str, Any]] = []
        without_results: list[str] = []
        errors: list[dict[str, str]] = []

        for nct_id in ids:
            try:
                study = await source.fetch_study(nct_id)
            except CtgovSearchError as e:
                logger.warning(f"Failed to fetch results for {nct_id}: {e}")
                errors.append({"nct_id": nct_id.upper(), "error": str(e)})
                continue
            except Exception as e:
                logger.exception(f"Failed to fetch results for {nct_id}: {e}")
                errors.append({"nct_id": nct_id.upper(), "error": str(e)})
                continue

            record = StudyRecord(study)
            if not record.has_results or record.results_section is None:
                without_results.append(nct_id.upper())
                continue
            results.append(extract_study_results(record, wanted))

        if len(errors) == len(ids):
            return ResponseFormatter.error(
                "Failed to fetch all requested studies: "
                + "; ".join(f"{e['nct_id']}: {e['error']}" for e in errors),
                suggestion="Check the NCT IDs (format: NCT followed by 8 digits)",
                tool_name="get_study_results",
            )

        logger.info(f"Results: {len(results)} with results, {len(without_results)} without, {len(errors)} failed")

        if output_format == "json":
            payload: dict[str, Any] = {"results": results}
            if without_results:
                payload["studies_without_results"] = without_results
            if errors:
                payload["fetch_errors"] = errors
            return json.dumps(payload, indent=2, ensure_ascii=False)
        return format_study_results(results, without_results, errors)

"""
Common utilities for MCP tools.

- InputNormalizer: Accept the loose input shapes agents send (strings,
  lists, ints, "true"/"yes") and turn them into clean Python values
- ResponseFormatter: Consistent error and no-results responses
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ctgov_search.core.exceptions import CtgovSearchError

logger = logging.getLogger(__name__)

_LIST_SPLIT = re.compile(r"[,;\n]+")
_TRUE_VALUES = {"true", "yes", "y", "1", "on"}
_FALSE_VALUES = {"false", "no", "n", "0", "off"}


class InputNormalizer:
    """Normalize tool inputs from AI agents."""

    @staticmethod
    def normalize_query(query: Any) -> str:
        if query is None:
            return ""
        text = str(query).strip()
        # Smart quotes break the API's quoted-phrase syntax
        return text.replace("“", '"').replace("”", '"').replace("‘", "'").replace("’", "'")

    @staticmethod
    def normalize_limit(
        value: Any,
        default: int = 10,
        min_val: int = 1,
        max_val: int = 100,
    ) -> int:
        if value is None or value == "":
            return default
        try:
            limit = int(value)
        except (TypeError, ValueError):
            return default
        return max(min_val, min(limit, max_val))

    @staticmethod
    def normalize_bool(value: Any, default: bool = False) -> bool:
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        return default

    @staticmethod
    def normalize_list(value: Any) -> list[str]:
        """
        Split comma/semicolon/newline separated input into a clean list.

        Example:
            >>> InputNormalizer.normalize_list("Asthma, COPD")
            ['Asthma', 'COPD']
        """
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            items = [str(v).strip() for v in value]
        else:
            items = [part.strip() for part in _LIST_SPLIT.split(str(value))]
        return [item for item in items if item]

    @staticmethod
    def normalize_enum_list(value: Any) -> list[str]:
        """Like normalize_list, upper-cased with spaces/hyphens as underscores."""
        return [re.sub(r"[\s\-]+", "_", item).upper() for item in InputNormalizer.normalize_list(value)]

    @staticmethod
    def normalize_nct_ids(value: Any) -> list[str]:
        """Split NCT IDs on commas or whitespace, keeping order and dropping duplicates."""
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            parts = [str(v).strip() for v in value]
        else:
            parts = re.split(r"[\s,;]+", str(value))
        return list(dict.fromkeys(p for p in parts if p))


class ResponseFormatter:
    """Consistent tool responses."""

    @staticmethod
    def error(
        error: str | Exception,
        suggestion: str | None = None,
        example: str | None = None,
        tool_name: str | None = None,
        output_format: str = "markdown",
    ) -> str:
        """
        Format an error for the agent.

        Structured errors carry their own suggestion and example; those are
        used unless explicitly overridden.
        """
        if isinstance(error, CtgovSearchError):
            details = error.to_dict()
            suggestion = suggestion or details.get("suggestion")
            example = example or details.get("example")
            if output_format == "json":
                details["success"] = False
                if tool_name:
                    details["tool"] = tool_name
                if suggestion:
                    details["suggestion"] = suggestion
                return json.dumps(details, indent=2, ensure_ascii=False)
            if suggestion == details.get("suggestion") and example == details.get("example"):
                return error.to_agent_message()

        message = str(error)
        if output_format == "json":
            payload: dict[str, Any] = {"success": False, "error": message}
            if suggestion:
                payload["suggestion"] = suggestion
            if example:
                payload["example"] = example
            if tool_name:
                payload["tool"] = tool_name
            return json.dumps(payload, indent=2, ensure_ascii=False)

        parts = [f"❌ **Error**: {message}"]
        if suggestion:
            parts.append(f"💡 **Suggestion**: {suggestion}")
        if example:
            parts.append(f"📝 **Example**: `{example}`")
        if tool_name:
            parts.append(f"🔧 Tool: {tool_name}")
        return "\n".join(parts)

    @staticmethod
    def no_results(query: str, suggestions: list[str] | None = None) -> str:
        parts = [f"No results found for: {query}"]
        if suggestions:
            parts.append("")
            parts.append("💡 Suggestions:")
            parts.extend(f"- {s}" for s in suggestions)
        return "\n".join(parts)

"""
Trend Entities - Aggregation Dimensions and Results

Key Entities:
    - Dimension: Closed set of axes a study set can be counted along
    - TrendResult: Bucket counts for one dimension
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ctgov_search.core.exceptions import InvalidParameterError


class Dimension(Enum):
    """
    Axes for trend analysis.

    Values are the public analysis names; ``short_name`` is the bare
    dimension name. ``parse`` accepts either form, case-insensitively.
    """

    STATUS = "countByStatus"
    COUNTRY = "countByCountry"
    SPONSOR_TYPE = "countBySponsorType"
    PHASE = "countByPhase"
    YEAR = "countByYear"
    MONTH = "countByMonth"
    STUDY_TYPE = "countByStudyType"
    INTERVENTION_TYPE = "countByInterventionType"

    @property
    def short_name(self) -> str:
        name = self.value.removeprefix("countBy")
        return name[0].lower() + name[1:]

    @property
    def multi_valued(self) -> bool:
        """Whether one study may land in more than one bucket."""
        return self in (Dimension.COUNTRY, Dimension.PHASE, Dimension.INTERVENTION_TYPE)

    @classmethod
    def parse(cls, value: str | Dimension) -> Dimension:
        if isinstance(value, Dimension):
            return value
        wanted = str(value).strip().lower().replace("_", "")
        for member in cls:
            if wanted in (member.value.lower(), member.short_name.lower()):
                return member
        raise InvalidParameterError(
            "analysis_type",
            value,
            "one of " + ", ".join(m.value for m in cls),
        )

    @classmethod
    def parse_many(cls, values: str | list[str] | tuple[str, ...]) -> list[Dimension]:
        """Parse a single name, a comma-separated string, or a list."""
        items = values.split(",") if isinstance(values, str) else list(values)
        parsed = [cls.parse(item) for item in items if str(item).strip()]
        if not parsed:
            raise InvalidParameterError("analysis_type", values, "at least one analysis type")
        return parsed


@dataclass
class TrendResult:
    """
    Counts for one dimension.

    ``total_studies`` is the number of studies examined. For multi-valued
    dimensions the bucket counts may sum to more than that.
    """

    dimension: Dimension
    total_studies: int
    buckets: dict[str, int] = field(default_factory=dict)

    def top(self, limit: int = 10) -> list[tuple[str, int]]:
        """Buckets sorted by count descending (ties keep insertion order)."""
        return sorted(self.buckets.items(), key=lambda item: item[1], reverse=True)[:limit]

    def to_dict(self) -> dict[str, Any]:
        return {
            "analysis_type": self.dimension.value,
            "total_studies": self.total_studies,
            "results": dict(self.buckets),
        }

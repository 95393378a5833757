"""
Validation Result Models

Value types returned by the query safety validator. They belong to the
request that produced them and are never shared.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from mongo_view.core.config.constants import (
    DEFAULT_RESULT_LIMIT,
    MAX_GROUP_ACCUMULATORS,
    MAX_GROUP_KEY_FIELDS,
    MAX_LOOKUP_PIPELINE_STAGES,
    MAX_PIPELINE_STAGES,
    MAX_QUERY_CONDITIONS,
    MAX_QUERY_DEPTH,
    PerformanceRating,
)


@dataclass(frozen=True)
class ValidationLimits:
    """
    Thresholds applied by the validator.

    Callers that vary limits per role build their own instance; the
    validator never decides which limits apply.
    """

    max_pipeline_stages: int = MAX_PIPELINE_STAGES
    max_depth: int = MAX_QUERY_DEPTH
    max_conditions: int = MAX_QUERY_CONDITIONS
    max_lookup_pipeline_stages: int = MAX_LOOKUP_PIPELINE_STAGES
    max_group_key_fields: int = MAX_GROUP_KEY_FIELDS
    max_group_accumulators: int = MAX_GROUP_ACCUMULATORS
    result_limit: int = DEFAULT_RESULT_LIMIT


@dataclass
class ValidationVerdict:
    """
    Outcome of validating one query document.

    errors block execution; warnings are advisory.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


@dataclass
class PreparedQuery:
    """A query that passed validation, hardened and ready to execute."""

    query: dict[str, Any]
    operation: str
    warnings: list[str]
    performance: PerformanceRating
    complexity: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["performance"] = self.performance.value
        return data

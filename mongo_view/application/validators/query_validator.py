"""
Query Safety Validator

Guards machine-generated MongoDB queries before they reach the driver.

ENTERPRISE ARCHITECTURE: Accumulate, don't short-circuit
---------------------------------------------------------
validate() runs every check and returns every finding in one verdict so
the caller can relay all violated rules at once:

1. Operation allow-list (case-insensitive)
2. Destructive-verb scan over the serialized, lower-cased query
3. Dangerous-operator scan over the same string
4. Complexity warning (pipeline length, depth, condition count)
5. Pipeline stage audit (dangerous stage keys, heavy $lookup/$group)

Steps 2 and 3 are raw substring scans on purpose: a generated query can
smuggle a write verb inside a string value (e.g. a $project expression)
where a structural key walk would never see it.

sanitize() is a hardening pass for queries that already passed validate().
estimate_performance() is a fixed-weight heuristic; callers branch on its
labels, so the weights in constants.py are part of the contract.
"""

import copy
from collections.abc import Mapping
from typing import Any

import orjson

from mongo_view.application.validators.models import (
    PreparedQuery,
    ValidationLimits,
    ValidationVerdict,
)
from mongo_view.application.validators.structure import (
    condition_count,
    depth,
    is_sequence,
    pipeline_complexity,
    pipeline_stages,
)
from mongo_view.core.config.constants import (
    ALLOWED_OPERATIONS,
    BLOCKED_OPERATIONS,
    DANGEROUS_OPERATORS,
    INDEX_FRIENDLY_FIELDS,
    PERF_CONDITIONS_PENALTY,
    PERF_CONDITIONS_THRESHOLD,
    PERF_DEPTH_PENALTY,
    PERF_DEPTH_THRESHOLD,
    PERF_EXCELLENT_MAX,
    PERF_FAIR_MAX,
    PERF_GOOD_MAX,
    PERF_INDEX_BONUS,
    PERF_LOOKUP_PENALTY,
    PERF_STAGE_WEIGHT,
    PerformanceRating,
    Stage,
)
from mongo_view.core.exceptions import InvalidInputError, QueryRejectedError
from mongo_view.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)

_ALLOWED_LOWER = frozenset(op.lower() for op in ALLOWED_OPERATIONS)
_DANGEROUS_KEYS = frozenset(DANGEROUS_OPERATORS)


def serialize_query(query: Any) -> str:
    """
    Single-string form of a query for substring scans.

    Values orjson can't encode natively (ObjectId, Decimal128, ...) fall
    back to str(); a document orjson refuses altogether falls back to
    str(query).
    """
    try:
        return orjson.dumps(query, default=str, option=orjson.OPT_NON_STR_KEYS).decode("utf-8")
    except orjson.JSONEncodeError:
        return str(query)


class QuerySafetyValidator:
    """
    Validates, sanitizes and rates generated query documents.

    Stateless apart from its limits: one instance can serve every request.

    Usage:
        validator = QuerySafetyValidator()
        verdict = validator.validate({"status": "active"}, "find")
        if verdict.is_valid:
            query = validator.sanitize({"status": "active"})
    """

    def __init__(self, limits: ValidationLimits | None = None):
        self.limits = limits or ValidationLimits()

    # -------------------------------------------------------------------------
    # validate
    # -------------------------------------------------------------------------

    def validate(self, query: Any, operation: str = "find") -> ValidationVerdict:
        """
        Check a query against the safety policy. Never raises.

        Args:
            query: Filter document or {"pipeline": [...]} aggregation
            operation: Driver operation the caller intends to run

        Returns:
            ValidationVerdict: errors (blocking) and warnings (advisory)
        """
        verdict = ValidationVerdict()

        # Step 1: operation allow-list
        if str(operation).lower() not in _ALLOWED_LOWER:
            verdict.errors.append(f"unsupported operation: {operation}")

        try:
            # Steps 2-3: substring scans over the serialized form
            serialized = serialize_query(query).lower()
            for verb in BLOCKED_OPERATIONS:
                if verb.lower() in serialized:
                    verdict.errors.append(f"blocked operation detected: {verb}")
            for operator in DANGEROUS_OPERATORS:
                if operator.lower() in serialized:
                    verdict.errors.append(f"dangerous operator not allowed: {operator}")

            # Step 4: complexity warning
            if self._is_too_complex(query):
                verdict.warnings.append("query is complex and may affect performance")

            # Step 5: pipeline stage audit
            self._audit_pipeline(query, verdict)
        except RecursionError:
            verdict.errors.append("query document is nested too deeply to analyze")

        log_stage(
            logger,
            Stage.QUERY_VALIDATION,
            "Query validated" if verdict.is_valid else "Query rejected",
            level="debug" if verdict.is_valid else "info",
            operation=operation,
            errors=len(verdict.errors),
            warnings=len(verdict.warnings),
        )
        return verdict

    def _is_too_complex(self, query: Any) -> bool:
        limits = self.limits
        return (
            len(pipeline_stages(query)) > limits.max_pipeline_stages
            or depth(query) > limits.max_depth
            or condition_count(query) > limits.max_conditions
        )

    def _audit_pipeline(self, query: Any, verdict: ValidationVerdict) -> None:
        """Per-stage checks; stage numbers in messages are 1-based."""
        for index, stage in enumerate(pipeline_stages(query), start=1):
            if not isinstance(stage, Mapping):
                continue
            for key, body in stage.items():
                if key in _DANGEROUS_KEYS:
                    verdict.errors.append(
                        f"pipeline stage {index} contains dangerous operator: {key}"
                    )
                if key == "$lookup" and self._is_lookup_too_complex(body):
                    verdict.warnings.append(f"pipeline stage {index}: $lookup is complex")
                if key == "$group" and self._is_group_too_complex(body):
                    verdict.warnings.append(f"pipeline stage {index}: $group is complex")

    def _is_lookup_too_complex(self, lookup: Any) -> bool:
        if not isinstance(lookup, Mapping):
            return False
        nested = lookup.get("pipeline")
        return is_sequence(nested) and len(nested) > self.limits.max_lookup_pipeline_stages

    def _is_group_too_complex(self, group: Any) -> bool:
        if not isinstance(group, Mapping):
            return False
        group_id = group.get("_id")
        if isinstance(group_id, Mapping) and len(group_id) > self.limits.max_group_key_fields:
            return True
        accumulators = [key for key in group if key != "_id"]
        return len(accumulators) > self.limits.max_group_accumulators

    # -------------------------------------------------------------------------
    # sanitize
    # -------------------------------------------------------------------------

    def sanitize(self, query: Any) -> Any:
        """
        Hardened deep copy of a query that already passed validate().

        - Strips dangerous operator keys at any depth (inside lists too)
        - Adds limit when neither limit nor pipeline is present
        - Appends {"$limit": N} when no pipeline stage has $limit

        The caller's document is never modified. Idempotent.
        """
        sanitized = copy.deepcopy(query)
        if not isinstance(sanitized, dict):
            return sanitized

        _strip_dangerous_keys(sanitized)

        result_limit = self.limits.result_limit
        if "limit" not in sanitized and "pipeline" not in sanitized:
            sanitized["limit"] = result_limit

        pipeline = sanitized.get("pipeline")
        if isinstance(pipeline, list):
            has_limit = any(isinstance(stage, Mapping) and "$limit" in stage for stage in pipeline)
            if not has_limit:
                pipeline.append({"$limit": result_limit})

        log_stage(logger, Stage.QUERY_SANITIZE, "Query sanitized", level="debug")
        return sanitized

    # -------------------------------------------------------------------------
    # estimate_performance
    # -------------------------------------------------------------------------

    def estimate_performance(self, query: Any) -> PerformanceRating:
        """
        Coarse cost bucket.

        +2 depth > 3, +2 conditions > 10, -1 when an index-friendly field
        name appears, +0.5 per pipeline stage, +2 when a stage has $lookup.
        <=1 excellent, <=3 good, <=5 fair, otherwise poor.
        """
        try:
            score = 0.0
            if depth(query) > PERF_DEPTH_THRESHOLD:
                score += PERF_DEPTH_PENALTY
            if condition_count(query) > PERF_CONDITIONS_THRESHOLD:
                score += PERF_CONDITIONS_PENALTY
            serialized = serialize_query(query)
        except RecursionError:
            return PerformanceRating.POOR

        if any(name in serialized for name in INDEX_FRIENDLY_FIELDS):
            score -= PERF_INDEX_BONUS

        stages = pipeline_stages(query)
        if stages:
            score += len(stages) * PERF_STAGE_WEIGHT
            if any(isinstance(stage, Mapping) and "$lookup" in stage for stage in stages):
                score += PERF_LOOKUP_PENALTY

        if score <= PERF_EXCELLENT_MAX:
            rating = PerformanceRating.EXCELLENT
        elif score <= PERF_GOOD_MAX:
            rating = PerformanceRating.GOOD
        elif score <= PERF_FAIR_MAX:
            rating = PerformanceRating.FAIR
        else:
            rating = PerformanceRating.POOR

        log_stage(logger, Stage.QUERY_ESTIMATE, "Query performance estimated", level="debug",
                  score=score, rating=rating.value)
        return rating

    # -------------------------------------------------------------------------
    # prepare
    # -------------------------------------------------------------------------

    def prepare(self, query: Any, operation: str = "find") -> PreparedQuery:
        """
        One call for the orchestrator: validate, then sanitize and rate.

        Raises:
            InvalidInputError: If query is not a document
            QueryRejectedError: If validation produced errors
        """
        if not isinstance(query, Mapping):
            raise InvalidInputError(
                "Query must be a JSON object",
                details={"received_type": type(query).__name__},
            )

        verdict = self.validate(query, operation)
        if not verdict.is_valid:
            raise QueryRejectedError(
                "Query rejected by safety policy",
                details={
                    "operation": operation,
                    "errors": verdict.errors,
                    "warnings": verdict.warnings,
                },
            )

        return PreparedQuery(
            query=self.sanitize(dict(query)),
            operation=operation,
            warnings=verdict.warnings,
            performance=self.estimate_performance(query),
            complexity=pipeline_complexity(query),
        )


def _strip_dangerous_keys(node: Any) -> None:
    """Remove dangerous operator keys in place, recursing into mappings and lists."""
    if isinstance(node, dict):
        for key in [key for key in node if key in _DANGEROUS_KEYS]:
            del node[key]
        for value in node.values():
            _strip_dangerous_keys(value)
    elif isinstance(node, list):
        for item in node:
            _strip_dangerous_keys(item)

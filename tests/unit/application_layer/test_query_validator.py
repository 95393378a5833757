"""
Unit Tests for QuerySafetyValidator

Tests the safety verdict, sanitizing, performance rating and the combined
prepare() entry point.
"""

import pytest

from mongo_view.application.validators import (
    PreparedQuery,
    QuerySafetyValidator,
    ValidationLimits,
)
from mongo_view.application.validators.query_validator import serialize_query
from mongo_view.core.config.constants import (
    BLOCKED_OPERATIONS,
    DANGEROUS_OPERATORS,
    PerformanceRating,
)
from mongo_view.core.exceptions import InvalidInputError, QueryRejectedError

COMPLEX_WARNING = "query is complex and may affect performance"


@pytest.mark.unit
class TestOperationAllowList:
    """Test the operation allow-list."""

    @pytest.mark.parametrize("operation", ["find", "FIND", "Aggregate", "countDocuments", "distinct"])
    def test_allowed_operations_pass(self, validator, operation):
        assert validator.validate({"status": "active"}, operation).is_valid

    def test_unsupported_operation_is_rejected(self, validator):
        verdict = validator.validate({"status": "active"}, "mapReduce")

        assert verdict.errors == ["unsupported operation: mapReduce"]

    def test_simple_query_is_clean(self, validator, queries):
        verdict = validator.validate(queries.simple_find(), "find")

        assert verdict.is_valid
        assert verdict.warnings == []


@pytest.mark.unit
class TestBlockedContent:
    """Test destructive verb and dangerous operator detection."""

    @pytest.mark.parametrize("verb", BLOCKED_OPERATIONS)
    def test_every_blocked_verb_is_detected(self, validator, verb):
        """Test that each write/DDL verb anywhere in the query is an error."""
        verdict = validator.validate({"q": verb}, "find")

        assert not verdict.is_valid
        assert f"blocked operation detected: {verb}" in verdict.errors

    @pytest.mark.parametrize("operator", DANGEROUS_OPERATORS)
    def test_every_dangerous_operator_is_detected(self, validator, operator):
        verdict = validator.validate({"field": {operator: 1}}, "find")

        assert f"dangerous operator not allowed: {operator}" in verdict.errors

    def test_verb_hidden_in_string_value_is_detected(self, validator):
        """Test that substring scanning catches verbs inside expressions."""
        verdict = validator.validate({"note": "deleteMany"}, "find")

        assert verdict.errors == [
            "blocked operation detected: delete",
            "blocked operation detected: deleteMany",
        ]

    def test_detection_is_case_insensitive(self, validator):
        verdict = validator.validate({"cmd": "DROPDATABASE"}, "find")

        assert "blocked operation detected: drop" in verdict.errors

    def test_all_findings_are_reported_together(self, validator):
        """Test that validation accumulates instead of stopping at the first error."""
        verdict = validator.validate({"x": {"$inc": 1}, "y": "remove"}, "mapReduce")

        assert "unsupported operation: mapReduce" in verdict.errors
        assert "blocked operation detected: remove" in verdict.errors
        assert "dangerous operator not allowed: $inc" in verdict.errors


@pytest.mark.unit
class TestPipelineAudit:
    """Test per-stage pipeline checks."""

    def test_dangerous_stage_is_reported_with_index(self, validator, queries):
        query = queries.pipeline({"$match": {"a": 1}}, {"$out": "archive"})

        verdict = validator.validate(query, "aggregate")

        assert "pipeline stage 2 contains dangerous operator: $out" in verdict.errors
        assert "dangerous operator not allowed: $out" in verdict.errors

    def test_complex_lookup_is_a_warning(self, validator, queries):
        query = queries.pipeline(queries.lookup_stage(inner_stages=6))

        verdict = validator.validate(query, "aggregate")

        assert verdict.is_valid
        assert "pipeline stage 1: $lookup is complex" in verdict.warnings

    def test_small_lookup_is_fine(self, validator, queries):
        query = queries.pipeline(queries.lookup_stage(inner_stages=2))

        assert "pipeline stage 1: $lookup is complex" not in validator.validate(query, "aggregate").warnings

    def test_wide_group_key_is_a_warning(self, validator, queries):
        query = queries.pipeline({"$match": {}}, queries.group_stage(key_fields=6))

        verdict = validator.validate(query, "aggregate")

        assert verdict.is_valid
        assert "pipeline stage 2: $group is complex" in verdict.warnings

    def test_many_accumulators_is_a_warning(self, validator, queries):
        query = queries.pipeline(queries.group_stage(accumulators=11))

        assert "pipeline stage 1: $group is complex" in validator.validate(query, "aggregate").warnings

    def test_non_mapping_stage_is_skipped(self, validator):
        verdict = validator.validate({"pipeline": ["oops", {"$match": {}}]}, "aggregate")

        assert verdict.is_valid


@pytest.mark.unit
class TestComplexityWarning:
    def test_deep_query_warns(self, validator, queries):
        verdict = validator.validate(queries.nested(6), "find")

        assert verdict.is_valid
        assert COMPLEX_WARNING in verdict.warnings

    def test_long_pipeline_warns(self, validator, queries):
        query = queries.pipeline(*queries.match_stages(11))

        assert COMPLEX_WARNING in validator.validate(query, "aggregate").warnings

    def test_many_conditions_warn(self, validator):
        query = {f"f{n}": n for n in range(21)}

        assert COMPLEX_WARNING in validator.validate(query, "find").warnings

    def test_custom_limits_apply(self, queries):
        strict = QuerySafetyValidator(ValidationLimits(max_depth=1))

        assert COMPLEX_WARNING in strict.validate(queries.nested(2), "find").warnings

    def test_unanalyzable_nesting_is_an_error(self, validator, queries):
        """Test that a document too deep to walk is rejected, not raised."""
        verdict = validator.validate(queries.nested(3000), "find")

        assert not verdict.is_valid
        assert "query document is nested too deeply to analyze" in verdict.errors


@pytest.mark.unit
class TestSanitize:
    """Test the hardening pass."""

    def test_limit_is_added_to_filters(self, validator):
        original = {"status": "active"}

        sanitized = validator.sanitize(original)

        assert sanitized == {"status": "active", "limit": 1000}
        assert original == {"status": "active"}

    def test_existing_limit_is_kept(self, validator):
        assert validator.sanitize({"status": "a", "limit": 5})["limit"] == 5

    def test_pipeline_gets_limit_stage(self, validator, queries):
        query = queries.pipeline({"$match": {"a": 1}})

        sanitized = validator.sanitize(query)

        assert sanitized == {"pipeline": [{"$match": {"a": 1}}, {"$limit": 1000}]}
        assert query["pipeline"] == [{"$match": {"a": 1}}]

    def test_pipeline_with_limit_is_unchanged(self, validator, queries):
        query = queries.pipeline({"$match": {}}, {"$limit": 10})

        assert validator.sanitize(query) == query

    def test_dangerous_keys_are_stripped_at_any_depth(self, validator):
        query = {"a": {"$set": {"x": 1}, "b": 1}, "c": [{"$inc": {"y": 1}, "d": 2}]}

        assert validator.sanitize(query) == {"a": {"b": 1}, "c": [{"d": 2}], "limit": 1000}

    def test_sanitize_is_idempotent(self, validator, queries):
        for query in (queries.simple_find(), queries.pipeline({"$match": {}}), {"a": {"$max": 1}}):
            once = validator.sanitize(query)

            assert validator.sanitize(once) == once

    def test_custom_result_limit(self):
        validator = QuerySafetyValidator(ValidationLimits(result_limit=10))

        assert validator.sanitize({})["limit"] == 10

    def test_non_document_is_copied_unchanged(self, validator):
        original = [1, {"a": 2}]

        sanitized = validator.sanitize(original)

        assert sanitized == original
        assert sanitized is not original


@pytest.mark.unit
class TestEstimatePerformance:
    """Test the coarse performance rating."""

    def test_plain_filter_is_excellent(self, validator):
        assert validator.estimate_performance({"status": "active"}) == PerformanceRating.EXCELLENT

    def test_deep_query_is_good(self, validator):
        assert validator.estimate_performance({"a": {"b": {"c": {"d": 1}}}}) == "good"

    def test_index_friendly_field_improves_rating(self, validator):
        query = {"userId": 5, "a": {"b": {"c": {"d": 1}}}}

        assert validator.estimate_performance(query) == PerformanceRating.EXCELLENT

    def test_deep_and_wide_query_is_fair(self, validator):
        query = {"a": {"b": {"c": {"d": 1}}}, **{f"k{n}": n for n in range(7)}}

        assert validator.estimate_performance(query) == PerformanceRating.FAIR

    def test_long_pipeline_with_lookup_is_poor(self, validator, queries):
        query = queries.pipeline(*queries.match_stages(5), {"$lookup": {"from": "b", "as": "z"}})

        assert validator.estimate_performance(query) == PerformanceRating.POOR

    def test_unanalyzable_nesting_is_poor(self, validator, queries):
        assert validator.estimate_performance(queries.nested(3000)) == PerformanceRating.POOR


@pytest.mark.unit
class TestPrepare:
    """Test the combined validate/sanitize/rate entry point."""

    def test_prepare_valid_query(self, validator, queries):
        prepared = validator.prepare(queries.simple_find(), "find")

        assert isinstance(prepared, PreparedQuery)
        assert prepared.query["limit"] == 1000
        assert prepared.operation == "find"
        assert prepared.performance == PerformanceRating.EXCELLENT
        assert prepared.complexity == 3
        assert prepared.to_dict()["performance"] == "excellent"

    def test_prepare_rejected_query_raises_with_all_errors(self, validator):
        with pytest.raises(QueryRejectedError) as exc_info:
            validator.prepare({"cmd": "drop", "x": {"$out": "c"}}, "find")

        error = exc_info.value
        assert "blocked operation detected: drop" in error.errors
        assert "dangerous operator not allowed: $out" in error.errors
        assert error.details["operation"] == "find"

    def test_prepare_rejects_non_documents(self, validator):
        with pytest.raises(InvalidInputError):
            validator.prepare(["not", "a", "document"])


@pytest.mark.unit
class TestSerializeQuery:
    def test_non_json_values_fall_back_to_str(self):
        class ObjectId:
            def __str__(self):
                return "650000000000000000000001"

        assert "650000000000000000000001" in serialize_query({"_id": ObjectId()})

    def test_compact_form(self):
        assert serialize_query({"a": [1, 2]}) == '{"a":[1,2]}'

"""
Unit Tests for Structural Analysis

Tests depth, condition counting and the pipeline complexity score.
"""

import pytest

from mongo_view.application.validators.structure import (
    condition_count,
    depth,
    is_sequence,
    pipeline_complexity,
    pipeline_stages,
)


@pytest.mark.unit
class TestDepth:
    @pytest.mark.parametrize(
        "document, expected",
        [
            ({}, 0),
            ("scalar", 0),
            ({"a": 1}, 1),
            ({"a": {"b": {"c": 1}}}, 3),
            ({"a": [{"b": 1}]}, 2),
            ({"a": [[[1]]]}, 1),
            ([{"a": {"b": 1}}], 2),
        ],
    )
    def test_depth(self, document, expected):
        assert depth(document) == expected

    def test_depth_of_generated_nesting(self, queries):
        assert depth(queries.nested(6)) == 6


@pytest.mark.unit
class TestConditionCount:
    @pytest.mark.parametrize(
        "document, expected",
        [
            ({}, 0),
            ({"a": 1, "b": 2}, 2),
            ({"a": 1, "b": {"c": 2}}, 3),
            ({"a": [1, 2]}, 3),
            ({"$or": [{"a": 1}, {"b": 2}]}, 5),
        ],
    )
    def test_condition_count(self, document, expected):
        assert condition_count(document) == expected


@pytest.mark.unit
class TestPipelineHelpers:
    def test_is_sequence_excludes_strings(self):
        assert is_sequence([1]) is True
        assert is_sequence((1,)) is True
        assert is_sequence("abc") is False
        assert is_sequence(b"abc") is False

    def test_pipeline_stages_requires_sequence(self):
        assert pipeline_stages({"pipeline": [{"$match": {}}]}) == [{"$match": {}}]
        assert pipeline_stages({"pipeline": "not-a-list"}) == []
        assert pipeline_stages({"status": "a"}) == []
        assert pipeline_stages(None) == []

    def test_complexity_of_empty_query(self):
        assert pipeline_complexity({}) == 0

    def test_complexity_weights_heavy_stages(self, queries):
        """Test stages + 2 per heavy stage + depth + condition buckets."""
        query = queries.pipeline({"$match": {"a": 1}}, {"$lookup": {"from": "b", "as": "c"}})

        # 2 stages, 1 heavy, depth 3, 8 conditions -> 1 bucket
        assert pipeline_complexity(query) == 2 + 2 + 3 + 1

    def test_complexity_of_plain_filter(self):
        # depth 2, 3 conditions -> 1 bucket
        assert pipeline_complexity({"status": "a", "age": {"$gte": 18}}) == 3

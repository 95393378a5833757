"""
Structural Analysis of Query Documents

Pure functions over JSON-like documents (mappings, sequences, scalars).
No state, safe to call from any number of concurrent requests.

ENTERPRISE DECISION: Cheap proxies, not exact counts
----------------------------------------------------
condition_count() counts every key at every nesting level, which
over-counts real predicates. The complexity thresholds were tuned
against exactly this count, so it must stay this way.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from mongo_view.core.config.constants import HEAVY_PIPELINE_STAGES

HEAVY_STAGE_WEIGHT = 2
CONDITION_BUCKET = 10


def is_sequence(value: Any) -> bool:
    """True for lists/tuples, False for strings and bytes."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def depth(document: Any) -> int:
    """
    Maximum nesting level of a document.

    A mapping adds one level for its values. A sequence adds no level of
    its own: its elements are walked at the level of the value holding it.

    >>> depth({}), depth({"a": {"b": {"c": 1}}}), depth({"a": [{"b": 1}]})
    (0, 3, 2)
    """
    return _depth(document, 0)


def _depth(node: Any, level: int) -> int:
    if isinstance(node, Mapping):
        return max((_depth(value, level + 1) for value in node.values()), default=level)
    if is_sequence(node):
        return max((_depth(item, level) for item in node), default=level)
    return level


def condition_count(document: Any) -> int:
    """
    Every key at every nesting level, plus what container values contribute.

    Sequence elements count one each, like positional keys, plus their
    own contents.

    >>> condition_count({"a": 1, "b": {"c": 2}})
    3
    """
    if isinstance(document, Mapping):
        return sum(1 + condition_count(value) for value in document.values())
    if is_sequence(document):
        return sum(1 + condition_count(item) for item in document)
    return 0


def pipeline_stages(query: Any) -> list[Any]:
    """The query's pipeline when it is a sequence, else an empty list."""
    if isinstance(query, Mapping) and is_sequence(query.get("pipeline")):
        return list(query["pipeline"])
    return []


def pipeline_complexity(query: Any) -> int:
    """
    Combined complexity score used for logging and inspection.

    pipeline length + 2 per heavy stage ($lookup, $facet, $graphLookup)
    + depth + one point per started bucket of 10 conditions.
    """
    stages = pipeline_stages(query)
    heavy = sum(
        1
        for stage in stages
        if isinstance(stage, Mapping) and any(key in HEAVY_PIPELINE_STAGES for key in stage)
    )
    conditions = condition_count(query)
    buckets = -(-conditions // CONDITION_BUCKET)
    return len(stages) + HEAVY_STAGE_WEIGHT * heavy + depth(query) + buckets

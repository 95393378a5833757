"""
Query Test Factory

Builds query documents of known shape for validator and analyzer tests.
"""

from typing import Any


class QueryFactory:
    """Factory for query documents with controlled structure."""

    @staticmethod
    def simple_find() -> dict[str, Any]:
        return {"status": "active", "age": {"$gte": 18}}

    @staticmethod
    def nested(levels: int, leaf: Any = 1) -> dict[str, Any]:
        """A document nested exactly `levels` deep: {"l0": {"l1": ... leaf}}."""
        document: Any = leaf
        for level in reversed(range(levels)):
            document = {f"l{level}": document}
        return document

    @staticmethod
    def pipeline(*stages: dict[str, Any]) -> dict[str, Any]:
        return {"pipeline": list(stages)}

    @staticmethod
    def match_stages(count: int) -> list[dict[str, Any]]:
        return [{"$match": {"s": n}} for n in range(count)]

    @staticmethod
    def lookup_stage(inner_stages: int = 0) -> dict[str, Any]:
        lookup: dict[str, Any] = {"from": "orders", "as": "orders"}
        if inner_stages:
            lookup["pipeline"] = [{"$match": {}} for _ in range(inner_stages)]
        return {"$lookup": lookup}

    @staticmethod
    def group_stage(key_fields: int = 1, accumulators: int = 1) -> dict[str, Any]:
        group: dict[str, Any] = {"_id": {f"k{n}": f"$k{n}" for n in range(key_fields)}}
        for n in range(accumulators):
            group[f"total{n}"] = {"$sum": 1}
        return {"$group": group}

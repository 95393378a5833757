"""
Query Validators Package

- structure.py: depth / condition count / complexity of query documents
- query_validator.py: QuerySafetyValidator (validate, sanitize, estimate, prepare)
- models.py: ValidationVerdict, ValidationLimits, PreparedQuery
"""

from mongo_view.application.validators.models import (
    PreparedQuery,
    ValidationLimits,
    ValidationVerdict,
)
from mongo_view.application.validators.query_validator import QuerySafetyValidator
from mongo_view.application.validators.structure import (
    condition_count,
    depth,
    pipeline_complexity,
)

__all__ = [
    "QuerySafetyValidator",
    "ValidationVerdict",
    "ValidationLimits",
    "PreparedQuery",
    "depth",
    "condition_count",
    "pipeline_complexity",
]

"""
Validation Exceptions

All exceptions related to query and request validation

Author: System Architect
Date: 2025-12-08
"""

from mongo_view.core.exceptions.base import MongoViewError


class ValidationError(MongoViewError):
    """
    Raised when validation fails.

    This is the base class for all validation-related errors.
    """
    pass


class QueryRejectedError(ValidationError):
    """
    Raised when a generated query violates the safety policy.

    details carries the full verdict so callers can relay every rule
    that was broken:

        raise QueryRejectedError(
            "Query rejected by safety policy",
            details={"errors": [...], "warnings": [...], "operation": "find"}
        )
    """

    @property
    def errors(self) -> list[str]:
        return list(self.details.get("errors", []))

    @property
    def warnings(self) -> list[str]:
        return list(self.details.get("warnings", []))


class InvalidInputError(ValidationError):
    """
    Raised when request input is malformed.

    Common causes:
    - Query document is not a JSON object
    - Empty cache key
    - Non-positive TTL
    """
    pass

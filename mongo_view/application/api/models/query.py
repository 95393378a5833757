"""
Query Guard API Models
"""

from typing import Any

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """A generated query and the operation it is meant for."""

    query: dict[str, Any] = Field(..., description="Filter document or {'pipeline': [...]}")
    operation: str = Field(default="find", description="Driver operation, e.g. find or aggregate")


class QueryValidationResponse(BaseModel):
    """Verdict plus rating, with the hardened query when it passed."""

    is_valid: bool
    errors: list[str]
    warnings: list[str]
    performance: str = Field(..., description="excellent | good | fair | poor")
    complexity: int = Field(..., ge=0, description="Combined structural complexity score")
    sanitized_query: dict[str, Any] | None = Field(
        default=None, description="Hardened copy, present only when the query is valid"
    )


class PreparedQueryResponse(BaseModel):
    query: dict[str, Any]
    operation: str
    warnings: list[str]
    performance: str
    complexity: int

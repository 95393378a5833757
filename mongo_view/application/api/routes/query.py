"""
Query Guard Routes
==================

Lets the orchestrator (or an operator) check a generated query before it
is executed.
"""

from fastapi import APIRouter

from mongo_view.application.api.dependencies import ValidatorDep
from mongo_view.application.api.models.query import (
    PreparedQueryResponse,
    QueryRequest,
    QueryValidationResponse,
)
from mongo_view.application.validators.structure import pipeline_complexity
from mongo_view.core.logging.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/query", tags=["Query"])


@router.post("/validate", response_model=QueryValidationResponse)
async def validate_query(body: QueryRequest, validator: ValidatorDep):
    """
    Full verdict for a query. Always 200: a rejected query is a normal
    answer here, not an error.
    """
    verdict = validator.validate(body.query, body.operation)
    sanitized = validator.sanitize(body.query) if verdict.is_valid else None
    return QueryValidationResponse(
        **verdict.to_dict(),
        performance=validator.estimate_performance(body.query).value,
        complexity=pipeline_complexity(body.query) if verdict.is_valid else 0,
        sanitized_query=sanitized,
    )


@router.post("/prepare", response_model=PreparedQueryResponse)
async def prepare_query(body: QueryRequest, validator: ValidatorDep):
    """
    Validate, sanitize and rate in one call.

    A rejected query raises QueryRejectedError, answered with 400 and the
    full error list by the application's exception handler.
    """
    prepared = validator.prepare(body.query, body.operation)
    return PreparedQueryResponse(**prepared.to_dict())

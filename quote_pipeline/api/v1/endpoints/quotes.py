"""Quote submission, status and human review endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from quote_pipeline.api.v1.dependencies import get_quote_service
from quote_pipeline.core.exceptions import QuoteNotFoundError
from quote_pipeline.schemas.events import QuoteSubmitted
from quote_pipeline.schemas.quotes import (
    ActionResponse,
    HitlResolveRequest,
    QuoteStatusResponse,
    RequestHitlRequest,
    SubmitQuoteRequest,
)
from quote_pipeline.services.steps import QuoteService
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()

QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]


def _not_found(quote_id: int) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Quote {quote_id} not found")


@router.post(
    "/{quote_id}/submit",
    response_model=ActionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit quote options for pricing",
    operation_id="submit_quote",
)
async def submit_quote(
    quote_id: int, payload: SubmitQuoteRequest, service: QuoteServiceDep
) -> ActionResponse:
    submission = QuoteSubmitted(
        quote_id=quote_id,
        intended_use=payload.intended_use,
        languages=payload.languages,
        billing=payload.billing,
        options=payload.options,
    )
    try:
        event_id = await service.submit(submission, event_id=payload.event_id)
    except QuoteNotFoundError:
        raise _not_found(quote_id)
    return ActionResponse(quote_id=quote_id, event_id=event_id)


@router.get(
    "/{quote_id}/status",
    response_model=QuoteStatusResponse,
    summary="Current pipeline stage of a quote",
    operation_id="get_quote_status",
)
async def get_quote_status(quote_id: int, service: QuoteServiceDep) -> QuoteStatusResponse:
    try:
        return QuoteStatusResponse(**await service.get_status(quote_id))
    except QuoteNotFoundError:
        raise _not_found(quote_id)


@router.post(
    "/{quote_id}/request-hitl",
    response_model=ActionResponse,
    summary="Send a quote to human review",
    operation_id="request_quote_hitl",
)
async def request_hitl(
    quote_id: int,
    service: QuoteServiceDep,
    payload: Optional[RequestHitlRequest] = Body(default=None),
) -> ActionResponse:
    reason = payload.reason if payload else RequestHitlRequest().reason
    try:
        result = await service.request_hitl(quote_id, reason=reason)
    except QuoteNotFoundError:
        raise _not_found(quote_id)
    return ActionResponse(**result)


@router.post(
    "/{quote_id}/hitl-resolve",
    response_model=ActionResponse,
    summary="Resolve human review and re-run pricing",
    operation_id="resolve_quote_hitl",
)
async def resolve_hitl(
    quote_id: int,
    service: QuoteServiceDep,
    payload: Optional[HitlResolveRequest] = Body(default=None),
) -> ActionResponse:
    corrections = payload.model_dump(exclude_none=True) if payload else {}
    try:
        result = await service.resolve_hitl(quote_id, corrections)
    except QuoteNotFoundError:
        raise _not_found(quote_id)
    return ActionResponse(**result)

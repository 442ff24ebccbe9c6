"""Intake endpoint for events produced outside the pipeline (uploads, quote creation)."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from quote_pipeline.api.v1.dependencies import get_event_bus
from quote_pipeline.schemas.events import PAYLOAD_MODELS, Event, parse_payload
from quote_pipeline.schemas.quotes import ActionResponse, PublishEventRequest
from quote_pipeline.temporal.core.event_bus import EventBus

router = APIRouter()


@router.post(
    "",
    response_model=ActionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Publish a pipeline event",
    operation_id="publish_event",
)
async def publish_event(
    payload: PublishEventRequest, bus: Annotated[EventBus, Depends(get_event_bus)]
) -> ActionResponse:
    if payload.name not in PAYLOAD_MODELS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown event: {payload.name}",
        )
    try:
        data = parse_payload(payload.name, payload.data)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors())

    event_id = payload.id or f"{payload.name.replace('/', '-')}-{uuid.uuid4().hex}"
    if payload.name == "files/uploaded" and not payload.id:
        event_id = f"files-uploaded-{data.file_id}"

    await bus.publish(Event(name=payload.name, id=event_id, data=data.model_dump(mode="json")))
    return ActionResponse(quote_id=data.quote_id, event_id=event_id)

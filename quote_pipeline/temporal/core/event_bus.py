"""Event bus backed by the quote_events outbox and Temporal.

Publishing an event records it in the outbox (unique on the event id) and
then starts or signals the workflows of every step subscribed to it. An
event whose id was already dispatched is ignored, so re-publishing after a
retry is safe.
"""

from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from temporalio.client import Client
from temporalio.common import WorkflowIDReusePolicy
from temporalio.exceptions import WorkflowAlreadyStartedError

from quote_pipeline.repositories.event_repository import EventRepository
from quote_pipeline.schemas.events import Event
from quote_pipeline.temporal.core.constants import DEFAULT_TASK_QUEUE
from quote_pipeline.temporal.core.registry import StepDescriptor, StepRegistry, TriggerMode
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

ClientProvider = Callable[[], Awaitable[Client]]


class EventBus:
    """Publishes pipeline events to their subscribed steps."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        registry: StepRegistry,
        client_provider: ClientProvider,
        task_queue: Optional[str] = None,
    ):
        self.session_maker = session_maker
        self.registry = registry
        self.client_provider = client_provider
        self.task_queue = task_queue or DEFAULT_TASK_QUEUE

    async def publish(self, event: Event) -> bool:
        """Record and dispatch an event.

        Args:
            event: Event envelope; ``event.id`` is the idempotency key

        Returns:
            True if the event was dispatched by this call, False if it had
            already been dispatched before
        """
        async with self.session_maker() as session:
            row, created = await EventRepository(session).record(
                event.id, event.name, event.quote_id, event.data
            )
            already_dispatched = row.dispatched_at is not None
            await session.commit()

        if already_dispatched:
            LOGGER.info(
                f"Event {event.id} already dispatched, skipping",
                extra={"event": event.name, "event_id": event.id},
            )
            return False

        subscribers = self.registry.subscribers(event.name)
        if not subscribers:
            LOGGER.info(
                f"Event {event.name} has no subscribed steps",
                extra={"event_id": event.id, "quote_id": event.quote_id},
            )
        for descriptor in subscribers:
            await self._dispatch(descriptor, event)

        async with self.session_maker() as session:
            await EventRepository(session).mark_dispatched(event.id)
            await session.commit()

        LOGGER.info(
            f"Published {event.name}",
            extra={
                "event_id": event.id,
                "quote_id": event.quote_id,
                "steps": [d.step_id for d in subscribers],
                "redelivery": not created,
            },
        )
        return True

    async def _dispatch(self, descriptor: StepDescriptor, event: Event) -> None:
        client = await self.client_provider()
        workflow_id = descriptor.workflow_id(event)

        if descriptor.mode == TriggerMode.SIGNAL_WITH_START:
            await client.start_workflow(
                descriptor.workflow.run,
                {"quote_id": event.quote_id},
                id=workflow_id,
                task_queue=self.task_queue,
                start_signal=descriptor.signal,
                start_signal_args=[event.data],
            )
            LOGGER.debug(f"Signalled {workflow_id} with {descriptor.signal}")
            return

        try:
            await client.start_workflow(
                descriptor.workflow.run,
                event.data,
                id=workflow_id,
                task_queue=self.task_queue,
                id_reuse_policy=WorkflowIDReusePolicy.REJECT_DUPLICATE,
            )
            LOGGER.debug(f"Started workflow {workflow_id}")
        except WorkflowAlreadyStartedError:
            LOGGER.info(
                f"Workflow {workflow_id} already started for event {event.id}",
                extra={"step_id": descriptor.step_id},
            )

"""Temporal worker service for the quote pipeline.

This worker:
- Connects to the Temporal server (TEMPORAL_HOST:TEMPORAL_PORT)
- Registers every step declared in ``STEP_DESCRIPTORS``
- Builds the step dependency context once for the whole process
"""

import asyncio

from temporalio.client import Client
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner, SandboxRestrictions

from quote_pipeline.core.config import Settings, settings
from quote_pipeline.core.database import async_session_maker, close_database, init_database
from quote_pipeline.services.steps import StepDependencies
from quote_pipeline.temporal.core.event_bus import EventBus
from quote_pipeline.temporal.core.registry import StepRegistry
from quote_pipeline.temporal.steps import build_registry
from quote_pipeline.utils.logging import get_logger

logger = get_logger(__name__)

MAX_CONNECT_ATTEMPTS = 5
CONNECT_RETRY_DELAY_SECONDS = 5


async def connect_client(app_settings: Settings) -> Client:
    """Connect to Temporal with retries."""
    target = app_settings.temporal.target
    for attempt in range(MAX_CONNECT_ATTEMPTS):
        try:
            logger.info(
                f"Connecting to Temporal server at {target} "
                f"(Attempt {attempt + 1}/{MAX_CONNECT_ATTEMPTS})"
            )
            return await Client.connect(target, namespace=app_settings.temporal.namespace)
        except RuntimeError as e:
            if attempt == MAX_CONNECT_ATTEMPTS - 1:
                logger.error(f"Failed to connect to Temporal server after {MAX_CONNECT_ATTEMPTS} attempts: {e}")
                raise
            logger.warning(
                f"Connection attempt {attempt + 1} failed: {e}. "
                f"Retrying in {CONNECT_RETRY_DELAY_SECONDS}s..."
            )
            await asyncio.sleep(CONNECT_RETRY_DELAY_SECONDS)
    raise RuntimeError("unreachable")


def build_worker(
    client: Client,
    registry: StepRegistry,
    deps: StepDependencies,
    task_queue: str,
) -> Worker:
    return Worker(
        client,
        task_queue=task_queue,
        workflows=registry.workflows,
        activities=registry.bind_activities(deps),
        max_concurrent_activities=10,
        max_concurrent_workflow_tasks=20,
        workflow_runner=SandboxedWorkflowRunner(
            restrictions=SandboxRestrictions.default.with_passthrough_all_modules()
        ),
    )


async def run_worker(app_settings: Settings = settings) -> None:
    """Start the Temporal worker and poll until cancelled."""
    registry = build_registry()
    await init_database(create_tables=True)
    client = await connect_client(app_settings)

    async def client_provider() -> Client:
        return client

    task_queue = app_settings.temporal.task_queue
    event_bus = EventBus(async_session_maker, registry, client_provider, task_queue)
    deps = StepDependencies.build(app_settings, async_session_maker, event_bus)
    worker = build_worker(client, registry, deps, task_queue)

    logger.info("=" * 60)
    logger.info("Temporal Worker Initialized Successfully")
    logger.info(f"Connected to: {app_settings.temporal.target}")
    logger.info(f"Queue: {task_queue}")
    logger.info(f"Steps: {registry.step_ids}")
    logger.info("=" * 60)

    try:
        await worker.run()
    finally:
        await deps.aclose()
        await close_database()


def main() -> None:
    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")


if __name__ == "__main__":
    main()

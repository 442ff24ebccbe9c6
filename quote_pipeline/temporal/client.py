"""Temporal client configuration and connection management."""

from typing import Optional

from temporalio.client import Client as TemporalClient

from quote_pipeline.core.config import settings


class TemporalClientManager:
    """Manages Temporal client connection.

    Lazily creates a Temporal client and keeps it around for reuse.
    """

    def __init__(self, target: Optional[str] = None, namespace: Optional[str] = None):
        self.target = target or settings.temporal.target
        self.namespace = namespace or settings.temporal.namespace
        self._client: Optional[TemporalClient] = None

    async def get_client(self) -> TemporalClient:
        """Get or create Temporal client instance.

        Returns:
            TemporalClient: Connected Temporal client
        """
        if self._client is None:
            self._client = await TemporalClient.connect(self.target, namespace=self.namespace)
        return self._client

    def reset(self) -> None:
        self._client = None


temporal_client_manager = TemporalClientManager()


async def get_temporal_client() -> TemporalClient:
    """Get the shared Temporal client instance."""
    return await temporal_client_manager.get_client()

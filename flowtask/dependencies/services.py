"""
Service container for dependency injection.
Builds the Flow clients and services once per process from FlowSettings.
"""
import logging
from typing import Optional

import httpx
from fastapi import Request

from flowtask.client import FlowTransport, FlowApiClient, FileFetcher
from flowtask.config import FlowSettings
from flowtask.services import TaskService, AttachmentService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Container for all application services."""

    def __init__(self, settings: FlowSettings, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            settings: Service settings, including the immutable credentials
            client: Optional shared HTTP client (mainly for tests); the
                container owns and closes the clients it creates itself
        """
        self.settings = settings
        self.transport = FlowTransport(settings.base_url, timeout=settings.request_timeout, client=client)
        self.api = FlowApiClient(self.transport, settings.credentials)
        self.task_service = TaskService(self.api, settings)
        self.file_fetcher = FileFetcher(timeout=settings.request_timeout, client=client)
        self.attachment_service = AttachmentService(self.file_fetcher)
        logger.info(
            f"Services initialized (base_url={settings.base_url}, "
            f"strategy={settings.enrichment_strategy.value}, "
            f"deleted_remarks={settings.effective_deleted_remarks.value})"
        )

    async def aclose(self) -> None:
        """Close HTTP clients owned by the container."""
        await self.transport.aclose()
        await self.file_fetcher.aclose()


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container stored on the application state."""
    return request.app.state.services

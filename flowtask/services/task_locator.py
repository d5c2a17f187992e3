"""
Task locator - finds a task summary by its user-facing task number.
"""
import logging
from typing import Optional

from flowtask.client.flow_api import FlowApiClient
from flowtask.models import TaskSummary

logger = logging.getLogger(__name__)

TASK_NUMBER_TAG = "TASK_NUM"


class TaskLocator:
    """Looks up tasks among the caller's own assigned tasks."""

    def __init__(self, api: FlowApiClient):
        self.api = api

    async def find(self, task_number: str) -> Optional[TaskSummary]:
        """
        Find a task by number on page 1 of the caller's task list.

        Only the first page is searched; a task that appears only on later
        pages is reported as not found.

        Args:
            task_number: User-facing task number (not an internal id)

        Returns:
            The first matching TaskSummary, or None if there is no match
        """
        page = await self.api.list_tasks(page=1)
        for summary in page.tasks:
            if summary.column_value(TASK_NUMBER_TAG) == task_number:
                return summary
        logger.info(f"Task {task_number} not found among {len(page.tasks)} assigned tasks on page 1")
        return None

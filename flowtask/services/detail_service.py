"""
Detail fetcher - loads the primary post record of a located task.
"""
from typing import Optional

from flowtask.client.flow_api import FlowApiClient
from flowtask.models import PostRecord


class DetailFetcher:
    """Loads a task's post, embedding the first page of its remarks."""

    def __init__(self, api: FlowApiClient, remark_page_size: int = 100):
        self.api = api
        self.remark_page_size = remark_page_size

    async def fetch(self, project_id: str, comment_id: str) -> Optional[PostRecord]:
        """Return the first post record, or None when the response has none."""
        posts = await self.api.get_task_detail(project_id, comment_id, remark_page_size=self.remark_page_size)
        return posts[0] if posts else None

"""
Task service - composes the retrieval pipeline.

get_task_by_number runs Locator -> Detail -> (Backfill -> delete filter ->
Reply expansion) -> Normalizer depending on the configured enrichment
strategy. Locator and detail failures propagate; backfill and reply failures
are absorbed inside their stages.
"""
import logging
from typing import Optional, List, Dict

from flowtask.client.flow_api import FlowApiClient
from flowtask.config import FlowSettings, EnrichmentStrategy, DeletedRemarkPolicy
from flowtask.models import NormalizedTaskView, Remark, Reply, TaskListResult
from flowtask.services.detail_service import DetailFetcher
from flowtask.services.normalizer import TaskNormalizer
from flowtask.services.remark_service import RemarkBackfill, ReplyExpander
from flowtask.services.task_locator import TaskLocator
from flowtask.tracing import trace_span, add_span_attribute

logger = logging.getLogger(__name__)


class TaskService:
    """Task retrieval and search over the Flow API."""

    def __init__(self, api: FlowApiClient, settings: FlowSettings):
        self.api = api
        self.settings = settings
        self.strategy = settings.enrichment_strategy
        self.deleted_remarks = settings.effective_deleted_remarks
        self.locator = TaskLocator(api)
        self.detail = DetailFetcher(api, remark_page_size=settings.remark_page_size)
        self.backfill = RemarkBackfill(api)
        self.expander = ReplyExpander(
            api,
            default_org_id=settings.credentials.org_id,
            concurrency=settings.reply_concurrency,
        )
        self.normalizer = TaskNormalizer()

    async def get_task_by_number(self, task_number: str) -> Optional[NormalizedTaskView]:
        """
        Retrieve the full view of a task by its user-facing number.

        Args:
            task_number: Task number as shown to users

        Returns:
            NormalizedTaskView, or None when the task is not among the
            caller's first page of tasks or has no detail record

        Raises:
            TransportError: If the list or detail call fails at the transport level
            RemoteError: If the list or detail call returns an envelope error
        """
        with trace_span("task.get_by_number", attributes={
            "task.number": task_number,
            "task.strategy": self.strategy.value,
        }):
            with trace_span("task.locate"):
                summary = await self.locator.find(task_number)
            if summary is None:
                add_span_attribute("task.found", False)
                return None

            with trace_span("task.detail", attributes={
                "flow.project_id": summary.project_id,
                "flow.comment_id": summary.comment_id,
            }):
                post = await self.detail.fetch(summary.project_id, summary.comment_id)
            if post is None:
                logger.info(
                    f"Task {task_number} located as {summary.project_id}/{summary.comment_id} "
                    f"but the detail response had no post"
                )
                add_span_attribute("task.found", False)
                return None

            remarks: List[Remark] = list(post.remarks)
            replies: Dict[str, List[Reply]] = {}

            if self.strategy == EnrichmentStrategy.FULL:
                with trace_span("task.backfill"):
                    older = await self.backfill.fetch_older(post, remarks)
                remarks = older + remarks
                remarks = self._apply_delete_policy(remarks)
                with trace_span("task.replies", attributes={"remark.count": len(remarks)}):
                    replies = await self.expander.expand(post, remarks)
            else:
                remarks = self._apply_delete_policy(remarks)

            with trace_span("task.normalize"):
                view = self.normalizer.normalize(summary, post, remarks, replies)
            add_span_attribute("task.found", True)
            logger.debug(f"Task {task_number} assembled with {len(view.comments)} comments")
            return view

    async def search_tasks(
        self,
        statuses: Optional[List[str]] = None,
        assignee: Optional[str] = None,
        project_id: Optional[str] = None,
        page: int = 1
    ) -> TaskListResult:
        """
        Search the task list.

        Args:
            statuses: Status codes to filter on
            assignee: Assignee user id (defaults to the caller)
            project_id: Restrict to one project
            page: 1-based page number

        Returns:
            TaskListResult for the requested page
        """
        with trace_span("task.search", attributes={"task.page": page}):
            result = await self.api.list_tasks(
                assignee=assignee,
                statuses=statuses,
                project_id=project_id,
                page=page,
            )
        items = [self.normalizer.list_item(summary) for summary in result.tasks]
        return TaskListResult(tasks=items, has_more=result.has_more, total=len(items))

    def _apply_delete_policy(self, remarks: List[Remark]) -> List[Remark]:
        if self.deleted_remarks == DeletedRemarkPolicy.HIDE:
            return [remark for remark in remarks if not remark.is_delete_flagged]
        return remarks

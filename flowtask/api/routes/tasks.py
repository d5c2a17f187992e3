"""
Task API routes.
"""
from typing import List, Optional
import logging

from flowtask.adapters.http_framework import HTTPFrameworkAdapter
from flowtask.dependencies.services import ServiceContainer, get_services
from flowtask.exceptions import TaskNotFoundError
from flowtask.models import NormalizedTaskView, TaskListResult

# Initialize adapter
http_adapter = HTTPFrameworkAdapter()
Path = http_adapter.Path
Query = http_adapter.Query
Depends = http_adapter.Depends

# Create router using adapter, expose underlying router
router_adapter = http_adapter.create_router(prefix="/tasks", tags=["tasks"])
router = router_adapter.router

logger = logging.getLogger(__name__)


@router.get("/{task_number}", response_model=NormalizedTaskView)
async def get_task(
    task_number: str = Path(..., min_length=1, description="Task number as shown in Flow"),
    services: ServiceContainer = Depends(get_services)
) -> NormalizedTaskView:
    """
    Get the full normalized view of a task by its task number.

    Returns 404 when the task is not among the caller's assigned tasks and
    502 when Flow cannot be reached or reports an error.
    """
    view = await services.task_service.get_task_by_number(task_number)
    if view is None:
        raise TaskNotFoundError(task_number)
    return view


@router.get("", response_model=TaskListResult)
async def search_tasks(
    status: Optional[List[str]] = Query(None, description="Status codes to include"),
    assignee: Optional[str] = Query(None, description="Assignee user id (defaults to the caller)"),
    project_id: Optional[str] = Query(None, description="Restrict to one project"),
    page: int = Query(1, ge=1),
    services: ServiceContainer = Depends(get_services)
) -> TaskListResult:
    """Search the caller's task list."""
    return await services.task_service.search_tasks(
        statuses=status,
        assignee=assignee,
        project_id=project_id,
        page=page,
    )

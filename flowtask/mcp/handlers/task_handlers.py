"""Task-related MCP tool handlers."""

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flowtask.dependencies.services import ServiceContainer
from flowtask.mcp.formatting import render_task_view, render_task_list, render_download
from flowtask.services.normalizer import STATUS_LABELS
from flowtask.tracing import trace_span, add_span_attribute

# Lower-cased label -> status code
STATUS_CODES_BY_LABEL = {label.lower(): code for code, label in STATUS_LABELS.items()}


class ToolArguments(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class TaskNumberArguments(ToolArguments):
    taskNumber: str = Field(..., min_length=1)


class SearchTasksArguments(ToolArguments):
    status: Optional[str] = None
    assignee: Optional[str] = None
    projectId: Optional[str] = None
    page: int = Field(1, ge=1)

    @field_validator("status")
    @classmethod
    def status_to_code(cls, v: Optional[str]) -> Optional[str]:
        """Accept either a status code or its label."""
        if not v:
            return None
        if v in STATUS_LABELS:
            return v
        code = STATUS_CODES_BY_LABEL.get(v.lower())
        if code is None:
            raise ValueError(f"Unknown status: {v}")
        return code


class DownloadAttachmentArguments(ToolArguments):
    url: str = Field(..., min_length=1)
    savePath: str = Field(..., min_length=1)


class DownloadTaskAttachmentsArguments(ToolArguments):
    taskNumber: str = Field(..., min_length=1)
    saveDir: str = Field(..., min_length=1)


def tool_result(text: str, structured: Optional[Dict[str, Any]] = None, is_error: bool = False) -> Dict[str, Any]:
    """Build an MCP tools/call result."""
    result: Dict[str, Any] = {
        "content": [{"type": "text", "text": text}],
        "isError": is_error,
    }
    if structured is not None:
        result["structuredContent"] = structured
    return result


def task_not_found_result(task_number: str) -> Dict[str, Any]:
    return tool_result(
        f"No task with number {task_number} was found among your assigned tasks.",
        structured={"found": False, "taskNumber": task_number},
        is_error=True,
    )


async def handle_get_task_by_number(services: ServiceContainer, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fetch and render one task.

    Args:
        services: Service container
        arguments: Tool arguments (taskNumber)

    Returns:
        Tool result with the rendered task, or a not-found result
    """
    args = TaskNumberArguments.model_validate(arguments)
    with trace_span("mcp.get_task_by_number", attributes={"mcp.task_number": args.taskNumber}):
        view = await services.task_service.get_task_by_number(args.taskNumber)
        if view is None:
            add_span_attribute("mcp.found", False)
            return task_not_found_result(args.taskNumber)
        add_span_attribute("mcp.found", True)
        return tool_result(
            render_task_view(view),
            structured={"found": True, "task": view.model_dump()},
        )


async def handle_search_tasks(services: ServiceContainer, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Search the caller's task list."""
    args = SearchTasksArguments.model_validate(arguments)
    statuses: List[str] = [args.status] if args.status else []
    with trace_span("mcp.search_tasks", attributes={"mcp.page": args.page, "mcp.status": args.status}):
        result = await services.task_service.search_tasks(
            statuses=statuses,
            assignee=args.assignee,
            project_id=args.projectId,
            page=args.page,
        )
        add_span_attribute("mcp.tasks_count", result.total)
    return tool_result(render_task_list(result), structured=result.model_dump())


async def handle_download_attachment(services: ServiceContainer, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Download one attachment URL to a local path."""
    args = DownloadAttachmentArguments.model_validate(arguments)
    with trace_span("mcp.download_attachment"):
        result = await services.attachment_service.download(args.url, args.savePath)
    return tool_result(
        render_download(result),
        structured={"path": result.path, "size": result.size},
    )


async def handle_download_task_attachments(services: ServiceContainer, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """
    Download all attachments of a task into a directory.

    Individual download failures are listed in the result; the call itself
    only fails when the task cannot be retrieved.
    """
    args = DownloadTaskAttachmentsArguments.model_validate(arguments)
    with trace_span("mcp.download_task_attachments", attributes={"mcp.task_number": args.taskNumber}):
        view = await services.task_service.get_task_by_number(args.taskNumber)
        if view is None:
            return task_not_found_result(args.taskNumber)
        results = await services.attachment_service.download_task_attachments(view, args.saveDir)
        add_span_attribute("mcp.files_count", len(results))

    if not results:
        return tool_result(
            f"Task #{args.taskNumber} has no attachments.",
            structured={"found": True, "files": []},
        )

    failed = [r for r in results if not r.ok]
    lines = [
        f"Downloaded {len(results) - len(failed)} of {len(results)} attachments of task #{args.taskNumber}",
        f"Saved to: {args.saveDir}",
        "",
    ]
    lines.extend(f"[{r.source}] {render_download(r)}" for r in results)
    return tool_result(
        "\n".join(lines),
        structured={
            "found": True,
            "files": [
                {"source": r.source, "url": r.url, "path": r.path, "size": r.size, "error": r.error}
                for r in results
            ],
        },
        is_error=len(failed) == len(results),
    )


TOOL_HANDLERS = {
    "get_task_by_number": handle_get_task_by_number,
    "search_tasks": handle_search_tasks,
    "download_attachment": handle_download_attachment,
    "download_task_attachments": handle_download_task_attachments,
}

"""Markdown rendering of task views for MCP tool results."""

import os
from typing import List

from flowtask.models import NormalizedTaskView, TaskListResult
from flowtask.services.attachment_service import DownloadResult


def format_file_size(size: str) -> str:
    """
    Render a byte count as B, KB or MB with one decimal.

    Args:
        size: Byte count as a string

    Returns:
        Human-readable size, or the input unchanged if it is not an integer
    """
    try:
        value = int(str(size).strip())
    except ValueError:
        return size
    if value < 1024:
        return f"{value} B"
    if value < 1024 * 1024:
        return f"{value / 1024:.1f} KB"
    return f"{value / (1024 * 1024):.1f} MB"


def render_task_view(view: NormalizedTaskView) -> str:
    """Render a full task view as markdown."""
    lines: List[str] = []

    lines.append(f"# Task #{view.task_number}: {view.task_name}")
    lines.append("")
    lines.append("## Details")
    lines.append(f"- **Project**: {view.project_name}")
    lines.append(f"- **Status**: {view.status_text}")
    lines.append(f"- **Priority**: {view.priority}")
    lines.append(f"- **Progress**: {view.progress}")
    if view.start_date:
        lines.append(f"- **Start date**: {view.start_date}")
    if view.end_date:
        lines.append(f"- **Due date**: {view.end_date}")
    lines.append(f"- **Created**: {view.created_at}")
    if view.updated_at:
        lines.append(f"- **Updated**: {view.updated_at}")
    lines.append("")

    lines.append("## Assignees")
    if view.workers:
        for worker in view.workers:
            lines.append(f"- {worker.name} ({worker.id})")
    else:
        lines.append("- No assignees")
    lines.append("")

    author = view.author
    lines.append("## Author")
    lines.append(f"- {author.name} ({author.id}) - {author.department} {author.position}".rstrip())
    lines.append("")

    lines.append("## Content")
    lines.append(view.content or "(no content)")
    lines.append("")

    if view.attachments:
        lines.append("## Attachments")
        for attachment in view.attachments:
            line = f"- [{attachment.file_name}]({attachment.url}) ({format_file_size(attachment.file_size)})"
            if attachment.thumbnail_url:
                line += f" [thumbnail]({attachment.thumbnail_url})"
            lines.append(line)
        lines.append("")

    if view.comments:
        lines.append("## Comments")
        for i, comment in enumerate(view.comments, start=1):
            lines.append(f"### {i}. {comment.author} ({comment.created_at})")
            lines.append(comment.content)
            if comment.attachments:
                lines.append("Attachments:")
                for attachment in comment.attachments:
                    lines.append(f"  - [{attachment.file_name}]({attachment.url})")
            for reply in comment.replies:
                lines.append(f"  > **{reply.author}** ({reply.created_at}): {reply.content}")
                for attachment in reply.attachments:
                    lines.append(f"  >   - [{attachment.file_name}]({attachment.url})")
            lines.append("")

    lines.append("---")
    lines.append(f"[Open in Flow]({view.connect_url})")
    return "\n".join(lines)


def render_task_list(result: TaskListResult) -> str:
    """Render a task search result as markdown."""
    if not result.tasks:
        return "No tasks match the given filters."

    lines = [f"# Tasks ({len(result.tasks)} shown)", ""]
    for i, task in enumerate(result.tasks, start=1):
        lines.append(f"## {i}. [#{task.task_number}] {task.task_name}")
        lines.append(f"   - Status: {task.status_text}")
        lines.append(f"   - Due date: {task.end_date or 'none'}")
        lines.append(f"   - Project: {task.project_name}")
        if task.workers:
            lines.append(f"   - Assignees: {', '.join(task.workers)}")
        lines.append("")

    if result.has_more:
        lines.append("---")
        lines.append("(more tasks available on the next page)")
    return "\n".join(lines)


def render_download(result: DownloadResult) -> str:
    """One line describing a download outcome."""
    if not result.ok:
        return f"FAILED {result.url} -> {result.path}: {result.error}"
    return f"{os.path.basename(result.path)} ({result.size / 1024:.1f} KB) -> {result.path}"

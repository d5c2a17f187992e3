"""
Pydantic models for the normalized output returned to callers.
"""
from typing import Optional, List

from pydantic import BaseModel


class AttachmentView(BaseModel):
    """Attachment on the task body."""
    file_name: str
    file_size: str
    url: str
    thumbnail_url: Optional[str] = None


class LinkView(BaseModel):
    """Attachment on a comment or reply."""
    file_name: str
    url: str


class WorkerView(BaseModel):
    id: str
    name: str
    profile_image: str


class AuthorView(BaseModel):
    id: str
    name: str
    department: str
    position: str


class ReplyView(BaseModel):
    author: str
    content: str
    created_at: str
    attachments: List[LinkView] = []


class CommentView(BaseModel):
    """One remark in the flattened comment thread, with its replies."""
    remark_id: str
    author: str
    content: str
    created_at: str
    is_system_remark: bool
    is_delete_flagged: bool
    reply_count: int
    attachments: List[LinkView] = []
    replies: List[ReplyView] = []


class NormalizedTaskView(BaseModel):
    """Canonical view of one task assembled from all Flow endpoints."""
    task_number: str
    task_name: str
    status: str
    status_text: str
    priority: str
    progress: str
    start_date: str
    end_date: str
    workers: List[WorkerView] = []
    author: AuthorView
    project_name: str
    project_id: str
    content: str
    created_at: str
    updated_at: str
    attachments: List[AttachmentView] = []
    comments: List[CommentView] = []
    connect_url: str


class TaskListItem(BaseModel):
    """Row of a task list search."""
    task_number: str
    task_name: str
    status: str
    status_text: str
    end_date: str
    project_name: str
    project_id: str
    workers: List[str] = []


class TaskListResult(BaseModel):
    """Result of a task list search."""
    tasks: List[TaskListItem] = []
    has_more: bool = False
    total: int = 0

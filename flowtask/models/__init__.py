"""
Pydantic models for Flow records and normalized views.
"""

from flowtask.models.comment_models import Attachment, Remark, Reply
from flowtask.models.task_models import (
    ColumnData,
    TaskColumn,
    TaskSummary,
    Worker,
    TaskMeta,
    PostRecord,
    TaskListPage,
)
from flowtask.models.view_models import (
    AttachmentView,
    LinkView,
    WorkerView,
    AuthorView,
    ReplyView,
    CommentView,
    NormalizedTaskView,
    TaskListItem,
    TaskListResult,
)

__all__ = [
    "Attachment", "Remark", "Reply",
    "ColumnData", "TaskColumn", "TaskSummary", "Worker", "TaskMeta", "PostRecord", "TaskListPage",
    "AttachmentView", "LinkView", "WorkerView", "AuthorView", "ReplyView", "CommentView",
    "NormalizedTaskView", "TaskListItem", "TaskListResult",
]

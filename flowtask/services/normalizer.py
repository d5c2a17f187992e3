"""
Normalizer - merges the located summary, post detail, assembled remark thread
and reply map into one NormalizedTaskView.
"""
import json
from typing import Optional, List, Dict

from flowtask.models import (
    TaskSummary,
    PostRecord,
    Remark,
    Reply,
    Attachment,
    NormalizedTaskView,
    AttachmentView,
    LinkView,
    WorkerView,
    AuthorView,
    ReplyView,
    CommentView,
    TaskListItem,
)

UNKNOWN_LABEL = "Unknown"

STATUS_LABELS: Dict[str, str] = {
    "0": "Waiting",
    "1": "Completed",
    "2": "On hold",
    "3": "Cancelled",
    "4": "In progress",
}

PRIORITY_LABELS: Dict[str, str] = {
    "": "None",
    "1": "Low",
    "2": "Normal",
    "3": "High",
    "4": "Urgent",
}


def status_label(code: Optional[str]) -> str:
    """Display label for a status code; unrecognized codes map to UNKNOWN_LABEL."""
    return STATUS_LABELS.get(code or "", UNKNOWN_LABEL)


def priority_label(code: Optional[str]) -> str:
    """Display label for a priority code; unrecognized codes map to UNKNOWN_LABEL."""
    return PRIORITY_LABELS.get(code or "", UNKNOWN_LABEL)


def format_date(value: Optional[str]) -> str:
    """
    Reformat a Flow timestamp.

    Flow timestamps are fixed-width digit strings (YYYYMMDD or YYYYMMDDHHMMSS,
    sometimes with trailing fraction digits).

    Returns:
        "YYYY-MM-DD HH:MM:SS" for 14+ digits, "YYYY-MM-DD" for 8+ digits,
        otherwise an empty string
    """
    if not value:
        return ""
    if len(value) >= 14 and value[:14].isdigit():
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]} {value[8:10]}:{value[10:12]}:{value[12:14]}"
    if len(value) >= 8 and value[:8].isdigit():
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"
    return ""


def parse_content(content: Optional[str]) -> str:
    """
    Extract plain text from a rich content document.

    Flow stores post bodies as JSON {"COMPS": [{"COMP_TYPE": ..., "COMP_DETAIL":
    {"CONTENTS": ...}}]}. TEXT components are joined with newlines in order.
    Anything that is not such a document, or has no TEXT components, is
    returned unchanged.
    """
    if not content:
        return ""
    try:
        document = json.loads(content)
    except ValueError:
        return content
    if not isinstance(document, dict) or not isinstance(document.get("COMPS"), list):
        return content

    texts = []
    for component in document["COMPS"]:
        if not isinstance(component, dict) or component.get("COMP_TYPE") != "TEXT":
            continue
        detail = component.get("COMP_DETAIL")
        if isinstance(detail, dict):
            texts.append(detail.get("CONTENTS") or "")
        else:
            texts.append("")
    if not texts:
        return content
    return "\n".join(texts)


class TaskNormalizer:
    """Builds NormalizedTaskView and TaskListItem instances."""

    def normalize(
        self,
        summary: TaskSummary,
        post: PostRecord,
        remarks: List[Remark],
        replies: Dict[str, List[Reply]]
    ) -> NormalizedTaskView:
        """
        Merge all pipeline results into a view.

        Args:
            summary: Task row found by the locator
            post: Primary post record
            remarks: Assembled remark thread, oldest first
            replies: Replies keyed by remark id

        Returns:
            NormalizedTaskView
        """
        meta = post.task
        status = (meta.status if meta else "") or summary.column_value("STTS")

        return NormalizedTaskView(
            task_number=(meta.task_number if meta else "") or summary.column_value("TASK_NUM"),
            task_name=(meta.task_name if meta else "") or summary.column_value("TASK_NM") or post.title,
            status=status,
            status_text=status_label(status),
            priority=priority_label(meta.priority if meta else ""),
            progress=f"{(meta.progress if meta else '') or '0'}%",
            start_date=format_date(meta.start_date if meta else ""),
            end_date=format_date(meta.end_date if meta else ""),
            workers=[
                WorkerView(id=w.id, name=w.name, profile_image=w.profile_image)
                for w in (meta.workers if meta else [])
            ],
            author=AuthorView(
                id=post.author_id,
                name=post.author_name,
                department=post.author_department,
                position=post.author_position,
            ),
            project_name=post.project_title,
            project_id=post.project_id,
            content=parse_content(post.content) or post.out_content,
            created_at=format_date(post.created_at),
            updated_at=format_date(summary.column_value("EDTR_DTTM")),
            attachments=[self._attachment(a) for a in post.attachments],
            comments=[self._comment(r, replies.get(r.remark_id, [])) for r in remarks],
            connect_url=post.connect_url,
        )

    def list_item(self, summary: TaskSummary) -> TaskListItem:
        """Summarize a task list row."""
        status = summary.column_value("STTS")
        return TaskListItem(
            task_number=summary.column_value("TASK_NUM"),
            task_name=summary.column_value("TASK_NM"),
            status=status,
            status_text=status_label(status),
            end_date=format_date(summary.column_value("END_DT")),
            project_name=summary.project_title,
            project_id=summary.project_id,
            workers=summary.column_user_names("WORKER_ID"),
        )

    @staticmethod
    def _attachment(attachment: Attachment) -> AttachmentView:
        return AttachmentView(
            file_name=attachment.file_name,
            file_size=attachment.file_size,
            url=attachment.url,
            thumbnail_url=attachment.thumbnail_url,
        )

    @staticmethod
    def _link(attachment: Attachment) -> LinkView:
        return LinkView(file_name=attachment.file_name, url=attachment.url)

    def _comment(self, remark: Remark, replies: List[Reply]) -> CommentView:
        return CommentView(
            remark_id=remark.remark_id,
            author=remark.author_name,
            content=remark.content,
            created_at=format_date(remark.created_at),
            is_system_remark=remark.is_system_remark,
            is_delete_flagged=remark.is_delete_flagged,
            reply_count=remark.reply_total,
            attachments=[self._link(a) for a in remark.image_attachments],
            replies=[
                ReplyView(
                    author=reply.author_name,
                    content=reply.content,
                    created_at=format_date(reply.created_at),
                    attachments=[self._link(a) for a in reply.attachments],
                )
                for reply in replies
            ],
        )

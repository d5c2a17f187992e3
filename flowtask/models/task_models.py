"""
Pydantic models for Flow task records: list summaries and post details.
"""
from typing import Optional, List, Dict

from pydantic import Field, PrivateAttr

from flowtask.models.comment_models import FlowRecord, Attachment, Remark, to_count


class ColumnData(FlowRecord):
    """One data cell of a tagged task column."""
    value: Optional[str] = Field(None, alias="CUSTOM_COLUMN_DATA")
    user_name: Optional[str] = Field(None, alias="USER_NM")
    option_name: Optional[str] = Field(None, alias="OPTION_NAME")


class TaskColumn(FlowRecord):
    """Typed column of a task row, tagged by its default column type."""
    column_tag: str = Field("", alias="DEFAULT_COLUMN_TYPE")
    column_type: str = Field("", alias="COLUMN_TYPE")
    column_id: str = Field("", alias="COLUMN_SRNO")
    cells: List[ColumnData] = Field(default_factory=list, alias="COLUMN_DATA_REC")


class TaskSummary(FlowRecord):
    """Task row returned by the task list endpoint."""
    project_id: str = Field(..., alias="COLABO_SRNO")
    comment_id: str = Field(..., alias="COLABO_COMMT_SRNO")
    project_title: str = Field("", alias="COLABO_TTL")
    task_id: str = Field("", alias="TASK_SRNO")
    columns: List[TaskColumn] = Field(default_factory=list, alias="TASK_COLUMN_REC")

    _columns_by_tag: Dict[str, TaskColumn] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        for column in self.columns:
            # First column wins when a tag repeats
            self._columns_by_tag.setdefault(column.column_tag, column)

    def column(self, tag: str) -> Optional[TaskColumn]:
        """Column tagged `tag`, or None."""
        return self._columns_by_tag.get(tag)

    def column_value(self, tag: str) -> str:
        """First cell value of the column tagged `tag`, or empty string."""
        column = self.column(tag)
        if column is None or not column.cells:
            return ""
        return column.cells[0].value or ""

    def column_user_names(self, tag: str) -> List[str]:
        column = self.column(tag)
        if column is None:
            return []
        return [cell.user_name for cell in column.cells if cell.user_name]


class Worker(FlowRecord):
    """Task assignee."""
    id: str = Field("", alias="WORKER_ID")
    name: str = Field("", alias="WORKER_NM")
    profile_image: str = Field("", alias="WORKER_PRFL_PHTG")


class TaskMeta(FlowRecord):
    """Task metadata embedded in a post record."""
    task_number: str = Field("", alias="TASK_NUM")
    task_name: str = Field("", alias="TASK_NM")
    status: str = Field("", alias="STTS")
    priority: str = Field("", alias="PRIORITY")
    progress: str = Field("", alias="PROGRESS")
    start_date: str = Field("", alias="START_DT")
    end_date: str = Field("", alias="END_DT")
    workers: List[Worker] = Field(default_factory=list, alias="WORKER_REC")


class PostRecord(FlowRecord):
    """A task's primary post, with its embedded remark page."""
    project_id: str = Field(..., alias="COLABO_SRNO")
    comment_id: str = Field(..., alias="COLABO_COMMT_SRNO")
    project_title: str = Field("", alias="COLABO_TTL")
    title: str = Field("", alias="COMMT_TTL")
    content: str = Field("", alias="CNTN")
    out_content: str = Field("", alias="OUT_CNTN")
    author_id: str = Field("", alias="RGSR_ID")
    author_name: str = Field("", alias="RGSR_NM")
    author_department: str = Field("", alias="RGSR_DVSN_NM")
    author_position: str = Field("", alias="RGSR_JBCL_NM")
    created_at: str = Field("", alias="COMMT_RGSN_DTTM")
    remark_count: str = Field("0", alias="REMARK_CNT")
    connect_url: str = Field("", alias="CONNECT_URL")
    attachments: List[Attachment] = Field(default_factory=list, alias="IMG_ATCH_REC")
    remarks: List[Remark] = Field(default_factory=list, alias="REMARK_REC")
    tasks: List[TaskMeta] = Field(default_factory=list, alias="TASK_REC")

    @property
    def total_remark_count(self) -> int:
        """Server-reported number of remarks on the post."""
        return to_count(self.remark_count)

    @property
    def task(self) -> Optional[TaskMeta]:
        return self.tasks[0] if self.tasks else None


class TaskListPage(FlowRecord):
    """One page of the task list endpoint."""
    tasks: List[TaskSummary] = Field(default_factory=list, alias="TASK_REC")
    next_flag: str = Field("N", alias="NEXT_YN")

    @property
    def has_more(self) -> bool:
        return self.next_flag == "Y"

"""
Pydantic models for Flow remarks, replies and attachments.

Remote records use upper-case Flow field names; models alias them to
snake_case attributes and ignore fields they do not use.
"""
from typing import Optional, List, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FlowRecord(BaseModel):
    """Base for records parsed from Flow responses."""
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def null_to_default(cls, v: Any, info) -> Any:
        """Flow sends null for empty lists and blank fields; use the field default."""
        if v is not None:
            return v
        field = cls.model_fields.get(info.field_name)
        if field is None or field.is_required():
            return v
        return field.get_default(call_default_factory=True)


def to_count(value: Optional[str]) -> int:
    """Parse a Flow count string, treating anything non-numeric as zero."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


class Attachment(FlowRecord):
    """File or image attached to a post, remark or reply."""
    file_name: str = Field("", alias="ORCP_FILE_NM")
    file_size: str = Field("", alias="FILE_SIZE")
    url: str = Field("", alias="ATCH_URL")
    thumbnail_url: Optional[str] = Field(None, alias="THUM_IMG_PATH")


class Remark(FlowRecord):
    """Comment-thread entry on a task's primary post."""
    project_id: str = Field("", alias="COLABO_SRNO")
    comment_id: str = Field("", alias="COLABO_COMMT_SRNO")
    remark_id: str = Field(..., alias="COLABO_REMARK_SRNO")
    author_id: str = Field("", alias="RGSR_ID")
    author_name: str = Field("", alias="RGSR_NM")
    author_position: Optional[str] = Field(None, alias="RGSR_JBCL_NM")
    author_org_id: Optional[str] = Field(None, alias="RGSR_USE_INTT_ID")
    content: str = Field("", alias="REMARK_CNTN")
    plain_content: str = Field("", alias="CNTN")
    created_at: str = Field("", alias="RGSN_DTTM")
    edited_at: str = Field("", alias="EDTR_DTTM")
    delete_flag: str = Field("N", alias="DELETE_YN")
    system_remark_flag: str = Field("N", alias="SYSTEM_REMARK_YN")
    reply_count: str = Field("0", alias="REPLY_CNT")
    lang: str = Field("", alias="LANG")
    sys_code: str = Field("", alias="SYS_CODE")
    file_attachments: List[Attachment] = Field(default_factory=list, alias="REMARK_ATCH_REC")
    image_attachments: List[Attachment] = Field(default_factory=list, alias="REMARK_IMG_ATCH_REC")

    @property
    def reply_total(self) -> int:
        return to_count(self.reply_count)

    @property
    def is_delete_flagged(self) -> bool:
        return self.delete_flag == "Y"

    @property
    def is_system_remark(self) -> bool:
        return self.system_remark_flag == "Y"


class Reply(FlowRecord):
    """Nested response to a remark."""
    author_name: str = Field("", alias="RGSR_NM")
    content: str = Field("", alias="CNTN")
    created_at: str = Field("", alias="RGSN_DTTM")
    attachments: List[Attachment] = Field(default_factory=list, alias="IMG_ATCH_REC")

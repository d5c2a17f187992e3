"""
Flow API client: one method per remote endpoint.

Methods build the request documents Flow expects and parse the responses into
models. The backfill endpoint's records are returned raw because their field
names differ from the embedded remark shape; RemarkBackfill remaps them.
"""
from typing import Optional, List, Dict, Any

from pydantic import ValidationError

from flowtask.client.transport import FlowTransport
from flowtask.config import Credentials
from flowtask.exceptions import ResponseFormatError
from flowtask.models import TaskListPage, PostRecord, Reply


TASK_LIST_ENDPOINT = "/ACT_GRID_TASK_LIST_R001.jct"
TASK_DETAIL_ENDPOINT = "/COLABO2_R104.jct?mode=DETAIL"
REPLY_LIST_ENDPOINT = "/ACT_FETCH_REPLY_LIST.jct"
PREVIOUS_REMARKS_ENDPOINT = "/COLABO2_REMARK_R101.jct?mode=M"

# Task grid column ids used by list filters
ASSIGNEE_COLUMN_ID = "1"
STATUS_COLUMN_ID = "9"


class FlowApiClient:
    """Typed access to the Flow endpoints used by the task pipeline."""

    def __init__(self, transport: FlowTransport, credentials: Credentials):
        self.transport = transport
        self.credentials = credentials

    def _base_payload(self) -> Dict[str, Any]:
        # The session token travels in the body under RGSN_DTTM
        return {
            "USER_ID": self.credentials.user_id,
            "RGSN_DTTM": self.credentials.access_token,
        }

    async def list_tasks(
        self,
        assignee: Optional[str] = None,
        statuses: Optional[List[str]] = None,
        project_id: Optional[str] = None,
        page: int = 1
    ) -> TaskListPage:
        """
        Query the task grid.

        Args:
            assignee: Assignee user id (defaults to the caller)
            statuses: Status codes to include; each adds a category filter
            project_id: Restrict to one project
            page: 1-based page number

        Returns:
            TaskListPage with the task rows and the has-more flag
        """
        assignee = assignee or self.credentials.user_id
        filters: List[Dict[str, Any]] = [{
            "FILTER_DATA": assignee,
            "USER_REC": [{"USER_ID": assignee}],
            "COLUMN_SRNO": ASSIGNEE_COLUMN_ID,
            "OPERATOR_TYPE": "EQUAL",
        }]
        for status in statuses or []:
            filters.append({
                "COLUMN_SRNO": STATUS_COLUMN_ID,
                "FILTER_DATA": status,
                "OPERATOR_TYPE": "CATEGORY",
            })

        payload = {
            **self._base_payload(),
            "USE_INTT_ID": self.credentials.org_id,
            "packetOption": 2,
            "PG_NO": page,
            "USAGE_TYPE": "ALL",
            "USAGE_FEATURE": "TASK",
            "USAGE_SRNO": -1,
            "COLABO_SRNO": project_id or "",
            "filterRootId": "taskFilterArea",
            "gridRootId": "taskContainerArea",
            "pageCode": "task",
            "SEARCH_WORD": "",
            "SORT_REC": [],
            "FILTER_REC": filters,
        }
        data = await self.transport.send(TASK_LIST_ENDPOINT, payload)
        return _parse(TaskListPage, data, TASK_LIST_ENDPOINT)

    async def get_task_detail(
        self,
        project_id: str,
        comment_id: str,
        remark_page_size: int = 100
    ) -> List[PostRecord]:
        """
        Load the post records for a task.

        Args:
            project_id: Project id (COLABO_SRNO)
            comment_id: Post id (COLABO_COMMT_SRNO)
            remark_page_size: Number of remarks to embed in the post

        Returns:
            Post records in response order (normally one)
        """
        payload = {
            **self._base_payload(),
            "GUBUN": "DETAIL",
            "COLABO_SRNO": project_id,
            "COLABO_COMMT_SRNO": comment_id,
            "COLABO_REMARK_SRNO": "-1",
            "RENEWAL_YN": "Y",
            "PG_NO": 1,
            "PG_PER_CNT": remark_page_size,
            "COPY_YN": "N",
        }
        data = await self.transport.send(TASK_DETAIL_ENDPOINT, payload)
        records = _records(data, "COMMT_REC", TASK_DETAIL_ENDPOINT)
        return [_parse(PostRecord, record, TASK_DETAIL_ENDPOINT) for record in records]

    async def get_replies(
        self,
        project_id: str,
        comment_id: str,
        remark_id: str,
        author_org_id: str
    ) -> List[Reply]:
        """Fetch the nested replies of one remark, in server order."""
        payload = {
            **self._base_payload(),
            "COLABO_SRNO": project_id,
            "COLABO_COMMT_SRNO": comment_id,
            "COLABO_REMARK_SRNO": remark_id,
            "RGSR_USE_INTT_ID": author_org_id,
            "packetOption": "PREVENT_EXECUTE",
        }
        data = await self.transport.send(REPLY_LIST_ENDPOINT, payload)
        records = _records(data, "REPLY_REC", REPLY_LIST_ENDPOINT)
        return [_parse(Reply, record, REPLY_LIST_ENDPOINT) for record in records]

    async def get_previous_remarks(
        self,
        project_id: str,
        comment_id: str,
        anchor_remark_id: str
    ) -> List[Dict[str, Any]]:
        """
        Fetch remarks older than the anchor remark.

        Returns:
            Raw COLABO_REMARK_REC records, in server order
        """
        payload = {
            **self._base_payload(),
            "MODE": "M",
            "ORDER_TYPE": "P",
            "COLABO_SRNO": project_id,
            "COLABO_COMMT_SRNO": comment_id,
            "SRCH_COLABO_REMARK_SRNO": anchor_remark_id,
            "REPEAT_DTTM": "",
            "REMARK_FILTER": "",
            "packetOption": 1,
        }
        data = await self.transport.send(PREVIOUS_REMARKS_ENDPOINT, payload)
        return _records(data, "COLABO_REMARK_REC", PREVIOUS_REMARKS_ENDPOINT)


def _parse(model, record: Any, endpoint: str):
    """Validate one record, reporting schema mismatches as ResponseFormatError."""
    try:
        return model.model_validate(record)
    except ValidationError as e:
        raise ResponseFormatError(
            f"Unexpected {model.__name__} shape from {endpoint}",
            endpoint=endpoint,
            original_error=e,
        )


def _records(data: Dict[str, Any], key: str, endpoint: str) -> List[Any]:
    """Record list under `key`; a missing or null list is empty."""
    records = data.get(key) or []
    if not isinstance(records, list):
        raise ResponseFormatError(f"{key} from {endpoint} is not a list", endpoint=endpoint)
    return records

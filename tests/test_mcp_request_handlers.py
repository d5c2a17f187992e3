"""
Tests for MCP JSON-RPC dispatch and tool handlers, with services mocked.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from flowtask.exceptions import TransportError
from flowtask.mcp.request_handlers import handle_jsonrpc_request, list_tools
from flowtask.models import NormalizedTaskView, AuthorView, AttachmentView, TaskListResult, TaskListItem
from flowtask.services.attachment_service import DownloadResult


def make_view():
    return NormalizedTaskView(
        task_number="8449", task_name="Fix login", status="4", status_text="In progress",
        priority="High", progress="40%", start_date="", end_date="",
        author=AuthorView(id="p", name="Park", department="", position=""),
        project_name="P", project_id="100", content="body", created_at="", updated_at="",
        attachments=[AttachmentView(file_name="a.png", file_size="1", url="https://files/a.png")],
        connect_url="https://flow.team/l/x",
    )


@pytest.fixture
def mock_services():
    services = MagicMock()
    services.task_service.get_task_by_number = AsyncMock(return_value=make_view())
    services.task_service.search_tasks = AsyncMock(return_value=TaskListResult(
        tasks=[TaskListItem(
            task_number="1", task_name="A", status="4", status_text="In progress",
            end_date="", project_name="P", project_id="100",
        )],
        total=1,
    ))
    services.attachment_service.download = AsyncMock(
        return_value=DownloadResult(url="https://files/a.png", path="/tmp/a.png", size=10)
    )
    services.attachment_service.download_task_attachments = AsyncMock(return_value=[
        DownloadResult(url="https://files/a.png", path="/tmp/d/1_a.png", size=10),
    ])
    return services


def call(name, arguments, request_id=1):
    return {"jsonrpc": "2.0", "id": request_id, "method": "tools/call", "params": {"name": name, "arguments": arguments}}


class TestProtocolMethods:
    """Tests for non-tool JSON-RPC methods."""

    @pytest.mark.asyncio
    async def test_initialize(self, mock_services):
        response = await handle_jsonrpc_request({"jsonrpc": "2.0", "id": 1, "method": "initialize"}, mock_services)

        assert response["id"] == 1
        assert response["result"]["protocolVersion"] == "2024-11-05"
        assert response["result"]["serverInfo"]["name"] == "flowtask-mcp-service"

    @pytest.mark.asyncio
    async def test_tools_list(self, mock_services):
        response = await handle_jsonrpc_request({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}, mock_services)

        tools = {tool["name"]: tool for tool in response["result"]["tools"]}
        assert set(tools) == {"get_task_by_number", "search_tasks", "download_attachment", "download_task_attachments"}
        assert tools["get_task_by_number"]["inputSchema"]["required"] == ["taskNumber"]
        assert tools["search_tasks"]["inputSchema"]["required"] == []
        assert "optional" not in tools["search_tasks"]["inputSchema"]["properties"]["status"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,key", [("prompts/list", "prompts"), ("resources/list", "resources")])
    async def test_empty_lists(self, mock_services, method, key):
        response = await handle_jsonrpc_request({"jsonrpc": "2.0", "id": 3, "method": method}, mock_services)
        assert response["result"] == {key: []}

    @pytest.mark.asyncio
    async def test_ping(self, mock_services):
        response = await handle_jsonrpc_request({"jsonrpc": "2.0", "id": 4, "method": "ping"}, mock_services)
        assert response["result"] == {}

    @pytest.mark.asyncio
    async def test_notification_gets_no_response(self, mock_services):
        request = {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert await handle_jsonrpc_request(request, mock_services) is None

    @pytest.mark.asyncio
    async def test_unknown_method(self, mock_services):
        response = await handle_jsonrpc_request({"jsonrpc": "2.0", "id": 5, "method": "nope"}, mock_services)
        assert response["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_invalid_request(self, mock_services):
        response = await handle_jsonrpc_request({"jsonrpc": "2.0", "id": 6}, mock_services)
        assert response["error"]["code"] == -32600

    def test_list_tools_matches_functions(self):
        assert len(list_tools()) == 4


class TestToolsCall:
    """Tests for tools/call dispatch."""

    @pytest.mark.asyncio
    async def test_get_task_by_number(self, mock_services):
        """Test the task is rendered and returned with structured content."""
        # Execute
        response = await handle_jsonrpc_request(call("get_task_by_number", {"taskNumber": "8449"}), mock_services)

        # Verify
        result = response["result"]
        assert result["isError"] is False
        assert result["content"][0]["text"].startswith("# Task #8449: Fix login")
        assert result["structuredContent"]["found"] is True
        assert result["structuredContent"]["task"]["task_number"] == "8449"
        mock_services.task_service.get_task_by_number.assert_awaited_once_with("8449")

    @pytest.mark.asyncio
    async def test_not_found_is_tool_error_not_rpc_error(self, mock_services):
        """Test absence is a normal result flagged isError, distinct from failures."""
        mock_services.task_service.get_task_by_number.return_value = None

        response = await handle_jsonrpc_request(call("get_task_by_number", {"taskNumber": "1"}), mock_services)

        assert "error" not in response
        assert response["result"]["isError"] is True
        assert response["result"]["structuredContent"] == {"found": False, "taskNumber": "1"}

    @pytest.mark.asyncio
    async def test_transport_failure_is_rpc_error(self, mock_services):
        """Test upstream failures become JSON-RPC internal errors carrying the type."""
        mock_services.task_service.get_task_by_number.side_effect = TransportError("Flow API timeout")

        response = await handle_jsonrpc_request(call("get_task_by_number", {"taskNumber": "1"}), mock_services)

        assert response["error"]["code"] == -32603
        assert response["error"]["data"]["error_type"] == "TransportError"

    @pytest.mark.asyncio
    async def test_missing_argument_is_invalid_params(self, mock_services):
        response = await handle_jsonrpc_request(call("get_task_by_number", {}), mock_services)

        assert response["error"]["code"] == -32602
        mock_services.task_service.get_task_by_number.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_tool(self, mock_services):
        response = await handle_jsonrpc_request(call("view_task_images", {"taskNumber": "1"}), mock_services)
        assert response["error"]["code"] == -32601

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,code", [("in progress", "4"), ("Completed", "1"), ("2", "2")])
    async def test_search_tasks_status_mapping(self, mock_services, status, code):
        """Test status labels and codes are both accepted."""
        response = await handle_jsonrpc_request(call("search_tasks", {"status": status}), mock_services)

        assert response["result"]["isError"] is False
        mock_services.task_service.search_tasks.assert_awaited_once_with(
            statuses=[code], assignee=None, project_id=None, page=1
        )

    @pytest.mark.asyncio
    async def test_search_tasks_unknown_status(self, mock_services):
        response = await handle_jsonrpc_request(call("search_tasks", {"status": "feedback"}), mock_services)
        assert response["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_download_attachment(self, mock_services):
        response = await handle_jsonrpc_request(
            call("download_attachment", {"url": "https://files/a.png", "savePath": "/tmp/a.png"}), mock_services
        )

        assert response["result"]["structuredContent"] == {"path": "/tmp/a.png", "size": 10}
        mock_services.attachment_service.download.assert_awaited_once_with("https://files/a.png", "/tmp/a.png")

    @pytest.mark.asyncio
    async def test_download_task_attachments(self, mock_services):
        response = await handle_jsonrpc_request(
            call("download_task_attachments", {"taskNumber": "8449", "saveDir": "/tmp/d"}), mock_services
        )

        result = response["result"]
        assert result["isError"] is False
        assert "Downloaded 1 of 1 attachments" in result["content"][0]["text"]
        assert result["structuredContent"]["files"][0]["path"] == "/tmp/d/1_a.png"

    @pytest.mark.asyncio
    async def test_download_task_attachments_not_found(self, mock_services):
        mock_services.task_service.get_task_by_number.return_value = None

        response = await handle_jsonrpc_request(
            call("download_task_attachments", {"taskNumber": "1", "saveDir": "/tmp/d"}), mock_services
        )

        assert response["result"]["structuredContent"]["found"] is False
        mock_services.attachment_service.download_task_attachments.assert_not_awaited()

"""
Mock-based tests for task route handlers.
"""
from flowtask.exceptions import TransportError, RemoteError
from flowtask.models import NormalizedTaskView, AuthorView, TaskListResult, TaskListItem


def make_view(task_number="8449"):
    return NormalizedTaskView(
        task_number=task_number, task_name="Fix login", status="4", status_text="In progress",
        priority="High", progress="40%", start_date="", end_date="",
        author=AuthorView(id="p", name="Park", department="", position=""),
        project_name="P", project_id="100", content="body", created_at="", updated_at="",
        connect_url="https://flow.team/l/x",
    )


class TestGetTask:
    """Test GET /tasks/{task_number} endpoint."""

    def test_get_task_success(self, client, mock_services):
        """Test the normalized view is returned as JSON."""
        # Setup
        mock_services.task_service.get_task_by_number.return_value = make_view()

        # Execute
        response = client.get("/tasks/8449")

        # Verify
        assert response.status_code == 200
        data = response.json()
        assert data["task_number"] == "8449"
        assert data["status_text"] == "In progress"
        mock_services.task_service.get_task_by_number.assert_awaited_once_with("8449")

    def test_get_task_not_found(self, client, mock_services):
        """Test absence maps to 404 with the error type."""
        mock_services.task_service.get_task_by_number.return_value = None

        response = client.get("/tasks/1")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["error_type"] == "TaskNotFoundError"
        assert error["context"]["resource_id"] == "1"
        assert error["request_id"] == response.headers["X-Request-ID"]

    def test_get_task_transport_failure(self, client, mock_services):
        """Test upstream transport failures map to 502."""
        mock_services.task_service.get_task_by_number.side_effect = TransportError(
            "Flow API timeout calling /ACT_GRID_TASK_LIST_R001.jct"
        )

        response = client.get("/tasks/8449")

        assert response.status_code == 502
        assert response.json()["error"]["error_type"] == "TransportError"

    def test_get_task_remote_failure(self, client, mock_services):
        """Test envelope errors map to 502, distinct from not found."""
        mock_services.task_service.get_task_by_number.side_effect = RemoteError("Flow API error: expired")

        response = client.get("/tasks/8449", headers={"X-Request-ID": "req-42"})

        assert response.status_code == 502
        assert response.json()["error"]["request_id"] == "req-42"
        assert response.headers["X-Request-ID"] == "req-42"


class TestSearchTasks:
    """Test GET /tasks endpoint."""

    def test_search_with_filters(self, client, mock_services):
        mock_services.task_service.search_tasks.return_value = TaskListResult(
            tasks=[TaskListItem(
                task_number="1", task_name="A", status="0", status_text="Waiting",
                end_date="", project_name="P", project_id="100",
            )],
            has_more=False,
            total=1,
        )

        response = client.get("/tasks", params=[("status", "0"), ("status", "4"), ("page", "2")])

        assert response.status_code == 200
        assert response.json()["total"] == 1
        mock_services.task_service.search_tasks.assert_awaited_once_with(
            statuses=["0", "4"], assignee=None, project_id=None, page=2
        )

    def test_invalid_page(self, client, mock_services):
        response = client.get("/tasks", params={"page": "0"})

        assert response.status_code == 422
        mock_services.task_service.search_tasks.assert_not_awaited()

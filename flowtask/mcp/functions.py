"""MCP tool definitions exposed through tools/list and GET /mcp/functions."""

MCP_FUNCTIONS = [
    {
        "name": "get_task_by_number",
        "description": "Look up a Flow task by its task number and return its full details: name, status, priority, progress, assignees, author, body, attachments and the complete comment thread including nested replies. Only tasks on the first page of the caller's own assigned tasks can be found.\n\nERROR HANDLING:\n- Returns a result with isError=true and {\"found\": false} if no task with this number is assigned to the caller.\n- Flow transport or API errors are returned as JSON-RPC errors (code -32603) with the error type in data.",
        "parameters": {
            "taskNumber": {
                "type": "string",
                "description": "Task number as shown in Flow (not an internal id).",
                "minLength": 1,
                "example": "8449"
            }
        }
    },
    {
        "name": "search_tasks",
        "description": "List the caller's Flow tasks, optionally filtered by status, assignee and project. Returns one page of rows with task number, name, status, due date, project and assignees, and whether more pages exist.",
        "parameters": {
            "status": {
                "type": "string",
                "optional": True,
                "description": "Status filter: a status code (0-4) or its label.",
                "enum": ["0", "1", "2", "3", "4", "waiting", "completed", "on hold", "cancelled", "in progress"],
                "example": "in progress"
            },
            "assignee": {
                "type": "string",
                "optional": True,
                "description": "Assignee user id. Defaults to the caller.",
                "example": "user@example.com"
            },
            "projectId": {
                "type": "string",
                "optional": True,
                "description": "Restrict results to one project (COLABO_SRNO).",
                "example": "12345"
            },
            "page": {
                "type": "integer",
                "optional": True,
                "default": 1,
                "minimum": 1,
                "description": "1-based page number.",
                "example": 1
            }
        }
    },
    {
        "name": "download_attachment",
        "description": "Download a Flow attachment URL and save it to a local path. Parent directories are created as needed.",
        "parameters": {
            "url": {
                "type": "string",
                "description": "Attachment URL.",
                "minLength": 1
            },
            "savePath": {
                "type": "string",
                "description": "Destination file path including the file name.",
                "minLength": 1,
                "example": "/tmp/downloads/image.png"
            }
        }
    },
    {
        "name": "download_task_attachments",
        "description": "Download every attachment of a task (body and comments) into a directory. Files are named <n>_<file> for body attachments and <n>_comment<i>_<file> for comment attachments. A failed file is reported without stopping the others.",
        "parameters": {
            "taskNumber": {
                "type": "string",
                "description": "Task number as shown in Flow.",
                "minLength": 1,
                "example": "8449"
            },
            "saveDir": {
                "type": "string",
                "description": "Target directory, created if missing.",
                "minLength": 1,
                "example": "/tmp/downloads/task_8449"
            }
        }
    },
]

"""
Service layer: the task retrieval pipeline and attachment downloads.
"""

from flowtask.services.task_service import TaskService
from flowtask.services.attachment_service import AttachmentService, DownloadResult

__all__ = ["TaskService", "AttachmentService", "DownloadResult"]

"""
Attachment service - downloads task attachments to the local filesystem.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional, List

from flowtask.client.files import FileFetcher
from flowtask.exceptions import ServiceError
from flowtask.models import NormalizedTaskView

logger = logging.getLogger(__name__)


@dataclass
class DownloadResult:
    """Outcome of one file download."""
    url: str
    path: str
    size: int = 0
    source: str = "body"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def safe_file_name(file_name: str, fallback: str = "attachment") -> str:
    """Reduce a remote file name to its base name so it cannot escape the target directory."""
    base = os.path.basename(file_name.replace("\\", "/")).strip()
    if base in ("", ".", ".."):
        return fallback
    return base


class AttachmentService:
    """Fetches attachment bytes and writes them to disk."""

    def __init__(self, fetcher: FileFetcher):
        self.fetcher = fetcher

    async def download(self, url: str, save_path: str, source: str = "body") -> DownloadResult:
        """
        Download one URL to a file.

        Args:
            url: Attachment URL
            save_path: Destination file path; parent directories are created
            source: Label of where the attachment came from

        Returns:
            DownloadResult with the written path and byte size

        Raises:
            TransportError: If the download fails
        """
        data = await self.fetcher.fetch(url)
        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(save_path, "wb") as f:
            f.write(data)
        logger.info(f"Saved {len(data)} bytes from {url} to {save_path}")
        return DownloadResult(url=url, path=save_path, size=len(data), source=source)

    async def download_task_attachments(self, view: NormalizedTaskView, save_dir: str) -> List[DownloadResult]:
        """
        Download every body and comment attachment of a task.

        Body attachments are saved as "<n>_<name>", comment attachments as
        "<n>_comment<i>_<name>", where n is a running 1-based index over all
        files and i is the 1-based comment position. Downloads run one after
        another; a failed file is recorded in its result and the rest
        continue.

        Args:
            view: Normalized task view
            save_dir: Target directory, created if missing

        Returns:
            One DownloadResult per attachment, in download order
        """
        targets = []
        for attachment in view.attachments:
            targets.append((attachment.url, attachment.file_name, "body", None))
        for position, comment in enumerate(view.comments, start=1):
            for attachment in comment.attachments:
                targets.append((attachment.url, attachment.file_name, f"comment{position}", position))

        if not targets:
            return []

        os.makedirs(save_dir, exist_ok=True)
        results: List[DownloadResult] = []
        for index, (url, file_name, source, position) in enumerate(targets, start=1):
            name = safe_file_name(file_name)
            if position is None:
                target_name = f"{index}_{name}"
            else:
                target_name = f"{index}_comment{position}_{name}"
            save_path = os.path.join(save_dir, target_name)
            try:
                results.append(await self.download(url, save_path, source=source))
            except (ServiceError, OSError) as e:
                logger.warning(f"Failed to download {url} for task {view.task_number}: {e}")
                results.append(DownloadResult(url=url, path=save_path, source=source, error=str(e)))
        return results

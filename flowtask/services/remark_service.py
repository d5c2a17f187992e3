"""
Remark thread assembly: backfill of older remarks and reply expansion.

Both stages are secondary fetches. Their failures are absorbed here: the
pipeline continues with whatever was already retrieved.
"""
import asyncio
import logging
from typing import List, Dict, Any, Tuple

from flowtask.client.flow_api import FlowApiClient
from flowtask.models import PostRecord, Remark, Reply
from flowtask.monitoring import record_degraded_fetch
from flowtask.tracing import add_span_event

logger = logging.getLogger(__name__)

# Backfill record field -> embedded remark field
BACKFILL_RENAMES = {
    "ATCH_REC": "REMARK_ATCH_REC",
    "IMG_ATCH_REC": "REMARK_IMG_ATCH_REC",
}

# Embedded remark fields the backfill endpoint does not own; always overwritten
BACKFILL_OVERRIDES = {
    "RGSR_JBCL_NM": None,
    "SYS_CODE": "",
}


def remap_backfill_record(record: Dict[str, Any]) -> Remark:
    """
    Convert a backfill endpoint record into the canonical Remark shape.

    Args:
        record: Raw COLABO_REMARK_REC entry

    Returns:
        Remark built from the renamed fields plus synthesized defaults
    """
    remapped = dict(record)
    for source, target in BACKFILL_RENAMES.items():
        remapped[target] = remapped.pop(source, None)
    remapped.update(BACKFILL_OVERRIDES)
    remapped["LANG"] = remapped.get("LANG") or ""
    return Remark.model_validate(remapped)


class RemarkBackfill:
    """Retrieves remarks older than the ones embedded in the detail page."""

    def __init__(self, api: FlowApiClient):
        self.api = api

    @staticmethod
    def should_backfill(post: PostRecord, held: List[Remark]) -> bool:
        """Backfill only when the server reports more remarks than are held and one can anchor the query."""
        return len(held) > 0 and post.total_remark_count > len(held)

    async def fetch_older(self, post: PostRecord, held: List[Remark]) -> List[Remark]:
        """
        Fetch the remarks preceding the oldest held remark.

        A single pass is made regardless of how many remarks are missing.

        Args:
            post: Post whose thread is being assembled
            held: Remarks already held, oldest first

        Returns:
            Older remarks in server order, or an empty list if the backfill
            is not needed or fails
        """
        if not self.should_backfill(post, held):
            return []

        anchor = held[0].remark_id
        try:
            records = await self.api.get_previous_remarks(post.project_id, post.comment_id, anchor)
            older = [remap_backfill_record(record) for record in records]
        except Exception as e:
            logger.warning(
                f"Remark backfill failed for post {post.project_id}/{post.comment_id} "
                f"(anchor {anchor}), continuing with embedded remarks: {e}"
            )
            _record_degraded("backfill", e, anchor)
            return []

        logger.debug(
            f"Backfilled {len(older)} remarks for post {post.project_id}/{post.comment_id} "
            f"({len(held)} held, {post.total_remark_count} reported)"
        )
        return older


class ReplyExpander:
    """Fetches nested replies for every remark that reports some."""

    def __init__(self, api: FlowApiClient, default_org_id: str, concurrency: int = 8):
        """
        Args:
            api: Flow API client
            default_org_id: Caller's org id, used when a remark carries none
            concurrency: Maximum reply fetches in flight at once
        """
        self.api = api
        self.default_org_id = default_org_id
        self.concurrency = concurrency

    async def expand(self, post: PostRecord, remarks: List[Remark]) -> Dict[str, List[Reply]]:
        """
        Fetch replies for all remarks with a positive reply count.

        Args:
            post: Post owning the remarks
            remarks: Remarks to expand

        Returns:
            Mapping of remark id to its replies in server order. A remark whose
            fetch failed maps to an empty list.
        """
        targets = [remark for remark in remarks if remark.reply_total > 0]
        if not targets:
            return {}

        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._expand_one(post, remark, semaphore) for remark in targets)
        )
        return dict(results)

    async def _expand_one(
        self,
        post: PostRecord,
        remark: Remark,
        semaphore: asyncio.Semaphore
    ) -> Tuple[str, List[Reply]]:
        org_id = self.org_id_for(remark)
        async with semaphore:
            try:
                replies = await self.api.get_replies(post.project_id, post.comment_id, remark.remark_id, org_id)
            except Exception as e:
                logger.warning(f"Reply fetch failed for remark {remark.remark_id}, leaving it without replies: {e}")
                _record_degraded("replies", e, remark.remark_id)
                return remark.remark_id, []
        return remark.remark_id, replies

    def org_id_for(self, remark: Remark) -> str:
        """Org id used for the reply query; the caller's own when the remark has none."""
        return remark.author_org_id or self.default_org_id


def _record_degraded(stage: str, error: Exception, remark_id: str) -> None:
    record_degraded_fetch(stage)
    add_span_event("flow.degraded_fetch", {
        "flow.stage": stage,
        "flow.remark_id": remark_id,
        "error.type": type(error).__name__,
    })

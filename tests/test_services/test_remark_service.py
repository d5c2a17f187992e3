"""
Unit tests for remark backfill and reply expansion.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from flowtask.client.flow_api import FlowApiClient
from flowtask.exceptions import TransportError, RemoteError
from flowtask.models import PostRecord, Remark, Reply
from flowtask.services.remark_service import RemarkBackfill, ReplyExpander, remap_backfill_record

from tests.factories import make_post, make_remark, make_backfill_record


@pytest.fixture
def mock_api():
    api = MagicMock()
    api.get_previous_remarks = AsyncMock()
    api.get_replies = AsyncMock()
    return api


def remarks(*specs):
    return [Remark.model_validate(make_remark(*spec) if isinstance(spec, tuple) else make_remark(spec)) for spec in specs]


class TestRemapBackfillRecord:
    """Tests for remap_backfill_record."""

    def test_renames_attachment_fields(self):
        """Test ATCH_REC/IMG_ATCH_REC land on the remark attachment fields."""
        remark = remap_backfill_record(make_backfill_record("1"))

        assert remark.remark_id == "1"
        assert remark.file_attachments == []
        assert [a.file_name for a in remark.image_attachments] == ["old1.png"]

    def test_synthesizes_missing_fields(self):
        """Test job title is null and lang/sys code are empty."""
        remark = remap_backfill_record(make_backfill_record("1"))

        assert remark.author_position is None
        assert remark.lang == ""
        assert remark.sys_code == ""

    def test_overrides_fields_the_endpoint_does_not_own(self):
        """Test job title and sys code are reset even when the record carries values."""
        record = {**make_backfill_record("1"), "RGSR_JBCL_NM": "Director", "SYS_CODE": "X1", "LANG": "ko"}

        remark = remap_backfill_record(record)

        assert remark.author_position is None
        assert remark.sys_code == ""
        assert remark.lang == "ko"

    def test_keeps_author_org_id(self):
        """Test the author org id survives the remap."""
        assert remap_backfill_record(make_backfill_record("1")).author_org_id == "ORG2"

    def test_does_not_mutate_input(self):
        """Test the raw record is left untouched."""
        record = make_backfill_record("1")
        remap_backfill_record(record)
        assert "IMG_ATCH_REC" in record


class TestRemarkBackfill:
    """Tests for RemarkBackfill."""

    @pytest.mark.asyncio
    async def test_backfill_anchored_on_oldest_held(self, mock_api):
        """Test older remarks are fetched with the first held remark as anchor."""
        # Setup
        held = remarks("3", "4")
        post = PostRecord.model_validate(make_post(remarks=[], remark_count=4))
        mock_api.get_previous_remarks.return_value = [make_backfill_record("1"), make_backfill_record("2")]

        # Execute
        older = await RemarkBackfill(mock_api).fetch_older(post, held)

        # Verify
        mock_api.get_previous_remarks.assert_awaited_once_with("100", "200", "3")
        assert [r.remark_id for r in older + held] == ["1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_not_attempted_when_counts_match(self, mock_api):
        """Test no backfill when the reported count equals the held count."""
        held = remarks("1")
        post = PostRecord.model_validate(make_post(remarks=[], remark_count=1))

        older = await RemarkBackfill(mock_api).fetch_older(post, held)

        assert older == []
        mock_api.get_previous_remarks.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_attempted_without_anchor(self, mock_api):
        """Test no backfill when nothing is held, whatever the reported count."""
        post = PostRecord.model_validate(make_post(remarks=[], remark_count=5))

        assert await RemarkBackfill(mock_api).fetch_older(post, []) == []
        mock_api.get_previous_remarks.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_numeric_count_means_no_backfill(self, mock_api):
        """Test an unparseable REMARK_CNT counts as zero."""
        record = make_post(remarks=[])
        record["REMARK_CNT"] = "n/a"
        post = PostRecord.model_validate(record)

        assert await RemarkBackfill(mock_api).fetch_older(post, remarks("1")) == []
        mock_api.get_previous_remarks.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_degrades_to_empty(self, mock_api):
        """Test a failed backfill is absorbed."""
        post = PostRecord.model_validate(make_post(remarks=[], remark_count=10))
        mock_api.get_previous_remarks.side_effect = RemoteError("Flow API error: boom")

        assert await RemarkBackfill(mock_api).fetch_older(post, remarks("3")) == []

    @pytest.mark.asyncio
    async def test_malformed_record_degrades_to_empty(self, mock_api):
        """Test a record without a remark id is absorbed like a failed fetch."""
        post = PostRecord.model_validate(make_post(remarks=[], remark_count=10))
        mock_api.get_previous_remarks.return_value = [{"RGSR_NM": "no id"}]

        assert await RemarkBackfill(mock_api).fetch_older(post, remarks("3")) == []

    @pytest.mark.asyncio
    async def test_failure_recorded_as_span_event(self, mock_api):
        post = PostRecord.model_validate(make_post(remarks=[], remark_count=10))
        mock_api.get_previous_remarks.side_effect = RemoteError("Flow API error: boom")

        with patch("flowtask.services.remark_service.add_span_event") as add_event:
            await RemarkBackfill(mock_api).fetch_older(post, remarks("3"))

        add_event.assert_called_once()
        name, attributes = add_event.call_args.args
        assert name == "flow.degraded_fetch"
        assert attributes["flow.stage"] == "backfill"
        assert attributes["flow.remark_id"] == "3"


class TestReplyExpander:
    """Tests for ReplyExpander."""

    @pytest.mark.asyncio
    async def test_only_remarks_with_replies_are_expanded(self, mock_api):
        """Test zero-reply remarks do not trigger fetches."""
        # Setup
        post = PostRecord.model_validate(make_post())
        thread = remarks(("1", "0"), ("2", "2"), ("3", "1"))
        mock_api.get_replies.return_value = [Reply(author_name="Lee", content="ok")]

        # Execute
        replies = await ReplyExpander(mock_api, "ORG1").expand(post, thread)

        # Verify
        assert set(replies) == {"2", "3"}
        assert mock_api.get_replies.await_count == 2

    @pytest.mark.asyncio
    async def test_uses_remark_org_then_default(self, mock_api):
        """Test the remark author's org id is used, falling back to the caller's."""
        post = PostRecord.model_validate(make_post())
        thread = remarks(("1", "1", "N", "ORG7"), ("2", "1", "N", ""))
        mock_api.get_replies.return_value = []

        await ReplyExpander(mock_api, "ORG1").expand(post, thread)

        org_ids = sorted(call.args[3] for call in mock_api.get_replies.await_args_list)
        assert org_ids == ["ORG1", "ORG7"]

    @pytest.mark.asyncio
    async def test_single_failure_isolated(self, mock_api):
        """Test one failed reply fetch leaves the other remarks' replies intact."""
        post = PostRecord.model_validate(make_post())
        thread = remarks(("1", "1"), ("2", "1"), ("3", "1"))

        async def get_replies(project_id, comment_id, remark_id, org_id):
            if remark_id == "2":
                raise TransportError("Flow API timeout")
            return [Reply(author_name=f"r{remark_id}", content="x")]

        mock_api.get_replies.side_effect = get_replies

        replies = await ReplyExpander(mock_api, "ORG1").expand(post, thread)

        assert replies["2"] == []
        assert replies["1"][0].author_name == "r1"
        assert replies["3"][0].author_name == "r3"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, mock_api):
        """Test no more than `concurrency` reply fetches are in flight."""
        post = PostRecord.model_validate(make_post())
        thread = remarks(*[(str(i), "1") for i in range(10)])
        state = {"active": 0, "peak": 0}

        async def get_replies(*args):
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            await asyncio.sleep(0.01)
            state["active"] -= 1
            return []

        mock_api.get_replies.side_effect = get_replies

        replies = await ReplyExpander(mock_api, "ORG1", concurrency=3).expand(post, thread)

        assert len(replies) == 10
        assert state["peak"] <= 3

    @pytest.mark.asyncio
    async def test_no_targets_no_calls(self, mock_api):
        """Test an empty thread issues no fetches."""
        post = PostRecord.model_validate(make_post())

        assert await ReplyExpander(mock_api, "ORG1").expand(post, []) == {}
        mock_api.get_replies.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_reply_list_isolated(self, credentials):
        """Test a scalar REPLY_REC for one remark leaves it without replies and its siblings intact."""
        # Setup
        transport = MagicMock()

        async def send(endpoint, payload):
            if payload["COLABO_REMARK_SRNO"] == "2":
                return {"REPLY_REC": 5}
            return {"REPLY_REC": [{"RGSR_NM": "Lee", "CNTN": "ok"}]}

        transport.send = AsyncMock(side_effect=send)
        post = PostRecord.model_validate(make_post())

        # Execute
        replies = await ReplyExpander(FlowApiClient(transport, credentials), "ORG1").expand(
            post, remarks(("1", "1"), ("2", "1"))
        )

        # Verify
        assert replies["2"] == []
        assert [reply.author_name for reply in replies["1"]] == ["Lee"]

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated(self, mock_api):
        """Test non-service errors from one fetch are absorbed too."""
        post = PostRecord.model_validate(make_post())

        async def get_replies(project_id, comment_id, remark_id, org_id):
            if remark_id == "1":
                raise TypeError("'int' object is not iterable")
            return [Reply(author_name="Kim", content="x")]

        mock_api.get_replies.side_effect = get_replies

        replies = await ReplyExpander(mock_api, "ORG1").expand(post, remarks(("1", "1"), ("2", "1")))

        assert replies == {"1": [], "2": [Reply(author_name="Kim", content="x")]}

    @pytest.mark.asyncio
    async def test_failure_recorded_as_span_event(self, mock_api):
        post = PostRecord.model_validate(make_post())
        mock_api.get_replies.side_effect = TransportError("Flow API timeout")

        with patch("flowtask.services.remark_service.add_span_event") as add_event:
            await ReplyExpander(mock_api, "ORG1").expand(post, remarks(("4", "1")))

        add_event.assert_called_once_with("flow.degraded_fetch", {
            "flow.stage": "replies",
            "flow.remark_id": "4",
            "error.type": "TransportError",
        })

"""
Tests for Submit-and-Poll

Tests for framechain/gateway/polling.py
"""

from typing import List

import pytest

from framechain.core.config import PollingPolicy
from framechain.core.exceptions import GatewayError, GatewayTimeoutError
from framechain.gateway.base import ModelGateway, PollResult, SubmitResult, TaskStatus
from framechain.gateway.polling import submit_and_poll

FAST = PollingPolicy(interval_seconds=0.001, max_wait_seconds=1.0, max_network_errors=3)


class ScriptedGateway(ModelGateway):
    """Gateway answering polls from a list; exceptions in the list are raised."""

    def __init__(self, submit_result: SubmitResult, polls: List = None):
        self.submit_result = submit_result
        self.polls = list(polls or [])
        self.poll_count = 0

    async def submit(self, model, params):
        return self.submit_result

    async def poll_status(self, model, task_id):
        self.poll_count += 1
        item = self.polls.pop(0) if self.polls else PollResult(TaskStatus.PENDING)
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        pass


class TestSubmitAndPoll:
    """Tests for submit_and_poll."""

    @pytest.mark.asyncio
    async def test_direct_answer(self):
        """Test a synchronous answer is returned without polling."""
        gateway = ScriptedGateway(SubmitResult(raw={"content": "hi"}))

        result = await submit_and_poll(gateway, "text-a", {}, FAST)

        assert result == {"content": "hi"}
        assert gateway.poll_count == 0

    @pytest.mark.asyncio
    async def test_polls_until_success(self):
        """Test pending polls are followed until success."""
        gateway = ScriptedGateway(SubmitResult(task_id="t1"), [
            PollResult(TaskStatus.PENDING),
            PollResult(TaskStatus.PENDING),
            PollResult(TaskStatus.SUCCESS, result={"image_url": "u"}),
        ])

        result = await submit_and_poll(gateway, "img-a", {}, FAST)

        assert result == {"image_url": "u"}
        assert gateway.poll_count == 3

    @pytest.mark.asyncio
    async def test_task_failure(self):
        """Test a failed task raises GatewayError with its reason."""
        gateway = ScriptedGateway(SubmitResult(task_id="t1"), [
            PollResult(TaskStatus.FAILED, error="content policy"),
        ])

        with pytest.raises(GatewayError, match="content policy"):
            await submit_and_poll(gateway, "img-a", {}, FAST)

    @pytest.mark.asyncio
    async def test_timeout_is_distinct(self):
        """Test exceeding max wait raises GatewayTimeoutError."""
        policy = PollingPolicy(interval_seconds=0.01, max_wait_seconds=0.03)
        gateway = ScriptedGateway(SubmitResult(task_id="t1"))

        with pytest.raises(GatewayTimeoutError):
            await submit_and_poll(gateway, "video-a", {}, policy)

    @pytest.mark.asyncio
    async def test_tolerates_transient_network_errors(self):
        """Test fewer than max consecutive network errors are tolerated."""
        gateway = ScriptedGateway(SubmitResult(task_id="t1"), [
            GatewayError("reset"),
            GatewayError("reset"),
            PollResult(TaskStatus.SUCCESS, result={"video_url": "v"}),
        ])

        result = await submit_and_poll(gateway, "video-a", {}, FAST)

        assert result == {"video_url": "v"}

    @pytest.mark.asyncio
    async def test_too_many_network_errors(self):
        """Test max consecutive network errors abort the task."""
        gateway = ScriptedGateway(SubmitResult(task_id="t1"), [GatewayError("reset")] * 3)

        with pytest.raises(GatewayError) as exc_info:
            await submit_and_poll(gateway, "video-a", {}, FAST)

        assert not isinstance(exc_info.value, GatewayTimeoutError)
        assert gateway.poll_count == 3

"""
FrameChain Submit-and-Poll

Submits a request and, when the gateway answers with a task id, polls at a
fixed interval until the task succeeds, fails or the wait limit elapses.
"""

import asyncio
import time
from typing import Any, Dict

from framechain.core.config import PollingPolicy
from framechain.core.exceptions import GatewayError, GatewayTimeoutError
from framechain.core.logging_config import get_logger

from .base import ModelGateway, TaskStatus

logger = get_logger("gateway.polling")


async def submit_and_poll(
    gateway: ModelGateway,
    model: str,
    params: Dict[str, Any],
    policy: PollingPolicy,
    label: str = "task"
) -> Dict[str, Any]:
    """
    Run one gateway call to completion.

    Args:
        gateway: Model gateway
        model: Model identifier
        params: Normalized request parameters
        policy: Polling interval, wait limit and network error tolerance
        label: Log tag

    Returns:
        The direct submission payload, or the successful task payload

    Raises:
        GatewayError: Submission failed, the task failed, or too many consecutive
            network errors occurred while polling
        GatewayTimeoutError: The task did not finish within policy.max_wait_seconds
    """
    submitted = await gateway.submit(model, params)
    if submitted.is_direct:
        return submitted.raw

    task_id = submitted.task_id
    started = time.monotonic()
    network_errors = 0
    polls = 0
    logger.info(f"[{label}] Task {task_id} submitted to {model}, polling...")

    while True:
        await asyncio.sleep(policy.interval_seconds)
        polls += 1

        elapsed = time.monotonic() - started
        if elapsed > policy.max_wait_seconds:
            raise GatewayTimeoutError(
                f"[{label}] Task {task_id} did not finish within {policy.max_wait_seconds:.0f}s",
                model=model,
                details={"task_id": task_id, "polls": polls}
            )

        try:
            poll = await gateway.poll_status(model, task_id)
        except GatewayError as e:
            network_errors += 1
            logger.warning(
                f"[{label}] Poll {polls} failed ({network_errors}/{policy.max_network_errors}): {e}"
            )
            if network_errors >= policy.max_network_errors:
                raise GatewayError(
                    f"[{label}] Polling task {task_id} failed {network_errors} times in a row: {e.message}",
                    model=model,
                    details={"task_id": task_id}
                ) from e
            continue

        network_errors = 0

        if poll.status is TaskStatus.SUCCESS:
            logger.info(f"[{label}] Task {task_id} succeeded after {polls} polls")
            return poll.result
        if poll.status is TaskStatus.FAILED:
            raise GatewayError(
                f"[{label}] Task {task_id} failed: {poll.error or 'unknown error'}",
                model=model,
                details={"task_id": task_id}
            )

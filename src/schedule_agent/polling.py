"""
Polling client — watch a chain's status from the caller side.

Polling runs as one asyncio task owned by a PollHandle. It stops on a
terminal status, on a completed multi-part payload that has stopped
growing, on the absolute timeout, or on cancel().

Termination gating for multi-part answers:
- a completed payload that looks unfinished (declared "Part 2 of 3", an
  unclosed trailing structure) or keeps growing is polled again
- it is final once its length is unchanged for ``stable_polls`` polls or
  the ``multipart_wait_s`` budget runs out
The keyword/marker checks are a heuristic; the budgets are the backstop.
"""

import asyncio
import inspect
import json
import logging
import math
from typing import Any, Awaitable, Callable, Optional

from schedule_agent.models.session import SessionStatus, StatusReport
from schedule_agent.parsing.fragments import part_markers
from schedule_agent.parsing.scanner import scan

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 2.0
DEFAULT_TIMEOUT_S = 600.0
DEFAULT_MULTIPART_WAIT_S = 30.0
DEFAULT_STABLE_POLLS = 2

PENDING_PROGRESS = 5
PROCESSING_FLOOR = 10
PROCESSING_CEILING = 95
# Elapsed seconds for the time-based estimate to cover ~63% of the way to the ceiling
PROGRESS_TIME_CONSTANT_S = 60.0

COMPLETION_KEYWORDS = ("schedule complete", "final part", "all parts", "end of schedule")

REASON_COMPLETED = "completed"
REASON_FAILED = "failed"
REASON_CANCELLED = "cancelled"
REASON_TIMEOUT = "timeout"
REASON_STOPPED = "stopped"

StatusFetcher = Callable[[str], Awaitable[StatusReport]]
Handler = Callable[..., Any]


def estimate_progress(
    status: SessionStatus,
    elapsed_s: float = 0.0,
    total_processed: int = 0,
    estimated_total: Optional[int] = None,
) -> int:
    """Percentage for a status snapshot. Pure; callers keep it monotonic.

    pending is a small fixed value, processing climbs toward 95 (by work done
    when a total is known, by elapsed time otherwise), terminal is 100.
    """
    status = SessionStatus(status)
    if status.is_terminal:
        return 100
    if status == SessionStatus.PENDING:
        return PENDING_PROGRESS
    span = PROCESSING_CEILING - PROCESSING_FLOOR
    if estimated_total:
        fraction = min(1.0, max(0, total_processed) / estimated_total)
    else:
        fraction = 1.0 - math.exp(-max(0.0, elapsed_s) / PROGRESS_TIME_CONSTANT_S)
    return min(PROCESSING_CEILING, PROCESSING_FLOOR + int(span * fraction))


def payload_length(payload: Any) -> int:
    if payload is None:
        return 0
    if isinstance(payload, str):
        return len(payload)
    return len(json.dumps(payload, default=str))


def looks_unfinished(payload: Any) -> bool:
    """Whether a completed text payload still seems to be missing parts."""
    if not isinstance(payload, str) or not payload.strip():
        return False
    lowered = payload.lower()
    if any(keyword in lowered for keyword in COMPLETION_KEYWORDS):
        return False
    markers = part_markers(payload)
    if markers:
        highest = max(number for number, _ in markers)
        declared = max((total for _, total in markers if total), default=None)
        if declared and highest < declared:
            return True
    return scan(payload).truncated


class PollOutcome:
    __slots__ = ("reason", "report", "progress", "elapsed_s")

    def __init__(self, reason: str, report: Optional[StatusReport], progress: int, elapsed_s: float):
        self.reason = reason
        self.report = report
        self.progress = progress
        self.elapsed_s = elapsed_s

    @property
    def status(self) -> Optional[SessionStatus]:
        return self.report.status if self.report else None

    @property
    def succeeded(self) -> bool:
        return self.reason == REASON_COMPLETED

    def __repr__(self) -> str:
        return f"PollOutcome(reason={self.reason!r}, progress={self.progress})"


class PollHandle:
    """The single owned handle of one polling task."""

    def __init__(self, task: "asyncio.Task[PollOutcome]", session_id: str):
        self._task = task
        self.session_id = session_id

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        self._task.cancel()

    async def result(self) -> PollOutcome:
        await asyncio.wait({self._task})
        if self._task.cancelled():
            return PollOutcome(REASON_STOPPED, None, 0, 0.0)
        return self._task.result()


async def _call(handler: Optional[Handler], *args: Any) -> None:
    if handler is None:
        return
    try:
        result = handler(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Polling handler {getattr(handler, '__name__', handler)!r} raised: {e}")


class PollingClient:
    def __init__(
        self,
        fetch_status: StatusFetcher,
        interval_s: float = DEFAULT_INTERVAL_S,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        multipart_wait_s: float = DEFAULT_MULTIPART_WAIT_S,
        stable_polls: int = DEFAULT_STABLE_POLLS,
    ):
        self._fetch_status = fetch_status
        self._interval_s = interval_s
        self._timeout_s = timeout_s
        self._multipart_wait_s = multipart_wait_s
        self._stable_polls = max(1, stable_polls)

    def start(
        self,
        session_id: str,
        *,
        on_progress: Optional[Handler] = None,
        on_complete: Optional[Handler] = None,
        on_error: Optional[Handler] = None,
        estimated_total: Optional[int] = None,
    ) -> PollHandle:
        """Begin polling in the background.

        on_progress(progress, report) runs after every successful read;
        exactly one of on_complete(outcome) / on_error(outcome) runs at the
        end unless the handle is cancelled first.
        """
        task = asyncio.get_running_loop().create_task(
            self._run(session_id, on_progress, on_complete, on_error, estimated_total)
        )
        return PollHandle(task, session_id)

    async def poll(self, session_id: str, **kwargs: Any) -> PollOutcome:
        """Poll until a terminal outcome and return it."""
        return await self.start(session_id, **kwargs).result()

    async def _run(
        self,
        session_id: str,
        on_progress: Optional[Handler],
        on_complete: Optional[Handler],
        on_error: Optional[Handler],
        estimated_total: Optional[int],
    ) -> PollOutcome:
        loop = asyncio.get_running_loop()
        started = loop.time()
        progress = 0
        report: Optional[StatusReport] = None
        multipart_since: Optional[float] = None
        last_length = 0
        stable = 0

        while True:
            elapsed = loop.time() - started
            if elapsed >= self._timeout_s:
                logger.warning(f"Polling {session_id} timed out after {elapsed:.1f}s")
                outcome = PollOutcome(REASON_TIMEOUT, report, progress, elapsed)
                await _call(on_error, outcome)
                return outcome

            try:
                report = await self._fetch_status(session_id)
            except Exception as e:
                # Tolerate a failed read; the next tick tries again
                logger.warning(f"Status read for {session_id} failed: {e}")
            else:
                status = report.status
                if status == SessionStatus.COMPLETED:
                    now = loop.time()
                    length = payload_length(report.payload)
                    final = False
                    if multipart_since is None:
                        if looks_unfinished(report.payload):
                            logger.info(f"Session {session_id} completed but payload looks unfinished; waiting for more parts")
                            multipart_since, last_length = now, length
                        else:
                            final = True
                    else:
                        if length > last_length:
                            stable, last_length = 0, length
                        else:
                            stable += 1
                        final = (
                            stable >= self._stable_polls
                            or not looks_unfinished(report.payload)
                            or now - multipart_since >= self._multipart_wait_s
                        )
                    if final:
                        outcome = PollOutcome(REASON_COMPLETED, report, 100, loop.time() - started)
                        await _call(on_progress, 100, report)
                        await _call(on_complete, outcome)
                        return outcome
                elif status.is_terminal:
                    reason = REASON_CANCELLED if status == SessionStatus.CANCELLED else REASON_FAILED
                    outcome = PollOutcome(reason, report, 100, loop.time() - started)
                    await _call(on_progress, 100, report)
                    await _call(on_error, outcome)
                    return outcome
                else:
                    progress = max(progress, estimate_progress(
                        status, elapsed, report.total_processed, estimated_total,
                    ))
                    await _call(on_progress, progress, report)

            remaining = self._timeout_s - (loop.time() - started)
            await asyncio.sleep(max(0.0, min(self._interval_s, remaining)))

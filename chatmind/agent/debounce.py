"""
Debounced Tone Analysis
=======================

Live tone feedback while a user types. Calling the model on every
keystroke would be wasteful, so analysis is debounced per draft:

    keystroke ──► (re)schedule job "draft-42" for now + 500ms
    keystroke ──► job replaced, timer restarts
    ...quiet for 500ms...
    job fires ──► router.analyze_tone(latest text)

Scheduling uses APScheduler: one DateTrigger job per draft, replaced
on every new keystroke (replace_existing=True). A job that has already
fired is not cancelled; its result is checked on arrival instead:

- the text it analyzed must still be the draft's current text, and
- no newer analysis may have been applied already.

Otherwise the result is stale and discarded.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from chatmind.agent.types import AgentEnvelope, ToneAnalysis
from chatmind.utils.logger import Logger, preview

if TYPE_CHECKING:
    from chatmind.agent.core import AgentRouter

logger = Logger("Debounce")

DEFAULT_QUIET_MS = 500

ResultCallback = Callable[[str, str, ToneAnalysis], Awaitable[None]]


class Debouncer:
    """
    Coalesces bursts of calls per key into one call after a quiet interval.

    Example:
        debouncer = Debouncer(interval_ms=500)
        debouncer.start()            # needs a running event loop

        debouncer.submit("draft-1", analyze, "hel")
        debouncer.submit("draft-1", analyze, "hello")   # replaces the first
        # ~500ms later: analyze("hello") runs once
    """

    def __init__(
        self,
        interval_ms: int = DEFAULT_QUIET_MS,
        scheduler: AsyncIOScheduler | None = None
    ):
        self.interval_ms = interval_ms
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._running: set[asyncio.Task] = set()

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.debug(f"Debouncer started ({self.interval_ms}ms quiet interval)")

    def stop(self) -> None:
        if self.scheduler.running:
            # Pending (not yet fired) and in-flight work is dropped
            self.scheduler.shutdown(wait=False)
            for task in self._running:
                task.cancel()
            logger.debug("Debouncer stopped")

    @property
    def in_flight(self) -> int:
        """Calls that have fired and not finished yet."""
        return len(self._running)

    @staticmethod
    def _job_id(key: str) -> str:
        return f"debounce:{key}"

    async def _launch(self, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        # Returns at once; the call runs as its own task so cycles may overlap
        task = asyncio.create_task(func(*args))
        self._running.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced call failed", error=task.exception())

    def submit(self, key: str, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        """
        Schedule `func(*args)` after the quiet interval, replacing any
        pending call for the same key. Calls already running are left
        to finish.
        """
        run_date = datetime.now(timezone.utc) + timedelta(milliseconds=self.interval_ms)
        self.scheduler.add_job(
            self._launch,
            trigger=DateTrigger(run_date=run_date),
            args=[func, *args],
            id=self._job_id(key),
            replace_existing=True,
            misfire_grace_time=None,
        )

    def cancel(self, key: str) -> bool:
        """Drop the pending call for `key`. Returns False if nothing was pending."""
        try:
            self.scheduler.remove_job(self._job_id(key))
        except JobLookupError:
            return False
        return True

    def is_pending(self, key: str) -> bool:
        return self.scheduler.get_job(self._job_id(key)) is not None


@dataclass
class _DraftState:
    text: str = ""
    dispatched: int = 0    # analyses started for this draft
    applied: int = 0       # sequence number of the analysis on display
    analysis: ToneAnalysis | None = None


class ToneMeter:
    """
    Debounced tone analysis for drafts being typed.

    Example:
        async def show(draft_id, text, analysis):
            await websocket.send_json({"text": text, "analysis": analysis.to_dict()})

        meter = ToneMeter(router, Debouncer(500), on_result=show)
        meter.update("draft-1", "Can you send")
        meter.update("draft-1", "Can you send it ASAP")
    """

    def __init__(
        self,
        router: "AgentRouter",
        debouncer: Debouncer,
        on_result: ResultCallback | None = None
    ):
        self.router = router
        self.debouncer = debouncer
        self.on_result = on_result
        self._drafts: dict[str, _DraftState] = {}

    def current(self, draft_id: str) -> ToneAnalysis | None:
        """The analysis currently applied to a draft, if any."""
        state = self._drafts.get(draft_id)
        return state.analysis if state else None

    def update(self, draft_id: str, text: str) -> None:
        """
        Record new draft text and (re)schedule its analysis.

        Blank text clears the draft's analysis and cancels pending work.
        """
        state = self._drafts.setdefault(draft_id, _DraftState())
        state.text = text

        if not text.strip():
            self.debouncer.cancel(draft_id)
            state.analysis = None
            return

        self.debouncer.submit(draft_id, self.analyze_now, draft_id, text)

    def discard(self, draft_id: str) -> None:
        """Forget a draft entirely (e.g. after it was sent)."""
        self.debouncer.cancel(draft_id)
        self._drafts.pop(draft_id, None)

    async def analyze_now(self, draft_id: str, text: str) -> bool:
        """
        Run one analysis and apply it if still current.

        Returns:
            True if the result was applied
        """
        state = self._drafts.setdefault(draft_id, _DraftState(text=text))
        state.dispatched += 1
        sequence = state.dispatched

        envelope = await self.router.analyze_tone(text)
        return await self.apply(draft_id, sequence, text, envelope)

    async def apply(
        self,
        draft_id: str,
        sequence: int,
        text: str,
        envelope: AgentEnvelope
    ) -> bool:
        """
        Apply a finished analysis unless it is stale.

        Args:
            draft_id: The draft analyzed
            sequence: Dispatch number of the analysis
            text: The exact text that was analyzed
            envelope: Router result
        """
        state = self._drafts.get(draft_id)
        if state is None:
            return False

        if not envelope.success:
            logger.warning(f"Tone analysis failed for {draft_id}: {envelope.error}")
            return False

        if sequence <= state.applied or text != state.text:
            logger.debug(f"Discarding stale tone result for {draft_id}: {preview(text, 40)}")
            return False

        state.applied = sequence
        state.analysis = envelope.data
        if self.on_result is not None:
            await self.on_result(draft_id, text, envelope.data)
        return True

from __future__ import annotations
import logging
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from timeclock.announcer import Announcer, Priority
from timeclock.calculator import SECONDS_PER_HOUR, format_duration
from timeclock.config import settings
from timeclock.models import TimeEntry
from timeclock.notifications import Level, NotificationCenter
from timeclock.observability.metrics import missed_clock_out_alerts_total
from timeclock.session import SessionController, SessionEvent, SessionState

logger = logging.getLogger(__name__)

MISSED_CLOCK_OUT_JOB = "missed-clock-out-check"
WORK_TIMER_JOB = "work-timer"
IDLE_DISPLAY = "--:--:--"


def milestone_message(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes, 60)
    hour_text = "hour" if hours == 1 else "hours"
    minute_text = "minute" if minutes == 1 else "minutes"
    if hours and minutes:
        return f"You have been working for {hours} {hour_text} and {minutes} {minute_text}"
    if hours:
        return f"You have been working for {hours} {hour_text}"
    return f"You have been working for {minutes} {minute_text}"


class SessionMonitor:
    """
    Recurring jobs that watch the open session without ever changing it.

    The per-minute check warns once per crossing when a session has been open
    longer than the missed clock-out threshold. The per-second timer keeps the
    elapsed work display current and announces every milestone of worked time.
    """

    def __init__(
        self,
        controller: SessionController,
        notifications: NotificationCenter,
        announcer: Announcer,
        scheduler: Optional[AsyncIOScheduler] = None,
        missed_clock_out_hours: float = settings.MISSED_CLOCK_OUT_HOURS,
        milestone_minutes: int = settings.MILESTONE_MINUTES,
        check_interval: int = settings.MONITOR_INTERVAL_SECONDS,
        timer_interval: int = settings.TIMER_INTERVAL_SECONDS,
    ):
        self.controller = controller
        self.notifications = notifications
        self.announcer = announcer
        self.scheduler = scheduler or AsyncIOScheduler()
        self.missed_clock_out_hours = missed_clock_out_hours
        self.milestone_minutes = milestone_minutes
        self.check_interval = check_interval
        self.timer_interval = timer_interval
        self.display = IDLE_DISPLAY
        self._alerted_entry: Optional[str] = None
        self._last_milestone: Optional[int] = None
        self._tracked_entry: Optional[str] = None

    def attach(self) -> None:
        """Follow the controller: watch while a session is open."""
        self.controller.subscribe(self.handle_event)

    def handle_event(self, event: SessionEvent, entry: Optional[TimeEntry]) -> None:
        if event in (SessionEvent.CLOCKED_IN, SessionEvent.RESTORED):
            self.start()
        elif event in (SessionEvent.CLOCKED_OUT, SessionEvent.CLEARED):
            self.stop()

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_missed_clock_out_check,
            IntervalTrigger(seconds=self.check_interval),
            id=MISSED_CLOCK_OUT_JOB,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_timer,
            IntervalTrigger(seconds=self.timer_interval),
            id=WORK_TIMER_JOB,
            replace_existing=True,
        )
        logger.info("Session monitor started")

    def stop(self) -> None:
        for job_id in (MISSED_CLOCK_OUT_JOB, WORK_TIMER_JOB):
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        self.display = IDLE_DISPLAY
        self._alerted_entry = None
        self._last_milestone = None
        self._tracked_entry = None
        logger.info("Session monitor stopped")

    # Jobs must be coroutines so they run on the event loop thread.

    async def run_missed_clock_out_check(self) -> None:
        self.check_missed_clock_out()

    async def run_timer(self) -> None:
        self.tick()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def check_missed_clock_out(self, now=None) -> bool:
        """Raise the missed clock-out notice once per crossing; True when raised."""
        entry = self.controller.entry
        if entry is None or self.controller.state != SessionState.ACTIVE:
            return False

        now = now or self.controller.clock()
        open_hours = (now - entry.clock_in).total_seconds() / SECONDS_PER_HOUR
        if open_hours <= self.missed_clock_out_hours:
            if self._alerted_entry == entry.id:
                self._alerted_entry = None
            return False
        if self._alerted_entry == entry.id:
            return False

        self._alerted_entry = entry.id
        missed_clock_out_alerts_total.inc()
        logger.warning("Possible missed clock-out", extra={"entry_id": entry.id})
        self.notifications.add(
            f"You have been clocked in for over {self.missed_clock_out_hours:g} hours. "
            "Did you forget to clock out?",
            Level.WARNING,
        )
        return True

    def tick(self, now=None) -> str:
        """Recompute the elapsed work display and announce milestones."""
        entry = self.controller.entry
        if entry is None:
            self.display = IDLE_DISPLAY
            return self.display

        if entry.id != self._tracked_entry:
            self._tracked_entry = entry.id
            self._last_milestone = None

        seconds = self.controller.elapsed_work_seconds(now)
        self.display = format_duration(seconds)

        milestone = int(seconds // 60) // self.milestone_minutes
        if self._last_milestone is None:
            # First reading of this session sets the baseline silently.
            self._last_milestone = milestone
        elif milestone > self._last_milestone:
            self._last_milestone = milestone
            self.announcer.announce(milestone_message(milestone * self.milestone_minutes), Priority.POLITE)
        return self.display

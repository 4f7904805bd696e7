"""
Single place for scheduling: named in-memory timers, one-shot or recurring.
"""
import logging
from datetime import datetime, timezone
from threading import Lock, Timer
from typing import Any, Callable, Dict, List, Optional


class TaskManager:
    def __init__(self):
        self.tasks: Dict[str, Timer] = {}
        self.logger = logging.getLogger("TaskManager")
        self._lock = Lock()
        self._stopped = False

    def schedule_task(
        self,
        name: str,
        callback: Callable[[], Any],
        delay: float,
        one_time: bool = True,
        interval: Optional[float] = None,
    ) -> Timer:
        """Schedule a task to run after delay seconds.

        Any timer already registered under name is cancelled first. Recurring tasks
        (one_time=False) re-arm after each run with interval seconds (or delay if
        interval is not given), whether or not the callback raised.
        """
        delay = max(0.0, float(delay))
        with self._lock:
            if name in self.tasks:
                self.logger.info(f"Cancelling existing task {name}")
                self.tasks[name].cancel()

            scheduled_time = datetime.now().timestamp() + delay
            timer = Timer(delay, self._run_task)
            timer.args = (name, timer, callback, delay, one_time, interval)
            timer.daemon = True
            timer.scheduled_time = scheduled_time

            self.tasks[name] = timer
            timer.start()
        self.logger.info(f"Timer started for {name}, scheduled for {datetime.fromtimestamp(scheduled_time)}")
        return timer

    def _run_task(
        self,
        name: str,
        timer: Optional[Timer],
        callback: Callable[[], Any],
        delay: float,
        one_time: bool,
        interval: Optional[float],
    ) -> None:
        """Run the task and reschedule if needed. timer is the Timer that expired."""
        try:
            callback()
        except Exception as e:
            self.logger.exception(f"Error running task {name}: {e}")
        finally:
            with self._lock:
                # Drop the registry entry only if it still belongs to the expired timer
                if one_time and self.tasks.get(name) is timer:
                    self.tasks.pop(name, None)
            if not one_time and not self._stopped:
                self.schedule_task(name, callback, interval if interval is not None else delay, one_time, interval)

    def cancel_task(self, name: str) -> bool:
        """Cancel the timer registered under name. Returns True if one was pending."""
        with self._lock:
            timer = self.tasks.pop(name, None)
        if timer is None:
            return False
        timer.cancel()
        self.logger.info(f"Cancelled task {name}")
        return True

    def is_scheduled(self, name: str) -> bool:
        return name in self.tasks

    def get_active_timers(self) -> List[Dict[str, Any]]:
        """Return list of active timer names and their next run time (for API)."""
        result = []
        for name, timer in list(self.tasks.items()):
            if getattr(timer, "scheduled_time", None) is not None:
                next_run = datetime.fromtimestamp(timer.scheduled_time, tz=timezone.utc)
                result.append({"name": name, "next_run_at": next_run})
        return result

    def stop(self) -> None:
        """Stop all scheduled tasks."""
        self._stopped = True
        with self._lock:
            timers = list(self.tasks.values())
            self.tasks.clear()
        for task in timers:
            task.cancel()

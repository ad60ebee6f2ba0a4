"""Medication reminders: one timer per scheduled dose."""

import logging
import threading
from datetime import datetime, timedelta

from config import settings
from models import Medication

logger = logging.getLogger(__name__)


def next_reminder(time_str: str, now: datetime, lead_minutes: int = 0) -> datetime:
    """Next moment to remind about a dose at HH:MM (today, else tomorrow)."""
    hours, minutes = (int(part) for part in time_str.split(":"))
    at = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    at -= timedelta(minutes=lead_minutes)
    if at < now:
        at += timedelta(days=1)
    return at


class ReminderScheduler:
    """Arms a ``threading.Timer`` per medication that logs the notification."""

    def __init__(self, lead_minutes: int | None = None):
        self._lead_minutes = lead_minutes if lead_minutes is not None else settings.REMINDER_LEAD_MINUTES
        self._timers: list[threading.Timer] = []
        self._lock = threading.Lock()

    def schedule(self, medication: Medication, now: datetime | None = None) -> datetime:
        now = now or datetime.now()
        fire_at = next_reminder(medication.time, now, self._lead_minutes)
        delay = (fire_at - now).total_seconds()

        timer = threading.Timer(delay, self._notify, args=(medication,))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
            timer.start()

        logger.info(
            "Reminder for medication id=%d scheduled at %s (in %.0fs)",
            medication.id, fire_at.isoformat(timespec="minutes"), delay,
        )
        return fire_at

    def _notify(self, medication: Medication) -> None:
        who = f" ({medication.owner})" if medication.owner else ""
        logger.info(
            "Hora do Remédio! Não se esqueça de tomar seu %s (%s)%s.",
            medication.name, medication.dosage, who,
        )

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for t in self._timers if t.is_alive())

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()

"""Cron expression value type (standard 5-field crontab syntax)."""

from __future__ import annotations

from apscheduler.triggers.cron import CronTrigger

from flowbot.core.errors import ValidationError

FIELD_NAMES = ("minute", "hour", "day of month", "month", "day of week")


class CronExpression(str):
    """A crontab line APScheduler accepts, e.g. ``0 9 * * MON-FRI``.

    Parsing is delegated to ``CronTrigger.from_crontab`` so ranges, steps,
    lists and month / weekday names behave the same as when a schedule is
    actually registered with a scheduler.
    """

    def __new__(cls, value: str):
        if value is None or not str(value).strip():
            raise ValidationError("cron expression cannot be empty")
        text = " ".join(str(value).split())
        try:
            CronTrigger.from_crontab(text, timezone="UTC")
        except ValueError as e:
            raise ValidationError(f"invalid cron expression: {text!r} ({e})") from e
        return super().__new__(cls, text)

    @property
    def fields(self) -> dict[str, str]:
        return dict(zip(FIELD_NAMES, self.split()))

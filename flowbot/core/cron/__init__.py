"""Cron scheduling types."""

from flowbot.core.cron.types import CronExpression

__all__ = ["CronExpression"]

"""ScheduleRegistry: stores cron specs for periodic skill runs.

Nothing here fires jobs; an executor would read ``list_enabled()``.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from flowbot.core.cron.types import CronExpression
from flowbot.core.errors import NotFoundError
from flowbot.memory.base import ScheduleRepository
from flowbot.memory.entities import Schedule, canonical_json
from flowbot.memory.values import require_id


class ScheduleRegistry:
    def __init__(self, schedules: ScheduleRepository):
        self._schedules = schedules

    def create(
        self,
        skill: str,
        cron_expression: str,
        input: dict[str, Any] | None = None,
        enabled: bool = True,
    ) -> Schedule:
        schedule = Schedule.new(skill, cron_expression, canonical_json(input or {}), enabled)
        self._schedules.create(schedule)
        logger.info(f"Schedule created: {schedule.id} ({schedule.skill} @ '{schedule.cron_expression}')")
        return schedule

    def get(self, schedule_id: str) -> Schedule:
        schedule = self._schedules.find_by_id(require_id(schedule_id, "schedule id"))
        if schedule is None:
            raise NotFoundError("schedule", schedule_id)
        return schedule

    def list(self) -> list[Schedule]:
        return self._schedules.list()

    def list_enabled(self) -> list[Schedule]:
        return self._schedules.find_enabled()

    def list_by_skill(self, skill: str) -> list[Schedule]:
        return self._schedules.find_by_skill(require_id(skill, "skill"))

    def update(
        self,
        schedule_id: str,
        cron_expression: str | None = None,
        input: dict[str, Any] | None = None,
        enabled: bool | None = None,
    ) -> Schedule:
        schedule = self.get(schedule_id)
        if cron_expression is not None:
            schedule.cron_expression = CronExpression(cron_expression)
        if input is not None:
            schedule.input = canonical_json(input)
        if enabled is not None:
            schedule.enabled = enabled
        self._schedules.update(schedule)
        return schedule

    def set_enabled(self, schedule_id: str, enabled: bool) -> Schedule:
        schedule = self.get(schedule_id)
        if enabled:
            schedule.enable()
        else:
            schedule.disable()
        self._schedules.update(schedule)
        logger.info(f"Schedule {schedule.id} {'enabled' if enabled else 'disabled'}")
        return schedule

    def enable(self, schedule_id: str) -> Schedule:
        return self.set_enabled(schedule_id, True)

    def disable(self, schedule_id: str) -> Schedule:
        return self.set_enabled(schedule_id, False)

    def delete(self, schedule_id: str) -> None:
        if not self._schedules.delete(require_id(schedule_id, "schedule id")):
            raise NotFoundError("schedule", schedule_id)
        logger.info(f"Schedule deleted: {schedule_id}")

"""TaskDispatcher: runs a skill on behalf of a session and tracks it as a Task."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from flowbot.agent.skills.base import SkillRuntime
from flowbot.core.cancel import CancelToken
from flowbot.core.errors import Canceled, NotFoundError, RepositoryError, SkillRuntimeError
from flowbot.memory.base import SessionRepository, TaskRepository
from flowbot.memory.entities import Task, canonical_json
from flowbot.memory.values import require_id


@dataclass
class SkillOutcome:
    success: bool
    output: str = ""
    error: str = ""
    task_id: str = ""


class TaskDispatcher:
    """Task lifecycle around one runtime call.

    Only the initial insert is fatal. Later task updates are best effort:
    the caller always learns what the skill did, even if the bookkeeping
    could not be saved.
    """

    def __init__(self, sessions: SessionRepository, tasks: TaskRepository, runtime: SkillRuntime):
        self._sessions = sessions
        self._tasks = tasks
        self._runtime = runtime

    async def execute_skill(
        self,
        session_id: str,
        skill: str,
        input: dict[str, Any] | None = None,
        token: CancelToken | None = None,
    ) -> SkillOutcome:
        token = token or CancelToken()
        session_id = require_id(session_id, "session_id")
        skill = require_id(skill, "skill")
        input = input or {}

        token.raise_if_cancelled()
        if self._sessions.find_by_id(session_id) is None:
            raise NotFoundError("session", session_id)

        task = Task.new(session_id, skill, canonical_json(input))
        self._tasks.create(task)

        task.start()
        self._save(task)

        try:
            result = await token.run(self._runtime.execute(skill, input))
        except Canceled as e:
            task.fail(f"canceled: {e}")
            self._save(task)
            raise
        except SkillRuntimeError as e:
            task.fail(str(e))
            self._save(task)
            raise
        except Exception as e:
            logger.exception(f"Skill runtime crashed on {skill}")
            task.fail(f"skill runtime error: {e}")
            self._save(task)
            raise SkillRuntimeError(f"skill runtime error: {e}") from e

        if result.success:
            task.complete(result.output)
        else:
            task.fail(result.error)
        self._save(task)

        logger.info(f"Task {task.id} ({skill}) -> {task.status.value}")
        return SkillOutcome(
            success=result.success,
            output=task.output,
            error=task.error,
            task_id=task.id,
        )

    def _save(self, task: Task) -> None:
        try:
            self._tasks.update(task)
        except RepositoryError as e:
            logger.warning(f"Failed to persist task {task.id} ({task.status.value}): {e}")

"""Skill runtime port."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any


@dataclass
class ExecutionResult:
    """Outcome of a skill that actually ran (successfully or not)."""

    success: bool
    output: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "output": self.output, "error": self.error}


class SkillRuntime(abc.ABC):
    """Runs named skills.

    ``execute`` returns an :class:`ExecutionResult` for anything the skill
    itself decided (including "not found"); it raises ``SkillRuntimeError``
    only when the runtime could not run the skill at all.
    """

    @abc.abstractmethod
    async def execute(self, skill: str, input: dict[str, Any]) -> ExecutionResult: ...

    @abc.abstractmethod
    def validate(self, skill: str) -> None:
        """Raise ``NotFoundError`` / ``ValidationError`` if ``skill`` cannot run."""

    @abc.abstractmethod
    def list(self) -> list[str]: ...

    @abc.abstractmethod
    def get_skill(self, skill: str) -> dict[str, Any]:
        """Describe one skill; raises ``NotFoundError``."""

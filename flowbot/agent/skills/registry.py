"""SkillRegistry: registered skill records + direct execution by name."""

from __future__ import annotations

from typing import Any

from loguru import logger

from flowbot.agent.skills.base import ExecutionResult, SkillRuntime
from flowbot.core.cancel import CancelToken
from flowbot.core.errors import ConflictError, NotFoundError
from flowbot.memory.base import SkillRepository
from flowbot.memory.entities import Skill, canonical_json
from flowbot.memory.values import Version, require_id


class SkillRegistry:
    def __init__(self, skills: SkillRepository, runtime: SkillRuntime):
        self._skills = skills
        self._runtime = runtime

    # ── Records ─────────────────────────────────────────────

    def register(
        self,
        name: str,
        version: str,
        location: str = "",
        permissions: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Skill:
        skill = Skill.new(name, version, location, permissions, metadata)
        if self._skills.find_by_name(skill.name) is not None:
            raise ConflictError(f"skill already registered: {skill.name}")
        self._skills.create(skill)
        logger.info(f"Skill registered: {skill.name}@{skill.version}")
        return skill

    def get(self, skill_id: str) -> Skill:
        skill = self._skills.find_by_id(require_id(skill_id, "skill id"))
        if skill is None:
            raise NotFoundError("skill", skill_id)
        return skill

    def get_by_name(self, name: str) -> Skill:
        skill = self._skills.find_by_name(require_id(name, "skill name"))
        if skill is None:
            raise NotFoundError("skill", name)
        return skill

    def list(self) -> list[Skill]:
        return self._skills.list()

    def update(
        self,
        skill_id: str,
        version: str | None = None,
        location: str | None = None,
        permissions: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Skill:
        skill = self.get(skill_id)
        if version is not None:
            skill.version = Version(version)
        if location is not None:
            skill.location = location
        if permissions is not None:
            skill.permissions = canonical_json(permissions)
        if metadata is not None:
            skill.set_metadata(metadata)
        self._skills.update(skill)
        return skill

    def delete(self, skill_id: str) -> None:
        if not self._skills.delete(require_id(skill_id, "skill id")):
            raise NotFoundError("skill", skill_id)
        logger.info(f"Skill deleted: {skill_id}")

    # ── Runtime ─────────────────────────────────────────────

    async def execute(
        self, name: str, input: dict[str, Any], token: CancelToken | None = None
    ) -> ExecutionResult:
        """Run a registered skill; unregistered names are ``NotFoundError``."""
        skill = self.get_by_name(name)
        if token is None:
            return await self._runtime.execute(skill.name, input)
        return await token.run(self._runtime.execute(skill.name, input))

    def validate(self, name: str) -> None:
        self._runtime.validate(name)

    def list_available(self) -> list[str]:
        return self._runtime.list()

    def describe(self, name: str) -> dict[str, Any]:
        return self._runtime.get_skill(name)

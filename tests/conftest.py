"""Shared fixtures: temp store, stub provider, stub skill runtime."""

from __future__ import annotations

from typing import Any

import pytest

from flowbot.agent.skills.base import ExecutionResult, SkillRuntime
from flowbot.core.errors import NotFoundError, SkillRuntimeError
from flowbot.core.providers.base import (
    BaseLLMProvider,
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    TokenUsage,
)
from flowbot.memory.store import MemoryStore


class StubProvider(BaseLLMProvider):
    """Echoes a fixed reply and records every request."""

    def __init__(self, reply: str = "Test response", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.requests: list[CompletionRequest] = []

    async def generate(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return CompletionResponse(
            message=ChatMessage(role="assistant", content=self.reply),
            tokens=TokenUsage(input=10, output=5, total=15),
        )


class StubRuntime(SkillRuntime):
    """In-memory skills: name -> ExecutionResult, or an exception to raise."""

    def __init__(self, skills: dict[str, ExecutionResult | Exception] | None = None):
        self.skills = skills or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def execute(self, skill: str, input: dict[str, Any]) -> ExecutionResult:
        self.calls.append((skill, input))
        outcome = self.skills.get(skill)
        if outcome is None:
            return ExecutionResult(success=False, error=f"skill not found: {skill}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def validate(self, skill: str) -> None:
        if skill not in self.skills:
            raise NotFoundError("skill", skill)

    def list(self) -> list[str]:
        return sorted(self.skills)

    def get_skill(self, skill: str) -> dict[str, Any]:
        self.validate(skill)
        return {"name": skill, "runtime": "stub"}


@pytest.fixture
def store(tmp_path):
    return MemoryStore(str(tmp_path / "test.db"))


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def runtime():
    return StubRuntime(
        {
            "echo": ExecutionResult(success=True, output="hello"),
            "broken": ExecutionResult(success=False, error=""),
            "offline": SkillRuntimeError("runtime unavailable"),
        }
    )



"""Local skill runtime: executables in a directory, run as subprocesses.

Contract for a skill executable:
    - every input key arrives as ``FLOWBOT_<KEY>`` (strings as-is, anything
      else JSON-encoded); the full input is also written to stdin as JSON
    - exit status 0 means success, stdout (trimmed) is the output
    - any other exit status is a failure, stderr (or stdout) is the error
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import time
from pathlib import Path
from typing import Any

from loguru import logger

from flowbot.agent.skills.base import ExecutionResult, SkillRuntime
from flowbot.agent.skills.loader import load_skill_doc
from flowbot.core.config.schema import SkillsConfig
from flowbot.core.errors import NotFoundError, SkillRuntimeError, ValidationError

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
MAX_OUTPUT = 10_000


class LocalSkillRuntime(SkillRuntime):
    """Runs skills found in ``skills.directory``."""

    name = "local"

    def __init__(self, config: SkillsConfig):
        self.directory = Path(config.directory).expanduser().resolve()
        self.timeout = config.timeout_s
        self.sandbox_enabled = config.sandbox_enabled
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"Local skill runtime: {self.directory} (timeout={self.timeout}s)")

    # ── Port ────────────────────────────────────────────────

    async def execute(self, skill: str, input: dict[str, Any]) -> ExecutionResult:
        path = self._find(skill)
        if path is None:
            return ExecutionResult(success=False, error=f"skill not found: {skill}")

        payload = json.dumps(input or {}, sort_keys=True)
        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                str(path),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.directory),
                env=self._build_env(input or {}),
            )
        except OSError as e:
            raise SkillRuntimeError(f"cannot start skill {skill}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(payload.encode("utf-8")), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning(f"Skill {skill} timed out after {self.timeout}s")
            return ExecutionResult(success=False, error=f"skill timed out after {self.timeout}s")
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            raise

        elapsed_ms = int((time.monotonic() - started) * 1000)
        out = _decode(stdout)
        err = _decode(stderr)

        if proc.returncode != 0:
            logger.error(f"Skill {skill} failed (exit {proc.returncode}, {elapsed_ms}ms)")
            detail = err or out or f"exit status {proc.returncode}"
            return ExecutionResult(success=False, error=f"exit status {proc.returncode}: {detail}")

        logger.info(f"Skill {skill} completed in {elapsed_ms}ms")
        return ExecutionResult(success=True, output=out)

    def validate(self, skill: str) -> None:
        if not skill or not _NAME_RE.match(skill):
            raise ValidationError(f"invalid skill name: {skill!r}")
        path = self.directory / skill
        if not path.is_file():
            raise NotFoundError("skill", skill)
        if not os.access(path, os.X_OK):
            raise ValidationError(f"skill is not executable: {skill}")

    def list(self) -> list[str]:
        if not self.directory.is_dir():
            return []
        return sorted(
            p.name
            for p in self.directory.iterdir()
            if p.is_file() and not p.name.startswith(".") and os.access(p, os.X_OK)
        )

    def get_skill(self, skill: str) -> dict[str, Any]:
        path = self._find(skill)
        if path is None:
            raise NotFoundError("skill", skill)

        info = path.stat()
        details: dict[str, Any] = {
            "name": skill,
            "path": str(path),
            "size": info.st_size,
            "runtime": self.name,
            "sandbox_mode": self.sandbox_enabled,
            "has_documentation": False,
        }
        doc = load_skill_doc(self.directory, skill)
        if doc:
            details["has_documentation"] = True
            details["description"] = doc.description
            if doc.version:
                details["version"] = doc.version
            if doc.permissions:
                details["permissions"] = doc.permissions
        return details

    # ── Helpers ─────────────────────────────────────────────

    def _find(self, skill: str) -> Path | None:
        try:
            self.validate(skill)
        except (NotFoundError, ValidationError):
            return None
        return self.directory / skill

    @staticmethod
    def _build_env(input: dict[str, Any]) -> dict[str, str]:
        env = {"PATH": os.environ.get("PATH", "/usr/bin:/bin")}
        for key, value in input.items():
            if isinstance(value, str):
                env_value = value
            else:
                try:
                    env_value = json.dumps(value, sort_keys=True)
                except (TypeError, ValueError):
                    logger.warning(f"Skipping non-serializable input key: {key}")
                    continue
            env[f"FLOWBOT_{key.upper()}"] = env_value
        return env


def _decode(data: bytes | None) -> str:
    text = (data or b"").decode("utf-8", errors="replace").strip()
    if len(text) > MAX_OUTPUT:
        text = text[:MAX_OUTPUT] + f"\n\n... truncated ({len(text)} chars)"
    return text

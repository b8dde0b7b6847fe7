"""SkillDocs: reads ``<name>.SKILL.md`` files with YAML frontmatter."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from loguru import logger


@dataclass
class SkillDoc:
    """Parsed skill documentation (frontmatter + markdown body)."""

    name: str
    description: str = ""
    version: str | None = None
    permissions: list[str] = field(default_factory=list)
    body: str = ""
    path: Path | None = None


def doc_path(directory: Path, name: str) -> Path:
    return directory / f"{name}.SKILL.md"


def load_skill_doc(directory: Path, name: str) -> SkillDoc | None:
    """Load the documentation file for ``name`` or ``None`` if there is none."""
    path = doc_path(directory, name)
    if not path.is_file():
        return None
    try:
        fm, body = parse_frontmatter(path)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to parse skill doc {path}: {e}")
        return None

    permissions = fm.get("permissions") or []
    if not isinstance(permissions, list):
        permissions = [str(permissions)]
    version = fm.get("version")
    return SkillDoc(
        name=str(fm.get("name", name)),
        description=str(fm.get("description", "")),
        version=str(version) if version is not None else None,
        permissions=[str(p) for p in permissions],
        body=body.strip(),
        path=path,
    )


def parse_frontmatter(path: Path) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter + markdown body.

    Returns (frontmatter_dict, body_string).
    """
    content = path.read_text(encoding="utf-8")
    if not content.startswith("---"):
        return {}, content

    parts = content.split("---", 2)
    if len(parts) < 3:
        return {}, content

    fm = yaml.safe_load(parts[1]) or {}
    if not isinstance(fm, dict):
        return {}, parts[2]
    return fm, parts[2]

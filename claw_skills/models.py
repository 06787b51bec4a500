"""Skill records shared by discovery, gating, and prompt rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

SOURCE_WORKSPACE = "workspace"
SOURCE_OPEN_SKILLS = "open-skills"


@dataclass
class SkillTool:
    """A tool declared by a skill (shell command, HTTP call, script)."""

    name: str
    description: str
    kind: str
    command: str
    args: dict[str, str] = field(default_factory=dict)


@dataclass
class SkillRequires:
    bins: list[str] = field(default_factory=list)
    any_bins: list[str] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    config: list[str] = field(default_factory=list)


@dataclass
class SkillGating:
    """Declarative requirements controlling automatic eligibility."""

    always: bool = False
    os: list[str] = field(default_factory=list)
    requires: SkillRequires = field(default_factory=SkillRequires)


@dataclass
class Skill:
    """A user-defined or community-built capability.

    ``name`` is the display identity; ``skill_key`` is the only identity
    used to look up user configuration.
    """

    name: str
    description: str
    version: str
    author: str | None = None
    tags: list[str] = field(default_factory=list)
    tools: list[SkillTool] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    location: Path | None = None
    skill_key: str = ""
    primary_env: str | None = None
    requires_env: list[str] = field(default_factory=list)
    gating: SkillGating | None = None
    source: str = SOURCE_WORKSPACE

    def __post_init__(self) -> None:
        if not self.skill_key:
            self.skill_key = self.name


@dataclass
class EligibilityResult:
    eligible: bool
    reasons: list[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)


@dataclass
class SkillFrontmatter:
    name: str
    description: str
    metadata: dict[str, Any] | None = None


@dataclass
class ParsedSkill:
    """A strictly parsed SKILL.md plus its eligibility verdict."""

    frontmatter: SkillFrontmatter
    skill_dir: Path
    skill_md_path: Path
    eligible: bool = True
    reasons: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.frontmatter.name

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)

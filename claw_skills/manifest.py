"""Skill discovery from SKILL.toml and SKILL.md manifests."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from claw_skills.eligibility import parse_gating_metadata, unwrap_vendor_metadata
from claw_skills.exceptions import SkillManifestError
from claw_skills.logging import get_logger
from claw_skills.models import SOURCE_WORKSPACE, Skill, SkillTool

log = get_logger(__name__)

SKILL_TOML_FILE = "SKILL.toml"
SKILL_MD_FILE = "SKILL.md"
DEFAULT_SKILL_VERSION = "0.1.0"
NO_DESCRIPTION = "No description"


class _ToolSpec(BaseModel):
    name: str
    description: str
    kind: str
    command: str
    args: dict[str, str] = Field(default_factory=dict)


class _RequirementsSpec(BaseModel):
    env: list[str] = Field(default_factory=list)


class _SkillMetaSpec(BaseModel):
    name: str
    description: str
    version: str = DEFAULT_SKILL_VERSION
    author: str | None = None
    tags: list[str] = Field(default_factory=list)
    requirements: _RequirementsSpec = Field(default_factory=_RequirementsSpec)
    metadata: dict[str, Any] = Field(default_factory=dict)


class _SkillManifestSpec(BaseModel):
    skill: _SkillMetaSpec
    tools: list[_ToolSpec] = Field(default_factory=list)
    prompts: list[str] = Field(default_factory=list)


def _optional_text(block: dict[str, Any] | None, key: str) -> str | None:
    if not block:
        return None
    value = block.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _read_manifest_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SkillManifestError(path, f"failed to read manifest: {exc}") from exc


def extract_description(content: str) -> str:
    """Return the first line that is neither blank nor a heading."""
    for line in content.splitlines():
        if line.startswith("#") or not line.strip():
            continue
        return line.strip()
    return NO_DESCRIPTION


def load_skill_toml(path: Path | str, source: str = SOURCE_WORKSPACE) -> Skill:
    """Load a skill from a SKILL.toml manifest."""
    manifest_path = Path(path)
    content = _read_manifest_text(manifest_path)
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise SkillManifestError(manifest_path, f"invalid TOML: {exc}") from exc
    try:
        manifest = _SkillManifestSpec.model_validate(data)
    except ValidationError as exc:
        raise SkillManifestError(manifest_path, f"invalid skill manifest: {exc}") from exc

    meta = manifest.skill
    vendor = unwrap_vendor_metadata(meta.metadata)
    return Skill(
        name=meta.name,
        description=meta.description,
        version=meta.version,
        author=meta.author,
        tags=list(meta.tags),
        tools=[SkillTool(**tool.model_dump()) for tool in manifest.tools],
        prompts=list(manifest.prompts),
        location=manifest_path,
        skill_key=_optional_text(vendor, "skillKey") or meta.name,
        primary_env=_optional_text(vendor, "primaryEnv"),
        requires_env=list(meta.requirements.env),
        gating=parse_gating_metadata(meta.metadata),
        source=source,
    )


def load_skill_md(path: Path | str, skill_dir: Path | str, source: str = SOURCE_WORKSPACE) -> Skill:
    """Load a skill from a SKILL.md file (simpler format)."""
    md_path = Path(path)
    content = _read_manifest_text(md_path)
    name = Path(skill_dir).name or "unknown"
    return Skill(
        name=name,
        description=extract_description(content),
        version=DEFAULT_SKILL_VERSION,
        prompts=[content],
        location=md_path,
        skill_key=name,
        source=source,
    )


def load_skill_dir(skill_dir: Path | str, source: str = SOURCE_WORKSPACE) -> Skill | None:
    """Load the manifest of one skill directory; SKILL.toml wins over SKILL.md.

    Returns ``None`` when the directory holds no manifest.
    """
    directory = Path(skill_dir)
    toml_path = directory / SKILL_TOML_FILE
    if toml_path.exists():
        return load_skill_toml(toml_path, source=source)
    md_path = directory / SKILL_MD_FILE
    if md_path.exists():
        return load_skill_md(md_path, directory, source=source)
    return None


def load_skills_from_directory(skills_dir: Path | str, source: str = SOURCE_WORKSPACE) -> list[Skill]:
    """Load one skill per manifest-bearing subdirectory, skipping broken ones."""
    root = Path(skills_dir)
    if not root.is_dir():
        return []
    try:
        children = sorted(root.iterdir(), key=lambda item: item.name)
    except OSError as exc:
        log.warning("Failed to list skills directory", path=str(root), error=str(exc))
        return []

    skills: list[Skill] = []
    for child in children:
        if not child.is_dir():
            continue
        try:
            skill = load_skill_dir(child, source=source)
        except SkillManifestError as exc:
            log.debug("Skipping skill with invalid manifest", skill_dir=str(child), error=exc.message)
            continue
        except OSError as exc:
            log.debug("Skipping unreadable skill directory", skill_dir=str(child), error=str(exc))
            continue
        if skill is not None:
            skills.append(skill)
    return skills


def load_workspace_skills(workspace_dir: Path | str) -> list[Skill]:
    """Load skills from ``<workspace>/skills``."""
    return load_skills_from_directory(Path(workspace_dir) / "skills")

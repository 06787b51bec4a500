"""Strict recursive SKILL.md scan backing skill list/show inspection."""

from __future__ import annotations

import json
import os
from pathlib import Path

from claw_skills.config import get_config
from claw_skills.context import SkillContext
from claw_skills.eligibility import parse_gating_metadata
from claw_skills.exceptions import SkillNotFoundError
from claw_skills.manifest import SKILL_MD_FILE
from claw_skills.models import ParsedSkill
from claw_skills.skill_md import parse_skill_md

_TABLE_HEADER = ("NAME", "DESCRIPTION", "LOCATION", "ELIGIBLE", "REASON")


def _find_skill_md_files(root: Path) -> list[Path]:
    found: list[Path] = []
    visited: set[str] = set()
    for current, dirnames, filenames in os.walk(root, followlinks=True):
        real = os.path.realpath(current)
        if real in visited:
            dirnames[:] = []
            continue
        visited.add(real)
        if SKILL_MD_FILE in filenames:
            found.append(Path(current) / SKILL_MD_FILE)
    return sorted(found)


def scan_skills(root: Path | str | None = None, ctx: SkillContext | None = None) -> list[ParsedSkill]:
    """Strictly parse every SKILL.md under ``root`` and judge eligibility.

    Without ``root`` the configured ``skills.scan_root`` is used. Any malformed
    SKILL.md aborts the scan with ``SkillManifestError``.
    """
    base = Path(root if root is not None else get_config().skills.scan_root).expanduser()
    if not base.exists():
        return []

    context = ctx or SkillContext.from_process()
    parsed_skills: list[ParsedSkill] = []
    for skill_md_path in _find_skill_md_files(base):
        frontmatter = parse_skill_md(skill_md_path)
        verdict = context.evaluate(parse_gating_metadata(frontmatter.metadata))
        parsed_skills.append(
            ParsedSkill(
                frontmatter=frontmatter,
                skill_dir=skill_md_path.parent,
                skill_md_path=skill_md_path,
                eligible=verdict.eligible,
                reasons=verdict.reasons,
            )
        )
    return parsed_skills


def find_parsed_skill(skills: list[ParsedSkill], name: str) -> ParsedSkill:
    for skill in skills:
        if skill.frontmatter.name == name:
            return skill
    raise SkillNotFoundError(name)


def format_skills_table(skills: list[ParsedSkill]) -> str:
    if not skills:
        return "No skills found."

    def _row(*columns: str) -> str:
        name, description, location, eligible, reason = columns
        return f"{name:<24} {description:<40} {location:<36} {eligible:<8} {reason}".rstrip()

    lines = [_row(*_TABLE_HEADER), "-" * 124]
    for skill in skills:
        lines.append(
            _row(
                skill.frontmatter.name,
                skill.frontmatter.description,
                str(skill.skill_dir),
                str(skill.eligible).lower(),
                skill.reason,
            )
        )
    return "\n".join(lines)


def format_skill_detail(skill: ParsedSkill) -> str:
    metadata = json.dumps(skill.frontmatter.metadata) if skill.frontmatter.metadata is not None else "null"
    return "\n".join(
        [
            f"name: {skill.frontmatter.name}",
            f"description: {skill.frontmatter.description}",
            f"metadata: {metadata}",
            f"path: {skill.skill_md_path}",
            f"location: {skill.skill_dir}",
            f"eligible: {str(skill.eligible).lower()}",
            f"reason: {skill.reason}",
        ]
    )

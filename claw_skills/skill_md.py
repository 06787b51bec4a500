"""Strict SKILL.md frontmatter parsing for single-skill inspection."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from claw_skills.exceptions import SkillManifestError
from claw_skills.models import SkillFrontmatter

FRONTMATTER_DELIMITER = "---"


def parse_skill_md(path: Path | str) -> SkillFrontmatter:
    """Read and strictly parse a SKILL.md file."""
    md_path = Path(path)
    try:
        content = md_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SkillManifestError(md_path, f"failed to read skill markdown: {exc}") from exc
    try:
        return parse_skill_md_content(content)
    except SkillManifestError as exc:
        raise SkillManifestError(md_path, exc.message) from exc


def parse_skill_md_content(content: str) -> SkillFrontmatter:
    """Parse the ``---`` delimited frontmatter block of a SKILL.md document.

    Unlike bulk discovery this never guesses: a missing delimiter, a missing
    ``name``/``description``, or ``metadata`` that is not a JSON object all
    raise ``SkillManifestError``.
    """
    lines = content.splitlines()
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        raise SkillManifestError(None, "missing frontmatter start delimiter")

    block: list[str] = []
    found_end = False
    for line in lines[1:]:
        if line.strip() == FRONTMATTER_DELIMITER:
            found_end = True
            break
        block.append(line)
    if not found_end:
        raise SkillManifestError(None, "missing frontmatter end delimiter")

    name: str | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = None

    for line in block:
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        raw_key, sep, raw_value = trimmed.partition(":")
        if not sep:
            continue
        key = raw_key.strip()
        value = raw_value.strip()

        if key == "name":
            name = value
        elif key == "description":
            description = value
        elif key == "metadata":
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise SkillManifestError(None, f"metadata must be valid JSON object: {exc}") from exc
            if not isinstance(parsed, dict):
                raise SkillManifestError(None, "metadata must be a JSON object")
            metadata = parsed

    if not name:
        raise SkillManifestError(None, "missing required frontmatter key: name")
    if not description:
        raise SkillManifestError(None, "missing required frontmatter key: description")

    return SkillFrontmatter(name=name, description=description, metadata=metadata)

"""Per-skill enablement from user configuration overlays and gating metadata."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping

from claw_skills.config import SkillEntryConfig
from claw_skills.context import SkillContext
from claw_skills.env_guard import planned_env_overrides
from claw_skills.logging import get_logger
from claw_skills.models import EligibilityResult, Skill

log = get_logger(__name__)

DISABLED_REASON = "disabled in configuration"


def resolve_skill_entry(
    entries: Mapping[str, SkillEntryConfig],
    skill: Skill,
) -> SkillEntryConfig | None:
    """Look up a skill's overlay entry; the skill key is the only join column."""
    return entries.get(skill.skill_key)


def skill_requirements_met(
    skill: Skill,
    entry: SkillEntryConfig | None,
    environ: Mapping[str, str] | None = None,
) -> bool:
    return not _missing_required_env(skill, entry, os.environ if environ is None else environ)


def _missing_required_env(
    skill: Skill,
    entry: SkillEntryConfig | None,
    environ: Mapping[str, str],
) -> list[str]:
    missing: list[str] = []
    for required_key in skill.requires_env:
        if required_key in environ:
            continue
        if entry is not None:
            if required_key in entry.env:
                continue
            if skill.primary_env == required_key and entry.api_key is not None:
                continue
        missing.append(required_key)
    return missing


def resolve_enablement(
    skill: Skill,
    entries: Mapping[str, SkillEntryConfig],
    ctx: SkillContext | None = None,
) -> EligibilityResult:
    """Single authoritative decision on whether a skill runs.

    1. An explicit ``enabled = false`` disables unconditionally.
    2. Every ``requires_env`` variable must be set, configured in the entry's
       ``env`` map, or be the primary env backed by an ``apiKey``.
    3. Gating metadata must hold. Its env checks see the environment as it
       will be during the run, i.e. with the overlay's injections applied.
       ``always = true`` skips this step only.
    """
    entry = resolve_skill_entry(entries, skill)
    if entry is not None and entry.enabled is False:
        return EligibilityResult(eligible=False, reasons=[DISABLED_REASON])

    context = ctx or SkillContext.from_process()
    reasons = [f"missing env: {name}" for name in _missing_required_env(skill, entry, context.environ)]

    if skill.gating is not None:
        run_context = context.with_env(planned_env_overrides(skill, entry, context.environ))
        reasons.extend(reason for reason in run_context.evaluate(skill.gating).reasons if reason not in reasons)

    return EligibilityResult(eligible=not reasons, reasons=reasons)


def is_skill_enabled(
    skill: Skill,
    entries: Mapping[str, SkillEntryConfig],
    ctx: SkillContext | None = None,
) -> bool:
    return resolve_enablement(skill, entries, ctx).eligible


def filter_enabled_skills(
    skills: Iterable[Skill],
    entries: Mapping[str, SkillEntryConfig],
    ctx: SkillContext | None = None,
) -> list[Skill]:
    """Keep enabled skills, preserving order."""
    context = ctx or SkillContext.from_process()
    enabled: list[Skill] = []
    for skill in skills:
        verdict = resolve_enablement(skill, entries, context)
        if verdict.eligible:
            enabled.append(skill)
            continue
        log.debug(
            "Skill not enabled for run",
            skill=skill.name,
            skill_key=skill.skill_key,
            reason=verdict.reason,
        )
    return enabled

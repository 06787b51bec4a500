"""Skill list assembly and prompt rendering for the agent."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path

from claw_skills.config import Config, SkillEntryConfig, UserSkillsConfig, get_config, load_user_skills_config
from claw_skills.context import SkillContext
from claw_skills.env_guard import SkillEnvGuard, apply_env_overrides_for_run_with_entries
from claw_skills.logging import get_logger
from claw_skills.manifest import load_workspace_skills
from claw_skills.models import Skill
from claw_skills.open_skills import OpenSkillsSource, ensure_open_skills_repo, load_open_skills
from claw_skills.overlay import filter_enabled_skills

log = get_logger(__name__)


def load_skills(
    workspace_dir: Path | str,
    cfg: Config | None = None,
    source: OpenSkillsSource | None = None,
    env: Mapping[str, str] | None = None,
) -> list[Skill]:
    """Load open-skills first, then workspace skills. Duplicates are kept."""
    skills: list[Skill] = []
    open_skills_dir = ensure_open_skills_repo(cfg, env=env, source=source)
    if open_skills_dir is not None:
        skills.extend(load_open_skills(open_skills_dir))
    skills.extend(load_workspace_skills(workspace_dir))
    return skills


def load_skills_for_run(
    workspace_dir: Path | str,
    cfg: Config | None = None,
    source: OpenSkillsSource | None = None,
    env: Mapping[str, str] | None = None,
    user_config: UserSkillsConfig | None = None,
    ctx: SkillContext | None = None,
) -> list[Skill]:
    """Load skills and keep only those enabled for a run.

    ``env`` only feeds the open-skills toggles. Enablement is judged against
    ``ctx``, by default a snapshot of this process, which is also the
    environment ``SkillEnvGuard`` will mutate for the run.
    """
    config = cfg or get_config()
    overlay = user_config if user_config is not None else load_user_skills_config(config)
    context = ctx or SkillContext.from_process(workspace_dir, config_payload=overlay.raw)
    skills = load_skills(workspace_dir, config, source=source, env=env)
    return filter_enabled_skills(skills, overlay.entries, context)


def skills_to_prompt(skills: list[Skill]) -> str:
    """Build a system prompt addition from loaded skills."""
    if not skills:
        return ""

    parts = ["\n## Active Skills\n\n"]
    for skill in skills:
        parts.append(f"### {skill.name} (v{skill.version})\n")
        parts.append(f"{skill.description}\n")
        if skill.tools:
            parts.append("Tools:\n")
            for tool in skill.tools:
                parts.append(f"- **{tool.name}**: {tool.description} ({tool.kind})\n")
        for fragment in skill.prompts:
            parts.append(fragment)
            parts.append("\n")
        parts.append("\n")
    return "".join(parts)


@dataclass
class SkillRegistry:
    """The skills resolved for one run, plus the overlays that enabled them."""

    skills: list[Skill] = field(default_factory=list)
    entries: dict[str, SkillEntryConfig] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        workspace_dir: Path | str,
        cfg: Config | None = None,
        source: OpenSkillsSource | None = None,
        env: Mapping[str, str] | None = None,
        ctx: SkillContext | None = None,
    ) -> SkillRegistry:
        config = cfg or get_config()
        overlay = load_user_skills_config(config)
        skills = load_skills_for_run(workspace_dir, config, source=source, env=env, user_config=overlay, ctx=ctx)
        log.info("Skills resolved", count=len(skills), workspace=str(workspace_dir))
        return cls(skills=skills, entries=dict(overlay.entries))

    def names(self) -> list[str]:
        return [skill.name for skill in self.skills]

    def get(self, name: str) -> Skill | None:
        for skill in self.skills:
            if skill.name == name:
                return skill
        return None

    def prompt(self) -> str:
        return skills_to_prompt(self.skills)

    def env_scope(self, environ: MutableMapping[str, str] | None = None) -> SkillEnvGuard:
        """Inject this registry's skill environment; use as a ``with`` block."""
        return apply_env_overrides_for_run_with_entries(self.skills, self.entries, environ)

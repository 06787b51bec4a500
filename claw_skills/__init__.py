"""Claw Skills - pluggable skill discovery, gating and scoped environments for agents."""

__version__ = "0.1.0"

from claw_skills.config import Config, SkillEntryConfig
from claw_skills.env_guard import SkillEnvGuard, apply_env_overrides_for_run
from claw_skills.models import Skill, SkillTool
from claw_skills.registry import SkillRegistry, load_skills, load_skills_for_run, skills_to_prompt

__all__ = [
    "Config",
    "Skill",
    "SkillEntryConfig",
    "SkillEnvGuard",
    "SkillRegistry",
    "SkillTool",
    "apply_env_overrides_for_run",
    "load_skills",
    "load_skills_for_run",
    "skills_to_prompt",
    "__version__",
]

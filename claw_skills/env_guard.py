"""Per-run skill environment injection with guaranteed restoration."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, MutableMapping
from types import TracebackType

from claw_skills.config import Config, SkillEntryConfig, load_user_skills_config
from claw_skills.logging import get_logger
from claw_skills.models import Skill

log = get_logger(__name__)


class SkillEnvGuard:
    """Capture/restore record for environment variables set during a skill run.

    Each variable's pre-mutation value (or its absence) is captured exactly
    once, on the first mutation. Leaving the ``with`` block, or calling
    ``restore()``, puts every captured variable back.

    The process environment is global: only one guard scope may be active at
    a time.
    """

    def __init__(self, environ: MutableMapping[str, str] | None = None):
        self._environ: MutableMapping[str, str] = os.environ if environ is None else environ
        self._original: dict[str, str | None] = {}

    @property
    def environ(self) -> MutableMapping[str, str]:
        return self._environ

    @property
    def captured(self) -> dict[str, str | None]:
        return dict(self._original)

    def capture(self, key: str) -> None:
        if key not in self._original:
            self._original[key] = self._environ.get(key)

    def set(self, key: str, value: str) -> None:
        self.capture(key)
        self._environ[key] = value

    def restore(self) -> None:
        for key, value in self._original.items():
            if value is None:
                self._environ.pop(key, None)
            else:
                self._environ[key] = value
        if self._original:
            log.debug("Restored skill environment", variables=sorted(self._original))
        self._original.clear()

    def __enter__(self) -> SkillEnvGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.restore()


def planned_env_overrides(
    skill: Skill,
    entry: SkillEntryConfig | None,
    environ: Mapping[str, str],
) -> dict[str, str]:
    """Variables a guard would inject for one skill, given the current environ."""
    if entry is None:
        return {}
    planned: dict[str, str] = {}
    for key, value in entry.env.items():
        if not key or key in environ:
            continue
        planned[key] = value
    primary_env = skill.primary_env
    if (
        primary_env
        and entry.api_key is not None
        and primary_env not in environ
        and primary_env not in entry.env
    ):
        planned[primary_env] = entry.api_key
    return planned


def injected_env_names(skill: Skill, entry: SkillEntryConfig | None) -> list[str]:
    """Names an overlay entry may inject for a skill, ignoring current state."""
    if entry is None:
        return []
    names = set(entry.env)
    if skill.primary_env and entry.api_key is not None:
        names.add(skill.primary_env)
    return sorted(names)


def apply_env_overrides_for_run_with_entries(
    skills: Iterable[Skill],
    entries: Mapping[str, SkillEntryConfig],
    environ: MutableMapping[str, str] | None = None,
) -> SkillEnvGuard:
    """Inject per-skill env/apiKey overrides and return the guard that undoes them.

    Entries are joined on ``skill.skill_key`` only. Variables already set are
    never overwritten.
    """
    guard = SkillEnvGuard(environ)
    try:
        for skill in skills:
            entry = entries.get(skill.skill_key)
            if entry is None:
                continue
            for key, value in planned_env_overrides(skill, entry, guard.environ).items():
                guard.set(key, value)
                log.debug("Injected skill environment variable", skill=skill.name, variable=key)
    except BaseException:
        guard.restore()
        raise
    return guard


def apply_env_overrides_for_run(
    skills: Iterable[Skill],
    cfg: Config | None = None,
    environ: MutableMapping[str, str] | None = None,
) -> SkillEnvGuard:
    """Apply overrides from the user configuration file."""
    user_config = load_user_skills_config(cfg)
    return apply_env_overrides_for_run_with_entries(skills, user_config.entries, environ)

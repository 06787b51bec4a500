"""Host snapshot threaded through skill enablement checks."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from claw_skills.eligibility import current_platform_tag, evaluate_eligibility
from claw_skills.models import EligibilityResult, SkillGating


@dataclass(frozen=True)
class SkillContext:
    """Effective environment, search path, platform and config for checks.

    Checks read from this snapshot instead of ambient process state, so a
    context built from plain dicts gives fully deterministic results.
    """

    workspace_dir: Path
    environ: Mapping[str, str] = field(default_factory=dict)
    path: tuple[str, ...] = ()
    platform: str = ""
    config_payload: Mapping[str, Any] | None = None

    @classmethod
    def from_process(
        cls,
        workspace_dir: Path | str | None = None,
        config_payload: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> SkillContext:
        """Snapshot the current process (or the given environ) into a context."""
        env = dict(os.environ if environ is None else environ)
        search_path = tuple(env.get("PATH", "").split(os.pathsep))
        return cls(
            workspace_dir=Path(workspace_dir) if workspace_dir is not None else Path.cwd(),
            environ=env,
            path=search_path,
            platform=current_platform_tag(),
            config_payload=config_payload,
        )

    def with_env(self, extra: Mapping[str, str]) -> SkillContext:
        if not extra:
            return self
        merged = dict(self.environ)
        merged.update(extra)
        return replace(self, environ=merged)

    def evaluate(self, gating: SkillGating | None) -> EligibilityResult:
        return evaluate_eligibility(
            gating,
            self.workspace_dir,
            path_override=self.path,
            env_override=self.environ,
            config_payload=self.config_payload,
            platform=self.platform or None,
        )

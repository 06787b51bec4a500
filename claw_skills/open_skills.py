"""Community open-skills repository sync and loading."""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from claw_skills.config import Config, OpenSkillsConfig, get_config
from claw_skills.logging import get_logger
from claw_skills.manifest import extract_description
from claw_skills.models import SOURCE_OPEN_SKILLS, Skill

log = get_logger(__name__)

OPEN_SKILLS_AUTHOR = "besoeasy/open-skills"
OPEN_SKILLS_VERSION = "open-skills"
OPEN_SKILLS_TAG = "open-skills"
OPEN_SKILLS_SYNC_MARKER = ".claw-open-skills-sync"
OPEN_SKILLS_DIR_NAME = "open-skills"

ENV_OPEN_SKILLS_ENABLED = "CLAW_OPEN_SKILLS_ENABLED"
ENV_OPEN_SKILLS_DIR = "CLAW_OPEN_SKILLS_DIR"

_FALSY_VALUES = {"0", "false", "off", "no"}


class OpenSkillsSource(Protocol):
    """Provider of a local copy of the community skills repository."""

    def fetch(self, repo_dir: Path) -> bool:
        """Create ``repo_dir`` from upstream; return success."""
        ...

    def refresh(self, repo_dir: Path) -> bool:
        """Update an existing ``repo_dir``; return success."""
        ...

    def should_refresh(self, repo_dir: Path) -> bool:
        ...

    def mark_fresh(self, repo_dir: Path) -> None:
        ...


def _run_git(args: list[str], timeout_seconds: int) -> tuple[int, str]:
    completed = subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        check=False,
        timeout=max(1, int(timeout_seconds)),
    )
    details = (completed.stderr or completed.stdout or "").strip()
    return completed.returncode, details


class GitOpenSkillsSource:
    """Shallow git clone + fast-forward pull, gated by a staleness marker."""

    def __init__(
        self,
        repo_url: str,
        sync_interval_seconds: int,
        timeout_seconds: int = 300,
    ):
        self.repo_url = repo_url
        self.sync_interval_seconds = sync_interval_seconds
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, cfg: OpenSkillsConfig) -> GitOpenSkillsSource:
        return cls(
            repo_url=cfg.repo_url,
            sync_interval_seconds=cfg.sync_interval_seconds,
            timeout_seconds=cfg.git_timeout_seconds,
        )

    def fetch(self, repo_dir: Path) -> bool:
        try:
            repo_dir.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.warning(
                "Failed to create open-skills parent directory",
                path=str(repo_dir.parent),
                error=str(exc),
            )
            return False

        try:
            code, details = _run_git(
                ["clone", "--depth", "1", self.repo_url, str(repo_dir)],
                self.timeout_seconds,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            log.warning("Failed to run git clone for open-skills", error=str(exc))
            return False
        if code != 0:
            log.warning("Failed to clone open-skills", error=details)
            return False
        log.info("Initialized open-skills", path=str(repo_dir))
        return True

    def refresh(self, repo_dir: Path) -> bool:
        # A directory without git metadata (e.g. a manual override) is served as is.
        if not (repo_dir / ".git").exists():
            return True
        try:
            code, details = _run_git(
                ["-C", str(repo_dir), "pull", "--ff-only"],
                self.timeout_seconds,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            log.warning("Failed to run git pull for open-skills", error=str(exc))
            return False
        if code != 0:
            log.warning("Failed to pull open-skills updates", error=details)
            return False
        return True

    def should_refresh(self, repo_dir: Path) -> bool:
        marker = repo_dir / OPEN_SKILLS_SYNC_MARKER
        try:
            modified_at = marker.stat().st_mtime
        except OSError:
            return True
        age = time.time() - modified_at
        if age < 0:
            return True
        return age >= self.sync_interval_seconds

    def mark_fresh(self, repo_dir: Path) -> None:
        try:
            (repo_dir / OPEN_SKILLS_SYNC_MARKER).write_bytes(b"synced")
        except OSError as exc:
            log.debug("Failed to write open-skills sync marker", path=str(repo_dir), error=str(exc))


def open_skills_enabled(env: Mapping[str, str] | None = None, default: bool = True) -> bool:
    environ = os.environ if env is None else env
    raw = environ.get(ENV_OPEN_SKILLS_ENABLED)
    if raw is not None:
        return raw.strip().lower() not in _FALSY_VALUES
    return default


def resolve_open_skills_dir(
    env: Mapping[str, str] | None = None,
    cfg: OpenSkillsConfig | None = None,
) -> Path | None:
    environ = os.environ if env is None else env
    override = (environ.get(ENV_OPEN_SKILLS_DIR) or "").strip()
    if override:
        return Path(override).expanduser()
    if cfg is not None and cfg.dir.strip():
        return Path(cfg.dir.strip()).expanduser()
    try:
        return Path.home() / OPEN_SKILLS_DIR_NAME
    except RuntimeError:
        return None


def ensure_open_skills_repo(
    cfg: Config | None = None,
    env: Mapping[str, str] | None = None,
    source: OpenSkillsSource | None = None,
) -> Path | None:
    """Make the community repository available locally, if enabled.

    Returns the directory to load skills from, or ``None`` when sync is
    disabled or the initial clone failed. Refresh failures keep serving the
    existing copy.
    """
    config = cfg or get_config()
    if not open_skills_enabled(env, default=config.open_skills.enabled):
        return None

    repo_dir = resolve_open_skills_dir(env, config.open_skills)
    if repo_dir is None:
        return None

    provider = source or GitOpenSkillsSource.from_config(config.open_skills)

    if not repo_dir.exists():
        if not provider.fetch(repo_dir):
            return None
        provider.mark_fresh(repo_dir)
        return repo_dir

    if provider.should_refresh(repo_dir):
        if provider.refresh(repo_dir):
            provider.mark_fresh(repo_dir)
        else:
            log.warning("open-skills update failed; using local copy", path=str(repo_dir))

    return repo_dir


def load_open_skill_md(path: Path | str) -> Skill:
    md_path = Path(path)
    content = md_path.read_text(encoding="utf-8")
    name = md_path.stem or "open-skill"
    return Skill(
        name=name,
        description=extract_description(content),
        version=OPEN_SKILLS_VERSION,
        author=OPEN_SKILLS_AUTHOR,
        tags=[OPEN_SKILLS_TAG],
        prompts=[content],
        location=md_path,
        skill_key=name,
        source=SOURCE_OPEN_SKILLS,
    )


def load_open_skills(repo_dir: Path | str) -> list[Skill]:
    """Turn each top-level markdown file except README.md into a skill."""
    root = Path(repo_dir)
    try:
        entries = sorted(root.iterdir(), key=lambda item: item.name)
    except OSError:
        return []

    skills: list[Skill] = []
    for path in entries:
        if not path.is_file():
            continue
        if path.suffix.lower() != ".md":
            continue
        if path.name.lower() == "readme.md":
            continue
        try:
            skills.append(load_open_skill_md(path))
        except (OSError, UnicodeDecodeError) as exc:
            log.debug("Skipping unreadable open skill", path=str(path), error=str(exc))
    return skills

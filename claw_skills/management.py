"""Skills directory initialization, installation, and removal."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from urllib.parse import urlparse

from claw_skills.exceptions import (
    InvalidSkillNameError,
    SkillInstallError,
    SkillNotFoundError,
    SkillRemovalError,
)
from claw_skills.logging import get_logger

log = get_logger(__name__)

_DEFAULT_INSTALL_TIMEOUT_SECONDS = 300

SKILLS_README = """# Claw Skills

Each subdirectory is a skill. Create a `SKILL.toml` or `SKILL.md` file inside.

## SKILL.toml format

```toml
[skill]
name = "my-skill"
description = "What this skill does"
version = "0.1.0"
author = "your-name"
tags = ["productivity", "automation"]

[[tools]]
name = "my_tool"
description = "What this tool does"
kind = "shell"
command = "echo hello"
```

## SKILL.md format (simpler)

Just write a markdown file with instructions for the agent.
The agent will read it and follow the instructions.

## Installing community skills

Install from a git URL or a local directory, then restart the agent.
"""


def skills_dir(workspace_dir: Path | str) -> Path:
    return Path(workspace_dir) / "skills"


def init_skills_dir(workspace_dir: Path | str) -> Path:
    """Create the skills directory with a README; safe to call repeatedly."""
    directory = skills_dir(workspace_dir)
    directory.mkdir(parents=True, exist_ok=True)
    readme = directory / "README.md"
    if not readme.exists():
        readme.write_text(SKILLS_README, encoding="utf-8")
    return directory


def _run_git_clone(repo_url: str, destination: Path, timeout_seconds: int) -> None:
    try:
        completed = subprocess.run(
            ["git", "clone", "--depth", "1", repo_url, str(destination)],
            capture_output=True,
            text=True,
            check=False,
            timeout=max(1, int(timeout_seconds)),
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise SkillInstallError(f"git clone failed: {exc}") from exc
    if completed.returncode == 0:
        return
    details = (completed.stderr or completed.stdout or "").strip()
    if details:
        raise SkillInstallError(f"git clone failed: {details}")
    raise SkillInstallError("git clone failed.")


def _repo_dir_name(url: str) -> str:
    path = urlparse(url).path.rstrip("/")
    name = path.rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return name


def _link_or_copy(source: Path, destination: Path) -> None:
    try:
        os.symlink(source, destination, target_is_directory=True)
    except (OSError, NotImplementedError):
        shutil.copytree(source, destination)


def install_skill(
    source: str,
    workspace_dir: Path | str,
    timeout_seconds: int = _DEFAULT_INSTALL_TIMEOUT_SECONDS,
) -> Path:
    """Install a skill from a git URL (shallow clone) or a local directory (symlink)."""
    target_root = skills_dir(workspace_dir)
    target_root.mkdir(parents=True, exist_ok=True)
    text = str(source or "").strip()
    if not text:
        raise SkillInstallError("Skill source is required.")

    if text.startswith(("https://", "http://")):
        name = _repo_dir_name(text)
        if not name or name in {".", ".."}:
            raise SkillInstallError(f"Cannot derive a skill folder name from URL: {text}")
        destination = target_root / name
        if destination.exists() or destination.is_symlink():
            raise SkillInstallError(f"Skill folder already exists: {destination}")
        _run_git_clone(text, destination, timeout_seconds)
        log.info("Skill installed", source=text, destination=str(destination))
        return destination

    local = Path(text).expanduser()
    if not local.exists():
        raise SkillInstallError(f"Source path does not exist: {text}")
    local = local.resolve()
    destination = target_root / local.name
    if destination.exists() or destination.is_symlink():
        raise SkillInstallError(f"Skill folder already exists: {destination}")
    try:
        _link_or_copy(local, destination)
    except OSError as exc:
        raise SkillInstallError(f"Failed to install skill from {text}: {exc}") from exc
    log.info("Skill linked", source=str(local), destination=str(destination))
    return destination


def _validate_skill_name(name: str) -> None:
    if not name or name in {".", ".."} or ".." in name or "/" in name or "\\" in name:
        raise InvalidSkillNameError(name)


def remove_skill(name: str, workspace_dir: Path | str) -> Path:
    """Delete an installed skill, refusing anything outside the skills root."""
    _validate_skill_name(name)

    root = skills_dir(workspace_dir)
    skill_path = root / name
    canonical_root = root.resolve()

    if not skill_path.exists() and not skill_path.is_symlink():
        raise SkillNotFoundError(name)

    if skill_path.is_symlink():
        # The link itself is removed, never its target.
        canonical_skill = skill_path.parent.resolve() / skill_path.name
    else:
        canonical_skill = skill_path.resolve()
    if canonical_skill == canonical_root or not canonical_skill.is_relative_to(canonical_root):
        raise SkillRemovalError(f"Skill path escapes skills directory: {name}")

    if skill_path.is_symlink() or skill_path.is_file():
        skill_path.unlink()
    else:
        shutil.rmtree(skill_path)
    log.info("Skill removed", skill=name, path=str(skill_path))
    return skill_path

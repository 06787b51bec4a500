"""Custom exceptions for Claw Skills."""

from pathlib import Path


class ClawSkillsError(Exception):
    """Base exception for Claw Skills."""

    pass


class SkillError(ClawSkillsError):
    """Skill-related errors."""

    pass


class SkillManifestError(SkillError):
    """A skill manifest could not be read or is structurally invalid."""

    def __init__(self, path: Path | str | None, message: str):
        location = f"{path}: " if path else ""
        super().__init__(f"{location}{message}")
        self.path = Path(path) if path else None
        self.message = message


class SkillNotFoundError(SkillError):
    """Skill not found."""

    def __init__(self, name: str):
        super().__init__(f"Skill not found: {name}")
        self.name = name


class SkillInstallError(SkillError):
    """Skill installation failed."""

    pass


class SkillRemovalError(SkillError):
    """Skill removal rejected or failed."""

    pass


class InvalidSkillNameError(SkillRemovalError):
    """Skill name contains path traversal or separator characters."""

    def __init__(self, name: str):
        super().__init__(f"Invalid skill name: {name}")
        self.name = name

"""Configuration management for Claw Skills."""

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# claw_skills.logging imports this module, so bind structlog directly.
log = structlog.get_logger(__name__)


# Paths
DEFAULT_CONFIG_PATH = Path("~/.claw-skills/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "claw-skills.yaml"
DEFAULT_USER_SKILLS_CONFIG_PATH = "~/.clawpilot/clawpilot.json"

OPEN_SKILLS_REPO_URL = "https://github.com/besoeasy/open-skills"
OPEN_SKILLS_SYNC_INTERVAL_SECONDS = 60 * 60 * 24 * 7


class WorkspaceConfig(BaseModel):
    """Workspace root configuration."""

    path: str = "./workspace"


class OpenSkillsConfig(BaseModel):
    """Community skill repository sync configuration."""

    enabled: bool = True
    dir: str = ""
    repo_url: str = OPEN_SKILLS_REPO_URL
    sync_interval_seconds: int = OPEN_SKILLS_SYNC_INTERVAL_SECONDS
    git_timeout_seconds: int = 300


class SkillsConfig(BaseModel):
    """Skill discovery configuration."""

    config_path: str = DEFAULT_USER_SKILLS_CONFIG_PATH
    scan_root: str = "./skills"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for Claw Skills."""

    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    open_skills: OpenSkillsConfig = Field(default_factory=OpenSkillsConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="CLAW_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; env vars and .env must win over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration, preferring env vars over YAML."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(exclude_none=True)
        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def resolved_workspace_path(self, runtime_base: Path | str | None = None) -> Path:
        """Resolve workspace path, anchoring relative paths to runtime base/cwd."""
        raw = Path(self.workspace.path).expanduser()
        if raw.is_absolute():
            return raw.resolve()
        anchor = Path(runtime_base).expanduser().resolve() if runtime_base is not None else Path.cwd().resolve()
        return (anchor / raw).resolve()


class SkillEntryConfig(BaseModel):
    """Per-skill overlay entry from the user configuration file."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool | None = None
    api_key: str | None = Field(default=None, alias="apiKey")
    env: dict[str, str] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)


class SkillEntriesConfig(BaseModel):
    """Skills section of the user configuration file."""

    entries: dict[str, SkillEntryConfig] = Field(default_factory=dict)


class UserSkillsConfig(BaseModel):
    """User configuration document holding per-skill overlays.

    ``raw`` keeps the whole decoded document so dotted configuration
    requirements can be resolved against it.
    """

    skills: SkillEntriesConfig = Field(default_factory=SkillEntriesConfig)

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_json(cls, path: Path | str) -> "UserSkillsConfig":
        """Load the user configuration, falling back to empty on any problem."""
        config_path = Path(path).expanduser()
        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError:
            return cls()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            log.warning("User skills config is not valid JSON", path=str(config_path), error=str(exc))
            return cls()
        if not isinstance(data, dict):
            log.warning("User skills config must be a JSON object", path=str(config_path))
            return cls()

        try:
            parsed = cls.model_validate(data)
        except ValidationError as exc:
            log.warning("User skills config failed validation", path=str(config_path), error=str(exc))
            return cls()
        parsed._raw = data
        return parsed

    @property
    def raw(self) -> dict[str, Any]:
        return self._raw

    @property
    def entries(self) -> dict[str, SkillEntryConfig]:
        return self.skills.entries


def load_user_skills_config(config: Config | None = None) -> UserSkillsConfig:
    """Load per-skill overlays from the configured JSON file."""
    cfg = config or get_config()
    return UserSkillsConfig.from_json(cfg.skills.config_path)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config

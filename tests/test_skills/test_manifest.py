from pathlib import Path

import pytest

from claw_skills.exceptions import SkillManifestError
from claw_skills.manifest import (
    NO_DESCRIPTION,
    extract_description,
    load_skill_toml,
    load_skills_from_directory,
    load_workspace_skills,
)


def _write_skill_file(workspace: Path, skill_name: str, filename: str, content: str) -> Path:
    skill_dir = workspace / "skills" / skill_name
    skill_dir.mkdir(parents=True, exist_ok=True)
    path = skill_dir / filename
    path.write_text(content, encoding="utf-8")
    return path


def test_load_workspace_skills_empty_and_missing(tmp_path: Path):
    assert load_workspace_skills(tmp_path) == []
    assert load_workspace_skills(tmp_path / "nonexistent") == []


def test_load_skill_from_toml(tmp_path: Path):
    manifest = _write_skill_file(
        tmp_path,
        "test-skill",
        "SKILL.toml",
        (
            "[skill]\n"
            'name = "test-skill"\n'
            'description = "A test skill"\n'
            'version = "1.0.0"\n'
            'tags = ["test"]\n\n'
            "[[tools]]\n"
            'name = "hello"\n'
            'description = "Says hello"\n'
            'kind = "shell"\n'
            'command = "echo hello"\n'
        ),
    )

    skills = load_workspace_skills(tmp_path)

    assert len(skills) == 1
    skill = skills[0]
    assert skill.name == "test-skill"
    assert skill.skill_key == "test-skill"
    assert skill.version == "1.0.0"
    assert skill.tags == ["test"]
    assert len(skill.tools) == 1
    assert skill.tools[0].name == "hello"
    assert skill.tools[0].kind == "shell"
    assert skill.location == manifest


def test_toml_skill_with_multiple_tools_and_prompts(tmp_path: Path):
    _write_skill_file(
        tmp_path,
        "multi-tool",
        "SKILL.toml",
        (
            'prompts = ["Always build before testing."]\n\n'
            "[skill]\n"
            'name = "multi-tool"\n'
            'description = "Has many tools"\n'
            'version = "2.0.0"\n'
            'author = "tester"\n'
            'tags = ["automation", "devops"]\n\n'
            "[[tools]]\n"
            'name = "build"\n'
            'description = "Build the project"\n'
            'kind = "shell"\n'
            'command = "make build"\n\n'
            "[[tools]]\n"
            'name = "deploy"\n'
            'description = "Deploy via HTTP"\n'
            'kind = "http"\n'
            'command = "https://api.example.com/deploy"\n'
            'args = { env = "prod" }\n'
        ),
    )

    skill = load_workspace_skills(tmp_path)[0]

    assert skill.author == "tester"
    assert skill.tags == ["automation", "devops"]
    assert [tool.kind for tool in skill.tools] == ["shell", "http"]
    assert skill.tools[1].args == {"env": "prod"}
    assert skill.prompts == ["Always build before testing."]


def test_toml_skill_minimal_uses_defaults(tmp_path: Path):
    _write_skill_file(
        tmp_path,
        "minimal",
        "SKILL.toml",
        '[skill]\nname = "minimal"\ndescription = "Bare minimum"\n',
    )

    skill = load_workspace_skills(tmp_path)[0]

    assert skill.version == "0.1.0"
    assert skill.author is None
    assert skill.tags == []
    assert skill.tools == []
    assert skill.prompts == []
    assert skill.gating is None
    assert skill.primary_env is None


def test_toml_skill_reads_key_primary_env_and_gating(tmp_path: Path):
    _write_skill_file(
        tmp_path,
        "weather",
        "SKILL.toml",
        (
            "[skill]\n"
            'name = "Weather"\n'
            'description = "Forecasts"\n\n'
            "[skill.requirements]\n"
            'env = ["WEATHER_API_KEY"]\n\n'
            "[skill.metadata.openclaw]\n"
            'skillKey = "weather-pro"\n'
            'primaryEnv = "WEATHER_API_KEY"\n'
            'os = ["macos", "linux"]\n'
            'requires = { bins = ["curl"], anyBins = ["jq", "yq"], config = ["weather.units"] }\n'
        ),
    )

    skill = load_workspace_skills(tmp_path)[0]

    assert skill.name == "Weather"
    assert skill.skill_key == "weather-pro"
    assert skill.primary_env == "WEATHER_API_KEY"
    assert skill.requires_env == ["WEATHER_API_KEY"]
    assert skill.gating is not None
    assert skill.gating.os == ["darwin", "linux"]
    assert skill.gating.requires.bins == ["curl"]
    assert skill.gating.requires.any_bins == ["jq", "yq"]
    assert skill.gating.requires.config == ["weather.units"]


def test_load_skill_from_md(tmp_path: Path):
    content = "# My Skill\nThis skill does cool things.\n"
    _write_skill_file(tmp_path, "md-skill", "SKILL.md", content)

    skills = load_workspace_skills(tmp_path)

    assert len(skills) == 1
    assert skills[0].name == "md-skill"
    assert skills[0].skill_key == "md-skill"
    assert skills[0].version == "0.1.0"
    assert skills[0].description == "This skill does cool things."
    assert skills[0].prompts == [content]


def test_md_skill_heading_only_uses_placeholder(tmp_path: Path):
    _write_skill_file(tmp_path, "heading-only", "SKILL.md", "# Just a Heading\n")

    skills = load_workspace_skills(tmp_path)

    assert len(skills) == 1
    assert skills[0].description == NO_DESCRIPTION == "No description"


def test_toml_takes_priority_over_md(tmp_path: Path):
    _write_skill_file(
        tmp_path,
        "dual",
        "SKILL.toml",
        '[skill]\nname = "from-toml"\ndescription = "TOML wins"\n',
    )
    _write_skill_file(tmp_path, "dual", "SKILL.md", "# From MD\nMD description\n")

    skills = load_workspace_skills(tmp_path)

    assert len(skills) == 1
    assert skills[0].name == "from-toml"
    assert skills[0].description == "TOML wins"


def test_invalid_toml_is_skipped_without_error(tmp_path: Path):
    _write_skill_file(tmp_path, "broken", "SKILL.toml", "this is not valid toml {{{{")
    _write_skill_file(tmp_path, "fine", "SKILL.md", "# Fine\nStill loads.\n")

    skills = load_workspace_skills(tmp_path)

    assert [skill.name for skill in skills] == ["fine"]


def test_toml_missing_required_field_is_skipped(tmp_path: Path):
    _write_skill_file(tmp_path, "nameless", "SKILL.toml", '[skill]\ndescription = "no name"\n')

    assert load_workspace_skills(tmp_path) == []


def test_broken_toml_does_not_fall_back_to_md(tmp_path: Path):
    _write_skill_file(tmp_path, "dual-broken", "SKILL.toml", "[skill\n")
    _write_skill_file(tmp_path, "dual-broken", "SKILL.md", "# Backup\nShould not load.\n")

    assert load_workspace_skills(tmp_path) == []


def test_ignores_files_and_dirs_without_manifest(tmp_path: Path):
    skills_root = tmp_path / "skills"
    (skills_root / "empty-skill").mkdir(parents=True)
    (skills_root / "not-a-skill.txt").write_text("hello", encoding="utf-8")

    assert load_skills_from_directory(skills_root) == []


def test_unreadable_skill_directory_is_skipped(tmp_path: Path, monkeypatch):
    _write_skill_file(tmp_path, "good", "SKILL.md", "# Good\nStill loads.\n")
    (tmp_path / "skills" / "locked").mkdir()
    original_exists = Path.exists

    def _exists(self: Path, *args, **kwargs) -> bool:
        if self.parent.name == "locked":
            raise PermissionError(13, "Permission denied", str(self))
        return original_exists(self, *args, **kwargs)

    monkeypatch.setattr(Path, "exists", _exists)

    skills = load_workspace_skills(tmp_path)

    assert [skill.name for skill in skills] == ["good"]


def test_load_multiple_skills_sorted_by_directory(tmp_path: Path):
    for name in ["gamma", "alpha", "beta"]:
        _write_skill_file(tmp_path, name, "SKILL.md", f"# {name}\nSkill {name} description.\n")

    skills = load_workspace_skills(tmp_path)

    assert [skill.name for skill in skills] == ["alpha", "beta", "gamma"]


def test_load_skill_toml_raises_for_direct_load(tmp_path: Path):
    manifest = _write_skill_file(tmp_path, "strict", "SKILL.toml", "[skill]\nname = 3\n")

    with pytest.raises(SkillManifestError) as exc_info:
        load_skill_toml(manifest)

    assert exc_info.value.path == manifest


def test_extract_description_skips_blank_and_heading_lines():
    assert extract_description("\n# Title\n\n## Sub\n   Real text  \nmore") == "Real text"
    assert extract_description("") == "No description"
    assert extract_description("   \n\t\n") == "No description"

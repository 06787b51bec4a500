import os

import pytest

from claw_skills.config import SkillEntryConfig
from claw_skills.env_guard import (
    SkillEnvGuard,
    apply_env_overrides_for_run,
    apply_env_overrides_for_run_with_entries,
    injected_env_names,
    planned_env_overrides,
)
from claw_skills.models import Skill


def _skill(name: str = "env-skill", skill_key: str = "env-key", primary_env: str | None = None) -> Skill:
    return Skill(
        name=name,
        description="d",
        version="0.1.0",
        skill_key=skill_key,
        primary_env=primary_env,
    )


def test_env_injection_and_restore_leaves_preexisting_value(monkeypatch):
    dynamic = f"CLAW_TEST_ENV_{os.getpid()}"
    monkeypatch.delenv(dynamic, raising=False)
    monkeypatch.setenv("CLAW_PRIMARY_ENV_TEST", "already-set")
    skill = _skill(primary_env="CLAW_PRIMARY_ENV_TEST")
    entries = {
        "env-key": SkillEntryConfig(
            enabled=True,
            api_key="secret-key",
            env={dynamic: "from-config"},
        )
    }

    with apply_env_overrides_for_run_with_entries([skill], entries):
        assert os.environ[dynamic] == "from-config"
        assert os.environ["CLAW_PRIMARY_ENV_TEST"] == "already-set"

    assert dynamic not in os.environ
    assert os.environ["CLAW_PRIMARY_ENV_TEST"] == "already-set"


def test_api_key_maps_to_primary_env_and_is_removed_after(monkeypatch):
    monkeypatch.delenv("CLAW_PRIMARY_ENV_API_KEY_TEST", raising=False)
    skill = _skill(skill_key="api-key", primary_env="CLAW_PRIMARY_ENV_API_KEY_TEST")
    entries = {"api-key": SkillEntryConfig(api_key="mapped-secret")}

    with apply_env_overrides_for_run_with_entries([skill], entries):
        assert os.environ["CLAW_PRIMARY_ENV_API_KEY_TEST"] == "mapped-secret"

    assert "CLAW_PRIMARY_ENV_API_KEY_TEST" not in os.environ


def test_restore_runs_when_scope_raises():
    environ: dict[str, str] = {}
    skill = _skill(primary_env="TOKEN")
    entries = {"env-key": SkillEntryConfig(api_key="k")}

    with pytest.raises(RuntimeError):
        with apply_env_overrides_for_run_with_entries([skill], entries, environ):
            assert environ == {"TOKEN": "k"}
            raise RuntimeError("boom")

    assert environ == {}


def test_explicit_env_map_wins_over_api_key_for_primary_env():
    environ: dict[str, str] = {}
    skill = _skill(primary_env="TOKEN")
    entries = {"env-key": SkillEntryConfig(api_key="from-api-key", env={"TOKEN": "from-env-map"})}

    with apply_env_overrides_for_run_with_entries([skill], entries, environ):
        assert environ == {"TOKEN": "from-env-map"}

    assert environ == {}


def test_entries_join_on_skill_key_not_name():
    environ: dict[str, str] = {}
    skill = _skill(name="display-name", skill_key="config-key")
    entries = {"display-name": SkillEntryConfig(env={"BY_NAME": "1"})}

    with apply_env_overrides_for_run_with_entries([skill], entries, environ) as guard:
        assert environ == {}
        assert guard.captured == {}


def test_capture_happens_once_per_variable():
    environ = {"SHARED": "original"}
    guard = SkillEnvGuard(environ)

    guard.set("SHARED", "first")
    guard.set("SHARED", "second")
    guard.set("FRESH", "value")

    assert guard.captured == {"SHARED": "original", "FRESH": None}
    guard.restore()
    assert environ == {"SHARED": "original"}


def test_restore_is_idempotent():
    environ: dict[str, str] = {}
    guard = SkillEnvGuard(environ)
    guard.set("ONCE", "1")

    guard.restore()
    environ["ONCE"] = "set later by someone else"
    guard.restore()

    assert environ == {"ONCE": "set later by someone else"}


def test_second_skill_does_not_overwrite_first_skill_injection():
    environ: dict[str, str] = {}
    first = _skill(name="first", skill_key="first")
    second = _skill(name="second", skill_key="second")
    entries = {
        "first": SkillEntryConfig(env={"SHARED": "from-first"}),
        "second": SkillEntryConfig(env={"SHARED": "from-second"}),
    }

    with apply_env_overrides_for_run_with_entries([first, second], entries, environ) as guard:
        assert environ == {"SHARED": "from-first"}
        assert guard.captured == {"SHARED": None}

    assert environ == {}


def test_planned_and_injected_env_names():
    skill = _skill(primary_env="TOKEN")
    entry = SkillEntryConfig(api_key="k", env={"B": "2", "A": "1"})

    assert planned_env_overrides(skill, entry, {"A": "present"}) == {"B": "2", "TOKEN": "k"}
    assert planned_env_overrides(skill, None, {}) == {}
    assert injected_env_names(skill, entry) == ["A", "B", "TOKEN"]
    assert injected_env_names(skill, None) == []


def test_apply_env_overrides_for_run_reads_user_config(tmp_path):
    from claw_skills.config import Config

    config_file = tmp_path / "clawpilot.json"
    config_file.write_text(
        '{"skills": {"entries": {"env-key": {"apiKey": "from-file"}}}}',
        encoding="utf-8",
    )
    cfg = Config()
    cfg.skills.config_path = str(config_file)
    environ: dict[str, str] = {}

    with apply_env_overrides_for_run([_skill(primary_env="FILE_TOKEN")], cfg, environ):
        assert environ == {"FILE_TOKEN": "from-file"}

    assert environ == {}

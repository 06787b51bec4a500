import pytest

from claw_skills.config import Config, set_config


@pytest.fixture(autouse=True)
def _isolated_skill_runtime(monkeypatch, tmp_path_factory):
    # Keep discovery network-free unless a test opts in explicitly.
    monkeypatch.setenv("CLAW_OPEN_SKILLS_ENABLED", "0")
    monkeypatch.delenv("CLAW_OPEN_SKILLS_DIR", raising=False)

    cfg = Config()
    cfg.skills.config_path = str(tmp_path_factory.mktemp("user-config") / "clawpilot.json")
    set_config(cfg)
    yield
    set_config(Config())

"""Gating metadata parsing and eligibility evaluation."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from claw_skills.models import EligibilityResult, SkillGating, SkillRequires

_VENDOR_KEYS = ("openclaw", "captainclaw", "claw")
# Keys of an unwrapped block; never mistaken for a vendor namespace.
_BLOCK_KEYS = {"always", "os", "requires", "skillKey", "primaryEnv"}

_OS_ALIASES = {
    "linux": "linux",
    "darwin": "darwin",
    "macos": "darwin",
    "mac": "darwin",
    "osx": "darwin",
    "win32": "win32",
    "windows": "win32",
    "win": "win32",
}

SearchPath = str | Sequence[str | Path]


def _normalize_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return []


def _parse_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return fallback


def unwrap_vendor_metadata(metadata: Any) -> dict[str, Any] | None:
    """Return the vendor block of a skill metadata mapping.

    Accepts ``{"openclaw": {...}}``, a single custom vendor key wrapping a
    dict, or an already-unwrapped block.
    """
    if not isinstance(metadata, dict) or not metadata:
        return None

    for key in _VENDOR_KEYS:
        candidate = metadata.get(key)
        if isinstance(candidate, dict):
            return candidate

    if len(metadata) == 1:
        only_key, only_value = next(iter(metadata.items()))
        if isinstance(only_value, dict) and only_key not in _BLOCK_KEYS:
            return only_value
    return metadata


def normalize_os_tag(value: str) -> str:
    text = str(value or "").strip().lower()
    return _OS_ALIASES.get(text, text)


def current_platform_tag() -> str:
    """Return ``linux``, ``darwin`` or ``win32`` for the running host."""
    platform = sys.platform.lower()
    if platform.startswith("linux"):
        return "linux"
    if platform.startswith("darwin"):
        return "darwin"
    if platform.startswith("win"):
        return "win32"
    return platform


def parse_gating_metadata(metadata: Any) -> SkillGating | None:
    """Parse gating requirements out of a manifest metadata mapping."""
    block = unwrap_vendor_metadata(metadata)
    if block is None:
        return None

    requires_raw = block.get("requires")
    requires = SkillRequires()
    if isinstance(requires_raw, dict):
        requires = SkillRequires(
            bins=_normalize_string_list(requires_raw.get("bins")),
            any_bins=_normalize_string_list(requires_raw.get("anyBins", requires_raw.get("any_bins"))),
            env=_normalize_string_list(requires_raw.get("env")),
            config=_normalize_string_list(requires_raw.get("config")),
        )
    return SkillGating(
        always=_parse_bool(block.get("always"), False),
        os=[normalize_os_tag(tag) for tag in _normalize_string_list(block.get("os"))],
        requires=requires,
    )


def _effective_search_path(path_override: SearchPath | None) -> list[str]:
    if path_override is None:
        return os.environ.get("PATH", "").split(os.pathsep)
    if isinstance(path_override, str):
        return path_override.split(os.pathsep)
    return [str(item) for item in path_override]


def _has_path_separator(name: str) -> bool:
    if "/" in name or os.sep in name:
        return True
    return bool(os.altsep and os.altsep in name)


def resolve_binary(
    name: str,
    path_override: SearchPath | None = None,
    workspace_dir: Path | str | None = None,
) -> Path | None:
    """Locate an executable by name the way a shell search would.

    Names containing a path separator are literal paths (relative ones are
    anchored at ``workspace_dir``). Only regular files match.
    """
    text = str(name or "").strip()
    if not text:
        return None

    if _has_path_separator(text):
        candidate = Path(text).expanduser()
        if not candidate.is_absolute() and workspace_dir is not None:
            candidate = Path(workspace_dir) / candidate
        return candidate if candidate.is_file() else None

    for directory in _effective_search_path(path_override):
        if not directory:
            continue
        candidate = Path(directory) / text
        if candidate.is_file():
            return candidate
    return None


def is_config_path_truthy(cfg_payload: Mapping[str, Any], path: str) -> bool:
    text = str(path or "").strip()
    if not text:
        return False
    current: Any = cfg_payload
    for part in text.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
            continue
        return False
    if isinstance(current, str):
        return bool(current.strip())
    return bool(current)


def evaluate_eligibility(
    gating: SkillGating | None,
    workspace_dir: Path | str,
    path_override: SearchPath | None = None,
    env_override: Mapping[str, str] | None = None,
    config_payload: Mapping[str, Any] | None = None,
    platform: str | None = None,
) -> EligibilityResult:
    """Decide whether a skill's gating requirements hold on this host.

    Every unmet requirement contributes one human-readable reason, in the
    order: OS, binaries, any-of binaries, env vars, config keys. When
    ``env_override`` is given it replaces the process environment
    entirely; likewise ``path_override`` replaces ``PATH``.

    Dotted config keys can only be checked against ``config_payload``;
    without one each key is reported as unsupported.
    """
    if gating is None or gating.always:
        return EligibilityResult(eligible=True)

    reasons: list[str] = []
    requires = gating.requires

    current_os = normalize_os_tag(platform) if platform else current_platform_tag()
    if gating.os and current_os not in gating.os:
        reasons.append(f"requires os {', '.join(gating.os)}; current os is {current_os}")

    for bin_name in requires.bins:
        if resolve_binary(bin_name, path_override, workspace_dir) is None:
            reasons.append(f"missing binary: {bin_name}")

    if requires.any_bins and not any(
        resolve_binary(bin_name, path_override, workspace_dir) is not None
        for bin_name in requires.any_bins
    ):
        reasons.append(f"missing any of binaries: {', '.join(requires.any_bins)}")

    environ: Mapping[str, str] = os.environ if env_override is None else env_override
    for env_name in requires.env:
        value = environ.get(env_name)
        if value is None or not value.strip():
            reasons.append(f"missing env: {env_name}")

    for cfg_path in requires.config:
        if config_payload is None:
            reasons.append(f"config requirement unsupported: {cfg_path}")
        elif not is_config_path_truthy(config_payload, cfg_path):
            reasons.append(f"missing config: {cfg_path}")

    return EligibilityResult(eligible=not reasons, reasons=reasons)

"""Configuration loading and runtime path resolution.

Layers, lowest first: ``config/default.yaml``, ``config/local.yaml``, the
file named by ``CONDUCTOR_CONFIG`` (if set), then programmatic overrides.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "CONDUCTOR_CONFIG"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; a missing file reads as empty."""
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = merge_dicts(current, value)
        merged[key] = value
    return merged


def config_value(config: dict[str, Any], dotted_key: str, default: Any = None) -> Any:
    """Look up ``"section.key"`` style paths, returning ``default`` when absent."""
    node: Any = config
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def resolve_runtime_paths(root: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Resolve configured paths against ``root`` and create their parent dirs."""
    defaults = {
        "db_path": "workspace/plans.db",
        "audit_log_path": "logs/audit.jsonl",
        "task_registry_path": "config/task_registry.yaml",
    }
    paths: dict[str, Path] = {}
    for name, fallback in defaults.items():
        path = Path(config_value(config, f"paths.{name}", fallback))
        paths[name] = (path if path.is_absolute() else root / path).resolve()
    paths["db_path"].parent.mkdir(parents=True, exist_ok=True)
    paths["audit_log_path"].parent.mkdir(parents=True, exist_ok=True)
    return paths


def load_effective_config(root: Path, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Merge every config layer into one mapping."""
    config_dir = root / "config"
    merged = merge_dicts(load_yaml(config_dir / "default.yaml"), load_yaml(config_dir / "local.yaml"))
    extra = os.getenv(CONFIG_ENV_VAR)
    if extra:
        merged = merge_dicts(merged, load_yaml(Path(extra).expanduser()))
    return merge_dicts(merged, overrides or {})

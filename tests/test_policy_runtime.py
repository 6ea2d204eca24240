"""Config layering and audit trail tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.policy_runtime import (
    CONFIG_ENV_VAR,
    config_value,
    load_effective_config,
    merge_dicts,
    resolve_runtime_paths,
)
from governance.audit_logger import AuditLogger, hash_inputs


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_merge_dicts_is_recursive_and_non_mutating() -> None:
    base = {"engine": {"max_concurrency": 1, "task_timeout_seconds": None}, "store": {"backend": "sql"}}

    merged = merge_dicts(base, {"engine": {"max_concurrency": 4}})

    assert merged == {"engine": {"max_concurrency": 4, "task_timeout_seconds": None}, "store": {"backend": "sql"}}
    assert base["engine"]["max_concurrency"] == 1


def test_config_layers_apply_in_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    write(tmp_path / "config" / "default.yaml", "budget:\n  default_grant: 10\nretry:\n  max_attempts: 3\n")
    write(tmp_path / "config" / "local.yaml", "budget:\n  default_grant: 20\n")
    extra = write(tmp_path / "ops.yaml", "retry:\n  max_attempts: 5\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(extra))

    config = load_effective_config(tmp_path, {"budget": {"grants": {"alice": 1}}})

    assert config_value(config, "budget.default_grant") == 20
    assert config_value(config, "retry.max_attempts") == 5
    assert config_value(config, "budget.grants.alice") == 1
    assert config_value(config, "engine.max_concurrency", 1) == 1


def test_non_mapping_config_is_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    write(tmp_path / "config" / "default.yaml", "- a\n- b\n")

    with pytest.raises(ValueError, match="mapping"):
        load_effective_config(tmp_path)


def test_runtime_paths_resolve_against_root(tmp_path: Path) -> None:
    absolute_db = tmp_path / "elsewhere" / "plans.db"

    paths = resolve_runtime_paths(tmp_path, {"paths": {"db_path": str(absolute_db)}})

    assert paths["db_path"] == absolute_db.resolve()
    assert paths["audit_log_path"] == (tmp_path / "logs" / "audit.jsonl").resolve()
    assert paths["task_registry_path"] == (tmp_path / "config" / "task_registry.yaml").resolve()
    assert absolute_db.parent.is_dir()


def test_audit_trail_reads_back_by_plan(tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "audit.jsonl")

    audit.log("plan_a", "task_1", "TESTING", {"description": "x"}, "completed", 20.0)
    audit.log("plan_b", "task_2", "DEPLOYMENT", {"description": "y"}, "skipped", 0.0, "dependencies not satisfied")

    records = audit.records("plan_b")
    assert [r.task_id for r in records] == ["task_2"]
    assert records[0].reason == "dependencies not satisfied"
    assert len(audit.records()) == 2
    assert audit.records()[0].inputs_hash == hash_inputs({"description": "x"})

"""
juggler — unit tests for config loader and schema

File: tests/unit/config/test_config_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Env var path mapping and type coercion.
- Strict schema validation with dotted issue paths.

Functional requirements
- Offline and deterministic.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from juggler.config import (
    ConfigLoadError,
    ConfigValidationError,
    default_config,
    dump_effective_config,
    load_config,
    merge_config,
    validate_config,
)


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_loader_precedence_default_file_env_cli(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "custom.toml"
    _write_config(config_path, "[dao]\nbulk_concurrency = 4\n")
    env = {"JUGGLER_DAO_BULK_CONCURRENCY": "6"}

    default_loaded = load_config(None, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ=env)
    cli_loaded = load_config(
        config_path, environ=env, cli_overrides={"dao.bulk_concurrency": 7}
    )

    assert default_loaded["dao"]["bulk_concurrency"] == 1
    assert file_loaded["dao"]["bulk_concurrency"] == 4
    assert env_loaded["dao"]["bulk_concurrency"] == 6
    assert cli_loaded["dao"]["bulk_concurrency"] == 7


def test_env_overrides_are_coerced_by_default_type(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    loaded = load_config(
        None,
        environ={
            "JUGGLER_DAO_ATOMIC_UPSERTS": "yes",
            "JUGGLER_OBSERVABILITY_LOG_LEVEL": "debug",
            "JUGGLER_OBSERVABILITY_TRACE_BUFFER_SIZE": "32",
            "JUGGLER_UNRELATED": "ignored",
        },
    )

    assert loaded["dao"]["atomic_upserts"] is True
    assert loaded["observability"]["log_level"] == "debug"
    assert loaded["observability"]["trace_buffer_size"] == 32


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("JUGGLER_DAO_ATOMIC_UPSERTS", "maybe"),
        ("JUGGLER_DAO_BULK_CONCURRENCY", "four"),
    ],
)
def test_env_overrides_with_bad_values_fail(
    name: str, value: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigLoadError, match=name):
        load_config(None, environ={name: value})


def test_explicit_missing_file_and_invalid_toml_fail(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="not found"):
        load_config(tmp_path / "missing.toml", environ={})

    broken = tmp_path / "broken.toml"
    _write_config(broken, "[dao\n")
    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(broken, environ={})


def test_unknown_keys_and_bad_values_are_reported_with_paths(tmp_path: Path) -> None:
    config_path = tmp_path / "juggler.toml"
    _write_config(
        config_path,
        '[dao]\nbulk_concurrency = 0\ntypo = 1\n[datasource]\nconnector = "mongodb"\n',
    )

    with pytest.raises(ConfigValidationError) as info:
        load_config(config_path, environ={})

    paths = {issue.path for issue in info.value.issues}
    assert paths == {"dao.bulk_concurrency", "dao.typo", "datasource.connector"}


def test_validate_config_accepts_defaults_and_rejects_non_mappings() -> None:
    assert validate_config(default_config()).is_valid
    result = validate_config(["not", "a", "mapping"])
    assert not result.is_valid
    assert result.issues[0].path == "<root>"


def test_merge_config_is_deep_and_does_not_mutate_inputs() -> None:
    base = default_config()
    merged = merge_config(base, {"observability": {"log_json": False}})

    assert merged["observability"]["log_json"] is False
    assert merged["observability"]["log_level"] == "WARNING"
    assert base["observability"]["log_json"] is True


def test_dump_effective_config_is_deterministic(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    dumped = dump_effective_config(load_config(None, environ={}))

    assert dumped == dump_effective_config(json.loads(dumped))
    assert json.loads(dumped)["datasource"] == {"connector": "memory"}


def test_default_file_in_working_directory_is_used(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    _write_config(tmp_path / "juggler.toml", "[observability]\nlog_json = false\n")

    assert load_config(None, environ={})["observability"]["log_json"] is False

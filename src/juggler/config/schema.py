"""
juggler — configuration schema and validation.

File: src/juggler/config/schema.py

Purpose
- Define authoritative configuration defaults and strict validation rules.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Reject unknown sections/keys so typos fail fast.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from juggler.constants import CONFIG_SCHEMA_VERSION, DEFAULT_CONNECTOR, SUPPORTED_CONNECTORS
from juggler.errors import JugglerError

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
MAX_BULK_CONCURRENCY: Final[int] = 1024


class MetaConfig(TypedDict):
    schema_version: int


class DataSourceConfig(TypedDict):
    connector: Literal["memory"]


class DaoConfig(TypedDict):
    atomic_upserts: bool
    bulk_concurrency: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_json: bool
    log_file: str
    trace_notifications: bool
    trace_buffer_size: int


class JugglerConfig(TypedDict):
    meta: MetaConfig
    datasource: DataSourceConfig
    dao: DaoConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[JugglerConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "datasource": {
        "connector": DEFAULT_CONNECTOR,
    },
    "dao": {
        "atomic_upserts": False,
        "bulk_concurrency": 1,
    },
    "observability": {
        "log_level": "WARNING",
        "log_json": True,
        "log_file": "",
        "trace_notifications": True,
        "trace_buffer_size": 512,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(JugglerError, ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> JugglerConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = copy.deepcopy(dict(base))
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate a complete config and return structured issues with dotted paths."""

    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", "config must be an object")
        return ConfigValidationResult(config=None, issues=issues.items())

    _reject_unknown_keys(config, DEFAULT_CONFIG, "", issues)
    _validate_meta(config.get("meta"), issues)
    _validate_datasource(config.get("datasource"), issues)
    _validate_dao(config.get("dao"), issues)
    _validate_observability(config.get("observability"), issues)

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=copy.deepcopy(dict(config)), issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_meta(section: object, issues: _IssueCollector) -> None:
    meta = _section(section, "meta", issues)
    if meta is None:
        return
    version = meta.get("schema_version")
    if isinstance(version, bool) or not isinstance(version, int):
        issues.add("meta.schema_version", "must be an integer")
    elif version != ConfigSchemaVersion:
        issues.add(
            "meta.schema_version",
            f"schema version {version} is not supported (expected {ConfigSchemaVersion})",
        )


def _validate_datasource(section: object, issues: _IssueCollector) -> None:
    datasource = _section(section, "datasource", issues)
    if datasource is None:
        return
    connector = datasource.get("connector")
    if connector not in SUPPORTED_CONNECTORS:
        issues.add(
            "datasource.connector",
            f"must be one of {', '.join(SUPPORTED_CONNECTORS)}, got {connector!r}",
        )


def _validate_dao(section: object, issues: _IssueCollector) -> None:
    dao = _section(section, "dao", issues)
    if dao is None:
        return
    if not isinstance(dao.get("atomic_upserts"), bool):
        issues.add("dao.atomic_upserts", "must be a boolean")
    concurrency = dao.get("bulk_concurrency")
    if isinstance(concurrency, bool) or not isinstance(concurrency, int):
        issues.add("dao.bulk_concurrency", "must be an integer")
    elif not 1 <= concurrency <= MAX_BULK_CONCURRENCY:
        issues.add("dao.bulk_concurrency", f"must be between 1 and {MAX_BULK_CONCURRENCY}")


def _validate_observability(section: object, issues: _IssueCollector) -> None:
    observability = _section(section, "observability", issues)
    if observability is None:
        return
    level = observability.get("log_level")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        issues.add("observability.log_level", f"must be one of {', '.join(LOG_LEVELS)}")
    for key in ("log_json", "trace_notifications"):
        if not isinstance(observability.get(key), bool):
            issues.add(f"observability.{key}", "must be a boolean")
    if not isinstance(observability.get("log_file"), str):
        issues.add("observability.log_file", "must be a string")
    buffer_size = observability.get("trace_buffer_size")
    if isinstance(buffer_size, bool) or not isinstance(buffer_size, int) or buffer_size <= 0:
        issues.add("observability.trace_buffer_size", "must be a positive integer")


def _section(value: object, path: str, issues: _IssueCollector) -> Mapping[str, object] | None:
    if value is None:
        issues.add(path, "section is required")
        return None
    if not isinstance(value, Mapping):
        issues.add(path, "must be an object")
        return None
    return value


def _reject_unknown_keys(
    payload: Mapping[str, object],
    schema: Mapping[str, object],
    prefix: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(str(item) for item in payload):
        path = f"{prefix}.{key}" if prefix else key
        if key not in schema:
            issues.add(path, "unknown key")
            continue
        child_schema = schema[key]
        child_value = payload[key]
        if isinstance(child_schema, Mapping) and isinstance(child_value, Mapping):
            _reject_unknown_keys(child_value, child_schema, path, issues)


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            _merge_into(existing, value)
            continue
        target[key] = copy.deepcopy(value)


__all__ = [
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DaoConfig",
    "DataSourceConfig",
    "JugglerConfig",
    "LOG_LEVELS",
    "MetaConfig",
    "ObservabilityConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]

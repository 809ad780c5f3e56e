"""Configuration loader for quiz commands.

Precedence is CLI overrides, then ``CLASSROOM_QUIZ_*`` environment
variables, then ``quiz.toml``, then the defaults below.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from classroom_quiz.core import config as core_config
from classroom_quiz.core import workspace as workspace_mod

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "CLASSROOM_QUIZ_CONFIG"
ENV_PREFIX = "CLASSROOM_QUIZ_"
TOKEN_ENV = f"{ENV_PREFIX}API_TOKEN"
RESULTS_FILENAME = "attempts.jsonl"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_DEFAULTS: dict[str, dict[str, Any]] = {
    "catalog": {
        "source": "http",
        "base_url": "http://localhost:5000",
        "file": "catalog/quizzes.jsonl",
        "timeout_seconds": 10,
    },
    "session": {
        "low_time_warning_seconds": 60,
        "pass_percentage": 70,
    },
    "results": {
        "sink": "jsonl",
        "http_path": "/api/grades",
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


class _Choice(Enum):
    @classmethod
    def from_value(cls, value: object, *, field: str):
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise QuizConfigError(
            f"Unknown {field} '{value}'. Expected one of: {expected}."
        )


class CatalogSource(_Choice):
    HTTP = "http"
    FILE = "file"


class SinkKind(_Choice):
    JSONL = "jsonl"
    HTTP = "http"
    NONE = "none"


@dataclass(frozen=True)
class CatalogConfig:
    source: CatalogSource
    base_url: str
    file: Path
    timeout_seconds: float
    token: Optional[str]


@dataclass(frozen=True)
class SessionConfig:
    low_time_warning_seconds: int
    pass_percentage: int


@dataclass(frozen=True)
class ResultsConfig:
    sink: SinkKind
    http_path: str
    jsonl_path: Path


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizConfig:
    catalog: CatalogConfig
    session: SessionConfig
    results: ResultsConfig
    logging: LoggingConfig


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    catalog_source: Optional[str] = None
    base_url: Optional[str] = None
    catalog_file: Optional[Path] = None
    sink: Optional[str] = None
    log_level: Optional[str] = None
    verbose: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc

    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )
    tree = copy.deepcopy(_DEFAULTS)
    loaded_path: Optional[Path] = None
    if requested.exists():
        try:
            core_config.merge_defaults(
                tree, core_config.load_toml(requested)
            )
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
        loaded_path = requested
    elif config_path is not None or env_map.get(CONFIG_ENV, "").strip():
        raise QuizConfigError(f"Config file not found: {requested}")

    _apply_env(tree, env_map)
    _apply_overrides(tree, overrides)

    config = QuizConfig(
        catalog=_build_catalog(tree["catalog"], layout, env_map),
        session=_build_session(tree["session"]),
        results=_build_results(tree["results"], layout),
        logging=_build_logging(tree["logging"]),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = env_map.get(CONFIG_ENV, "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _apply_env(
    tree: MutableMapping[str, MutableMapping[str, Any]],
    env_map: Mapping[str, str],
) -> None:
    mapping = {
        "CATALOG_SOURCE": ("catalog", "source"),
        "BASE_URL": ("catalog", "base_url"),
        "CATALOG_FILE": ("catalog", "file"),
        "RESULTS_SINK": ("results", "sink"),
        "LOG_LEVEL": ("logging", "level"),
    }
    for key, (section, field) in mapping.items():
        value = core_config.env_string(env_map, ENV_PREFIX, key)
        if value is not None:
            tree[section][field] = value


def _apply_overrides(
    tree: MutableMapping[str, MutableMapping[str, Any]],
    overrides: ConfigOverrides,
) -> None:
    pairs = (
        ("catalog", "source", overrides.catalog_source),
        ("catalog", "base_url", overrides.base_url),
        ("catalog", "file", overrides.catalog_file),
        ("results", "sink", overrides.sink),
        ("logging", "level", overrides.log_level),
        ("logging", "verbose", overrides.verbose),
    )
    for section, field, value in pairs:
        if value is not None:
            tree[section][field] = value


def _build_catalog(
    section: Mapping[str, Any],
    layout: workspace_mod.WorkspaceLayout,
    env_map: Mapping[str, str],
) -> CatalogConfig:
    source = CatalogSource.from_value(
        section.get("source"), field="catalog.source"
    )
    base_url = _require_string(section.get("base_url"), field="catalog.base_url")
    if not base_url.startswith(("http://", "https://")):
        raise QuizConfigError("catalog.base_url must be an http(s) URL.")
    timeout = section.get("timeout_seconds")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise QuizConfigError("catalog.timeout_seconds must be a number.")
    if timeout <= 0:
        raise QuizConfigError("catalog.timeout_seconds must be positive.")
    return CatalogConfig(
        source=source,
        base_url=base_url.rstrip("/"),
        file=_workspace_path(section.get("file"), layout, field="catalog.file"),
        timeout_seconds=float(timeout),
        token=core_config.env_string(env_map, ENV_PREFIX, "API_TOKEN"),
    )


def _build_session(section: Mapping[str, Any]) -> SessionConfig:
    warning = _require_non_negative_int(
        section.get("low_time_warning_seconds"),
        field="session.low_time_warning_seconds",
    )
    pass_percentage = _require_non_negative_int(
        section.get("pass_percentage"), field="session.pass_percentage"
    )
    if pass_percentage > 100:
        raise QuizConfigError("session.pass_percentage must be at most 100.")
    return SessionConfig(
        low_time_warning_seconds=warning,
        pass_percentage=pass_percentage,
    )


def _build_results(
    section: Mapping[str, Any], layout: workspace_mod.WorkspaceLayout
) -> ResultsConfig:
    sink = SinkKind.from_value(section.get("sink"), field="results.sink")
    http_path = _require_string(
        section.get("http_path"), field="results.http_path"
    )
    if not http_path.startswith("/"):
        http_path = f"/{http_path}"
    return ResultsConfig(
        sink=sink,
        http_path=http_path,
        jsonl_path=layout.path_for("results") / RESULTS_FILENAME,
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = _require_string(section.get("level"), field="logging.level").upper()
    if level not in _LOG_LEVELS:
        raise QuizConfigError(
            "logging.level must be one of DEBUG, INFO, WARNING, ERROR, "
            "CRITICAL."
        )
    verbose = section.get("verbose")
    if not isinstance(verbose, bool):
        raise QuizConfigError("logging.verbose must be a boolean.")
    return LoggingConfig(level=level, verbose=verbose)


def _workspace_path(
    value: object, layout: workspace_mod.WorkspaceLayout, *, field: str
) -> Path:
    if isinstance(value, str):
        if not value.strip():
            raise QuizConfigError(f"'{field}' must be a non-empty path.")
        value = Path(value.strip())
    if not isinstance(value, Path):
        raise QuizConfigError(f"'{field}' must be a path string.")
    value = value.expanduser()
    if not value.is_absolute():
        value = layout.home / value
    return value.resolve()


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_non_negative_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QuizConfigError(f"'{field}' must be a non-negative integer.")
    return value

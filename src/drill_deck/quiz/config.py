"""Configuration loader for quiz sessions."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from drill_deck.core import config as core_config
from drill_deck.core import workspace as workspace_mod

from .models import QuestionLayout, QuizMode
from .sources import LoadSettings

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "DRILL_QUIZ_CONFIG"
ENV_PREFIX = "DRILL_QUIZ_"

_LOGGER = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class LaunchSettings:
    """Everything needed to load a bank and start a session."""

    source_url: Optional[str]
    mode: QuizMode
    time_limit_minutes: int
    question_limit: Optional[int]
    shuffle: bool
    layout: QuestionLayout
    timeout_seconds: float
    max_workers: int

    def load_settings(self) -> LoadSettings:
        return LoadSettings(
            shuffle=self.shuffle,
            question_limit=self.question_limit,
            timeout_seconds=self.timeout_seconds,
            max_workers=self.max_workers,
        )


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file and env values."""

    source_url: Optional[str] = None
    mode: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    question_limit: Optional[int] = None
    shuffle: Optional[bool] = None
    layout: Optional[str] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    settings: LaunchSettings
    log_level: str
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Resolve settings with precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested.exists():
        try:
            core_config.merge_defaults(table, core_config.load_toml(requested))
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
        loaded_path = requested
    elif config_path is not None or (env_map.get(CONFIG_ENV) or "").strip():
        raise QuizConfigError(f"Config file not found: {requested}")

    session = table["session"]
    sources = table["sources"]

    mode = _parse_mode(
        _pick_first(overrides.mode, _env(env_map, "MODE"), session["mode"])
    )
    layout_choice = _parse_layout(
        _pick_first(
            overrides.layout, _env(env_map, "LAYOUT"), session["layout"]
        )
    )
    if mode is QuizMode.TIMED and layout_choice is QuestionLayout.LIST:
        _LOGGER.warning("List layout is learning-only; using single layout")
        layout_choice = QuestionLayout.SINGLE

    time_limit = _positive_int(
        "session.time_limit_minutes",
        _pick_first(
            overrides.time_limit_minutes,
            _env(env_map, "TIME_LIMIT_MINUTES"),
            session["time_limit_minutes"],
        ),
    )
    raw_limit = _pick_first(
        overrides.question_limit,
        _env(env_map, "QUESTION_LIMIT"),
        session["question_limit"],
    )
    question_limit = _optional_limit(raw_limit)
    shuffle = _parse_bool(
        "session.shuffle",
        _pick_first(
            overrides.shuffle, _env(env_map, "SHUFFLE"), session["shuffle"]
        ),
    )
    source_url = _pick_first(
        overrides.source_url,
        _env(env_map, "SOURCE_URL"),
        (sources["default_url"] or "").strip() or None,
    )
    timeout = _positive_float(
        "sources.timeout_seconds",
        _pick_first(
            _env(env_map, "TIMEOUT_SECONDS"), sources["timeout_seconds"]
        ),
    )
    max_workers = _positive_int(
        "sources.max_workers",
        _pick_first(_env(env_map, "MAX_WORKERS"), sources["max_workers"]),
    )
    log_level = _parse_log_level(
        _pick_first(
            overrides.log_level,
            _env(env_map, "LOG_LEVEL"),
            table["logging"]["level"],
        )
    )

    settings = LaunchSettings(
        source_url=source_url,
        mode=mode,
        time_limit_minutes=time_limit,
        question_limit=question_limit,
        shuffle=shuffle,
        layout=layout_choice,
        timeout_seconds=timeout,
        max_workers=max_workers,
    )
    return LoadResult(
        settings=settings,
        log_level=log_level,
        layout=layout,
        config_path=loaded_path,
    )


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "session": {
            "mode": QuizMode.LEARNING.value,
            "time_limit_minutes": 15,
            "question_limit": 0,
            "shuffle": True,
            "layout": QuestionLayout.SINGLE.value,
        },
        "sources": {
            "default_url": "",
            "timeout_seconds": 15,
            "max_workers": 4,
        },
        "logging": {"level": "INFO"},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _env(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates):
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _parse_mode(value: object) -> QuizMode:
    if isinstance(value, QuizMode):
        return value
    try:
        return QuizMode.from_value(str(value))
    except ValueError as exc:
        raise QuizConfigError(
            f"Unknown mode '{value}'. Expected 'learning' or 'timed'."
        ) from exc


def _parse_layout(value: object) -> QuestionLayout:
    if isinstance(value, QuestionLayout):
        return value
    try:
        return QuestionLayout.from_value(str(value))
    except ValueError as exc:
        raise QuizConfigError(
            f"Unknown layout '{value}'. Expected 'single' or 'list'."
        ) from exc


def _parse_bool(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise QuizConfigError(f"{name} must be a boolean.")


def _positive_int(name: str, value: object) -> int:
    if isinstance(value, bool):
        raise QuizConfigError(f"{name} must be a positive integer.")
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise QuizConfigError(f"{name} must be a positive integer.") from exc
    if number <= 0:
        raise QuizConfigError(f"{name} must be a positive integer.")
    return number


def _optional_limit(value: object) -> Optional[int]:
    if value is None or (isinstance(value, int) and value == 0):
        return None
    if isinstance(value, str) and value.strip() == "0":
        return None
    return _positive_int("session.question_limit", value)


def _positive_float(name: str, value: object) -> float:
    try:
        number = float(str(value).strip())
    except ValueError as exc:
        raise QuizConfigError(f"{name} must be a positive number.") from exc
    if number <= 0:
        raise QuizConfigError(f"{name} must be a positive number.")
    return number


def _parse_log_level(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError("logging.level must be a non-empty string.")
    return value.strip().upper()

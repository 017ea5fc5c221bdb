"""Process-wide user preferences persisted in the workspace.

Preferences are read once when a command starts and written once when it
exits. Nothing reads them implicitly; callers pass the loaded
:class:`Preferences` to whatever needs them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Mapping

__all__ = [
    "PREFERENCES_FILENAME",
    "THEMES",
    "Preferences",
    "PreferencesStore",
]

PREFERENCES_FILENAME = "preferences.json"
THEMES = ("dark", "light")


@dataclass(frozen=True)
class Preferences:
    theme: str = "dark"
    last_source: str | None = None

    def with_source(self, url: str | None) -> "Preferences":
        if not url:
            return self
        return replace(self, last_source=url)

    def with_theme(self, theme: str | None) -> "Preferences":
        if theme not in THEMES:
            return self
        return replace(self, theme=theme)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Preferences":
        theme = payload.get("theme")
        source = payload.get("last_source")
        return cls(
            theme=theme if theme in THEMES else "dark",
            last_source=source if isinstance(source, str) and source else None,
        )


class PreferencesStore:
    """Read and write :class:`Preferences` as JSON at a fixed path."""

    def __init__(
        self, path: Path, *, logger: logging.Logger | None = None
    ) -> None:
        self._path = path
        self._logger = logger or logging.getLogger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Preferences:
        """Return stored preferences, or defaults when missing or corrupt."""

        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Preferences()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            self._logger.warning(
                "Ignoring unreadable preferences file",
                extra={"path": str(self._path)},
            )
            return Preferences()
        if not isinstance(payload, Mapping):
            return Preferences()
        return Preferences.from_dict(payload)

    def save(self, preferences: Preferences) -> Path:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(
            json.dumps(asdict(preferences), indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        tmp.replace(self._path)
        return self._path

from __future__ import annotations

import json

from drill_deck.core.preferences import Preferences, PreferencesStore


def test_missing_file_yields_defaults(tmp_path):
    store = PreferencesStore(tmp_path / "state" / "preferences.json")

    assert store.load() == Preferences()


def test_round_trip_persists_theme_and_source(tmp_path):
    store = PreferencesStore(tmp_path / "state" / "preferences.json")
    prefs = Preferences().with_theme("light").with_source("https://x/csv")

    path = store.save(prefs)

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "last_source": "https://x/csv",
        "theme": "light",
    }
    assert store.load() == prefs
    assert not path.with_suffix(".tmp").exists()


def test_corrupt_or_invalid_payloads_fall_back(tmp_path, caplog):
    path = tmp_path / "preferences.json"
    store = PreferencesStore(path)

    path.write_text("{not json", encoding="utf-8")
    with caplog.at_level("WARNING"):
        assert store.load() == Preferences()
    assert "unreadable preferences" in caplog.text

    path.write_text("[1, 2]", encoding="utf-8")
    assert store.load() == Preferences()

    path.write_text(json.dumps({"theme": "neon", "last_source": 3}))
    assert store.load() == Preferences()


def test_with_helpers_ignore_empty_values():
    prefs = Preferences(theme="light", last_source="https://a")

    assert prefs.with_theme(None) is prefs
    assert prefs.with_theme("sepia") is prefs
    assert prefs.with_source("") is prefs
    assert prefs.with_source("https://b").last_source == "https://b"

from __future__ import annotations

import pytest

from drill_deck.core import workspace


def test_ensure_workspace_creates_directories(tmp_path, monkeypatch):
    root = tmp_path / "data"
    monkeypatch.setenv(workspace.WORKSPACE_ENV, str(root))

    layout = workspace.ensure_workspace()

    assert layout.home == root.resolve()
    assert sorted(layout.directories) == ["config", "logs", "state"]
    for name, path in layout.items():
        assert path.is_dir()
        assert layout.created[name] is True
    assert layout.created["home"] is True


def test_second_call_reports_existing_directories(tmp_path):
    root = tmp_path / "again"

    workspace.ensure_workspace(path=root)
    layout = workspace.ensure_workspace(path=root)

    assert not any(layout.created.values())


def test_env_mapping_and_explicit_path(tmp_path):
    from_env = workspace.ensure_workspace(
        env={workspace.WORKSPACE_ENV: str(tmp_path / "env")}
    )
    explicit = workspace.ensure_workspace(
        env={workspace.WORKSPACE_ENV: str(tmp_path / "env")},
        path=tmp_path / "cli",
    )

    assert from_env.home == (tmp_path / "env").resolve()
    assert explicit.home == (tmp_path / "cli").resolve()


def test_without_create_nothing_is_written(tmp_path):
    root = tmp_path / "deferred"

    layout = workspace.ensure_workspace(path=root, create=False)

    assert not root.exists()
    assert layout.path_for("state") == root.resolve() / "state"
    assert not any(layout.created.values())


def test_file_in_place_of_workspace_is_an_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(workspace.WorkspaceError):
        workspace.ensure_workspace(path=blocker)


def test_unknown_directory_key(tmp_path):
    layout = workspace.ensure_workspace(path=tmp_path / "ws")

    with pytest.raises(KeyError):
        layout.path_for("cache")

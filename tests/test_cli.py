from __future__ import annotations

import sys

from drill_deck import cli


def test_no_arguments_prints_usage(capsys):
    code = cli.main([])

    out = capsys.readouterr().out
    assert code == 2
    assert "Usage: drill <command>" in out
    assert "quiz" in out


def test_list_and_help(capsys):
    assert cli.main(["list"]) == 0
    listing = capsys.readouterr().out
    assert "init" in listing
    assert "(interactive)" in listing

    assert cli.main(["help", "quiz"]) == 0
    assert "drill quiz --help" in capsys.readouterr().out

    assert cli.main(["help", "bogus"]) == 2
    assert "Unknown command 'bogus'" in capsys.readouterr().err


def test_version_falls_back_when_not_installed(monkeypatch, capsys):
    def _missing(_name):
        raise cli.metadata.PackageNotFoundError

    monkeypatch.setattr(cli.metadata, "version", _missing)

    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "unknown"


def test_unknown_command(capsys):
    assert cli.main(["frobnicate"]) == 2
    assert "Unknown command 'frobnicate'" in capsys.readouterr().err


def test_dispatch_runs_module_main_with_prog_name(tmp_path, capsys):
    argv_before = list(sys.argv)

    code = cli.main(["init", "--path", str(tmp_path / "ws")])

    assert code == 0
    assert "Workspace ready" in capsys.readouterr().out
    assert sys.argv == argv_before


def test_dispatch_normalizes_system_exit(capsys):
    code = cli.main(["quiz", "--help"])

    assert code == 0
    assert "drill quiz" in capsys.readouterr().out

    assert cli.main(["quiz", "run", "--mode", "exam"]) == 2

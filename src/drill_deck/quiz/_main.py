"""`drill quiz` command: load a question bank and run a session."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import requests
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from drill_deck.core import config_templates
from drill_deck.core import workspace as workspace_mod
from drill_deck.core.config_templates import ConfigTemplateError
from drill_deck.core.logging import configure_logger
from drill_deck.core.preferences import (
    PREFERENCES_FILENAME,
    THEMES,
    Preferences,
    PreferencesStore,
)
from drill_deck.core.workspace import WorkspaceError

from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LaunchSettings,
    QuizConfigError,
    load_config,
)
from .engine import QuizEngine
from .errors import QuizError, SheetSelectionRequired
from .models import Question, QuestionLayout, QuizMode, Summary
from .session import render_summary, run_quiz_session
from .sources import (
    GoogleSheetLink,
    fetch_sheet_list,
    fetch_sheet_metadata,
    load_question_bank,
    parse_sheet_link,
    partition_sheet_options,
    resolve_sources,
)

LOGGER_NAME = "drill_deck.quiz"

InputProvider = Callable[[], str]


def _http_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = "drill-deck"
    return session


def _make_console() -> Console:
    return Console()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drill quiz",
        description=(
            "Practice multiple-choice questions published as CSV or Google "
            "Sheets."
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Load a question bank and start a session")
    run.add_argument(
        "source",
        nargs="?",
        help=(
            "CSV file, CSV URL or Google Sheets URL (defaults to "
            "sources.default_url, then the last source used)."
        ),
    )
    run.add_argument("--mode", choices=[mode.value for mode in QuizMode])
    run.add_argument(
        "--minutes",
        type=int,
        dest="time_limit_minutes",
        help="Countdown length for timed sessions.",
    )
    run.add_argument(
        "--limit",
        type=int,
        dest="question_limit",
        help="Use at most this many questions (0 = all).",
    )
    run.add_argument("--shuffle", dest="shuffle", action="store_true")
    run.add_argument("--no-shuffle", dest="shuffle", action="store_false")
    run.set_defaults(shuffle=None)
    run.add_argument(
        "--layout", choices=[layout.value for layout in QuestionLayout]
    )
    run.add_argument(
        "--sheet",
        action="append",
        dest="sheets",
        metavar="GID",
        help="Load this sheet gid from a workbook link (repeatable).",
    )
    run.add_argument(
        "--all-sheets",
        action="store_true",
        help="Load every question sheet of a workbook link.",
    )
    run.add_argument(
        "--ui",
        choices=["console", "textual"],
        default="console",
        help="Front end for the session.",
    )
    run.add_argument("--theme", choices=list(THEMES))
    _add_common_options(run)

    sheets = sub.add_parser(
        "sheets", help="List the published sheets of a workbook link"
    )
    sheets.add_argument("source")
    _add_common_options(sheets)

    config = sub.add_parser("config", help="Manage quiz.toml")
    config_sub = config.add_subparsers(dest="action", required=True)
    init = config_sub.add_parser("init", help="Write the default quiz.toml")
    init.add_argument(
        "--path",
        type=Path,
        help="Destination (defaults to the workspace config directory).",
    )
    init.add_argument("--workspace", type=Path)
    init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config.",
    )
    return parser


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, help="Path to quiz.toml.")
    parser.add_argument(
        "--workspace", type=Path, help="Override the workspace root."
    )
    parser.add_argument("--log-level")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    input_provider: Optional[InputProvider] = None,
    confirm: Optional[Callable[[str], bool]] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.command == "config":
        return _cmd_config_init(args)

    overrides = ConfigOverrides(
        source_url=getattr(args, "source", None),
        mode=getattr(args, "mode", None),
        time_limit_minutes=getattr(args, "time_limit_minutes", None),
        question_limit=getattr(args, "question_limit", None),
        shuffle=getattr(args, "shuffle", None),
        layout=getattr(args, "layout", None),
        log_level=args.log_level,
    )
    try:
        loaded = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except (QuizConfigError, WorkspaceError) as exc:
        parser.error(str(exc))

    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=loaded.layout.path_for("logs"),
        level=loaded.log_level,
        verbose=args.verbose,
    )
    logger.debug("quiz CLI invoked", extra={"command": args.command})

    console = _make_console()
    if input_provider is None:

        def input_provider() -> str:
            return console.input("[bold]> [/]")

    if confirm is None:

        def confirm(prompt: str) -> bool:
            return Confirm.ask(prompt, console=console, default=False)

    if args.command == "sheets":
        return _cmd_sheets(args.source, loaded.settings, console, logger)

    store = PreferencesStore(
        loaded.layout.path_for("state") / PREFERENCES_FILENAME, logger=logger
    )
    preferences = store.load().with_theme(args.theme)
    try:
        code, preferences = _cmd_run(
            args,
            loaded.settings,
            preferences,
            console=console,
            input_provider=input_provider,
            confirm=confirm,
            logger=logger,
        )
    finally:
        store.save(preferences)
    logger.debug("quiz CLI finished", extra={"log_path": str(log_path)})
    return code


def _cmd_run(
    args: argparse.Namespace,
    settings: LaunchSettings,
    preferences: Preferences,
    *,
    console: Console,
    input_provider: InputProvider,
    confirm: Callable[[str], bool],
    logger: logging.Logger,
) -> tuple[int, Preferences]:
    source = settings.source_url or preferences.last_source
    if not source:
        sys.stderr.write(
            "Error: no question source given. Pass a URL or set "
            "sources.default_url in quiz.toml.\n"
        )
        return 2, preferences

    http = _http_session()
    try:
        questions = _load_questions(
            source,
            args,
            settings,
            http=http,
            console=console,
            input_provider=input_provider,
            logger=logger,
        )
    except QuizError as exc:
        logger.error(
            "Question bank failed to load",
            extra={"source": source, "error": str(exc)},
        )
        sys.stderr.write(f"Error: {exc}\n")
        return 1, preferences
    finally:
        http.close()
    if questions is None:
        return 1, preferences

    preferences = preferences.with_source(source)
    _render_preview(console, questions, settings)

    engine = QuizEngine(
        questions,
        mode=settings.mode,
        layout=settings.layout,
        time_limit_minutes=settings.time_limit_minutes,
        logger=logger,
    )
    while True:
        summary = _run_engine(
            engine,
            args.ui,
            console=console,
            input_provider=input_provider,
            confirm=confirm,
            theme=preferences.theme,
        )
        if summary is None:
            break
        if not confirm("Retake with the same questions?"):
            break
        engine = engine.retake()
    return 0, preferences


def _load_questions(
    source: str,
    args: argparse.Namespace,
    settings: LaunchSettings,
    *,
    http: requests.Session,
    console: Console,
    input_provider: InputProvider,
    logger: logging.Logger,
) -> Optional[List[Question]]:
    try:
        urls = resolve_sources(
            source,
            http,
            gids=args.sheets,
            all_sheets=args.all_sheets,
            timeout=settings.timeout_seconds,
            logger=logger,
        )
    except SheetSelectionRequired as selection:
        gids = _prompt_sheet_selection(selection, console, input_provider)
        if not gids:
            console.print("[yellow]No sheets selected.[/]")
            return None
        urls = resolve_sources(source, http, gids=gids, logger=logger)
    return load_question_bank(
        urls,
        settings=settings.load_settings(),
        http=http,
        logger=logger,
    )


def _run_engine(
    engine: QuizEngine,
    ui: str,
    *,
    console: Console,
    input_provider: InputProvider,
    confirm: Callable[[str], bool],
    theme: str,
) -> Optional[Summary]:
    if ui == "textual":
        from .view import QuizApp

        app = QuizApp(engine, theme=theme)
        app.run()
        if app.final_summary is not None:
            render_summary(console, app.final_summary, theme=theme)
        return app.final_summary
    result = run_quiz_session(
        engine,
        console,
        input_provider,
        confirm=confirm,
        theme=theme,
    )
    return result.summary


def _prompt_sheet_selection(
    selection: SheetSelectionRequired,
    console: Console,
    input_provider: InputProvider,
) -> List[str]:
    table = _sheet_table(selection.sheets, selection.metadata)
    console.print(table)
    console.print("Pick sheets by number (e.g. 1,3) or 'all':")
    try:
        raw = input_provider().strip().lower()
    except (EOFError, KeyboardInterrupt, StopIteration):
        return []
    if raw in {"all", "*"}:
        return [sheet.gid for sheet in selection.sheets]
    gids: List[str] = []
    for part in raw.replace(" ", ",").split(","):
        if part.isdigit() and 1 <= int(part) <= len(selection.sheets):
            gid = selection.sheets[int(part) - 1].gid
            if gid not in gids:
                gids.append(gid)
    return gids


def _sheet_table(sheets, metadata) -> Table:
    table = Table(title="Published sheets")
    table.add_column("#", justify="right")
    table.add_column("Sheet")
    table.add_column("gid")
    table.add_column("Module")
    table.add_column("Summary", overflow="fold")
    for number, sheet in enumerate(sheets, start=1):
        meta = metadata.get(sheet.label.strip().lower())
        table.add_row(
            str(number),
            sheet.label,
            sheet.gid,
            (meta.module if meta else None) or "",
            (meta.summary if meta else None) or "",
        )
    return table


def _render_preview(
    console: Console, questions: Sequence[Question], settings: LaunchSettings
) -> None:
    modules = {question.module for question in questions}
    lines = [
        f"{len(questions)} questions across {len(modules)} module(s)",
        f"Mode: {settings.mode.value}",
    ]
    if settings.mode is QuizMode.TIMED:
        lines.append(f"Time limit: {settings.time_limit_minutes} min")
    else:
        lines.append(f"Layout: {settings.layout.value}")
    lines.append(f"Shuffled: {'yes' if settings.shuffle else 'no'}")
    console.print(Panel("\n".join(lines), title="Session", expand=False))


def _cmd_sheets(
    source: str,
    settings: LaunchSettings,
    console: Console,
    logger: logging.Logger,
) -> int:
    link = parse_sheet_link(source)
    if not isinstance(link, GoogleSheetLink):
        sys.stderr.write("Error: sheet listing needs a Google Sheets link.\n")
        return 2
    http = _http_session()
    try:
        sheets, config_sheet = partition_sheet_options(
            fetch_sheet_list(link, http, timeout=settings.timeout_seconds)
        )
        try:
            metadata = fetch_sheet_metadata(
                link, config_sheet, http, timeout=settings.timeout_seconds
            )
        except QuizError as exc:
            logger.warning(
                "Ignoring unavailable sheet metadata",
                extra={"error": str(exc)},
            )
            metadata = {}
    except QuizError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    finally:
        http.close()
    console.print(_sheet_table(sheets, metadata))
    return 0


def _cmd_config_init(args: argparse.Namespace) -> int:
    try:
        if args.path is not None:
            target = args.path.expanduser()
            if not target.is_absolute():
                target = (Path.cwd() / target).resolve()
        else:
            layout = workspace_mod.ensure_workspace(path=args.workspace)
            target = layout.path_for("config") / CONFIG_FILENAME
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    template = config_templates.get_template("quiz")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    sys.stdout.write(f"Wrote quiz config to {written}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())

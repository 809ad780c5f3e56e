"""``classroom quiz`` command line: browse, take and review quizzes."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from classroom_quiz.core import config_templates
from classroom_quiz.core import workspace as workspace_mod
from classroom_quiz.core.config_templates import ConfigTemplateError
from classroom_quiz.core.logging import configure_logger

from .catalog import (
    CatalogContext,
    DataUnavailable,
    FileQuizCatalog,
    HttpQuizCatalog,
    QuizCatalog,
    filter_quizzes,
    find_quiz,
)
from .config import (
    CONFIG_FILENAME,
    TOKEN_ENV,
    CatalogSource,
    ConfigOverrides,
    LoadResult,
    QuizConfig,
    QuizConfigError,
    SinkKind,
    load_config,
)
from .models import InvalidQuizDefinition, validate_quiz
from .render import render_attempts, render_catalog, render_summary
from .results import (
    BufferedResultSink,
    HttpResultSink,
    JsonlResultSink,
    ResultSink,
    ResultSinkError,
)
from .view import QuizApp


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, help="Path to quiz.toml.")
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root (defaults to CLASSROOM_QUIZ_HOME).",
    )
    parser.add_argument("--log-level", help="Logging level for this run.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Mirror log records to stderr.",
    )


def _add_catalog_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--class-id", required=True, help="Class whose quizzes to list."
    )
    parser.add_argument("--taker", help="Identifier of the quiz taker.")
    parser.add_argument(
        "--source",
        choices=[source.value for source in CatalogSource],
        help="Read quizzes from the data service or a local file.",
    )
    parser.add_argument("--base-url", help="Data service base URL.")
    parser.add_argument(
        "--catalog-file", type=Path, help="JSON Lines file of quizzes."
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="classroom quiz",
        description="Browse and take timed class quizzes.",
        epilog=(
            f"Set {TOKEN_ENV} to send a bearer token to the data service."
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sp_catalog = sub.add_parser("catalog", help="List quizzes for a class")
    _add_catalog_options(sp_catalog)
    sp_catalog.add_argument("--search", help="Filter by title/description.")
    _add_common(sp_catalog)

    sp_take = sub.add_parser("take", help="Take a quiz in the terminal")
    sp_take.add_argument("quiz_id")
    _add_catalog_options(sp_take)
    sp_take.add_argument(
        "--sink",
        choices=[kind.value for kind in SinkKind],
        help="Where to record the finished attempt.",
    )
    _add_common(sp_take)

    sp_results = sub.add_parser("results", help="Show recorded attempts")
    sp_results.add_argument("--quiz-id", help="Only show this quiz.")
    _add_common(sp_results)

    sp_config = sub.add_parser("config", help="Configuration helpers")
    config_sub = sp_config.add_subparsers(dest="action", required=True)
    sp_init = config_sub.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template"
    )
    sp_init.add_argument(
        "--force", action="store_true", help="Overwrite an existing file."
    )
    sp_init.add_argument("--workspace", type=Path)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.command == "config":
        return _cmd_config_init(args)

    try:
        loaded = load_config(
            config_path=args.config,
            overrides=_overrides_from(args),
            workspace_path=args.workspace,
        )
    except QuizConfigError as exc:
        parser.error(str(exc))

    logger, _ = configure_logger(
        "classroom_quiz",
        log_dir=loaded.layout.path_for("logs"),
        level=loaded.config.logging.level,
        verbose=loaded.config.logging.verbose,
        filename="quiz.log",
    )
    logger.debug(
        "quiz CLI invoked",
        extra={"command": args.command, "config_path": loaded.config_path},
    )

    console = Console()
    if args.command == "catalog":
        return _cmd_catalog(args, loaded.config, console, logger)
    if args.command == "take":
        return _cmd_take(args, loaded, console, logger)
    if args.command == "results":
        return _cmd_results(args, loaded.config, console)
    parser.print_help()  # pragma: no cover - argparse enforces commands
    return 2


def _overrides_from(args: argparse.Namespace) -> ConfigOverrides:
    return ConfigOverrides(
        catalog_source=getattr(args, "source", None),
        base_url=getattr(args, "base_url", None),
        catalog_file=getattr(args, "catalog_file", None),
        sink=getattr(args, "sink", None),
        log_level=getattr(args, "log_level", None),
        verbose=getattr(args, "verbose", None),
    )


def build_catalog(config: QuizConfig) -> QuizCatalog:
    if config.catalog.source is CatalogSource.FILE:
        return FileQuizCatalog(config.catalog.file)
    return HttpQuizCatalog(
        config.catalog.base_url,
        token=config.catalog.token,
        timeout=config.catalog.timeout_seconds,
    )


def build_sink(config: QuizConfig) -> ResultSink | None:
    if config.results.sink is SinkKind.JSONL:
        return JsonlResultSink(config.results.jsonl_path)
    if config.results.sink is SinkKind.HTTP:
        return HttpResultSink(
            config.catalog.base_url,
            path=config.results.http_path,
            token=config.catalog.token,
            timeout=config.catalog.timeout_seconds,
        )
    return None


def _fetch(
    config: QuizConfig,
    args: argparse.Namespace,
    logger: logging.Logger,
):
    context = CatalogContext(class_id=args.class_id, taker_id=args.taker)
    catalog = build_catalog(config)
    try:
        return asyncio.run(catalog.list_quizzes(context))
    except DataUnavailable as exc:
        logger.error(
            "Failed to load quizzes: %s",
            exc,
            extra={"event_type": "catalog_unavailable", "class_id": args.class_id},
        )
        sys.stderr.write(f"Failed to load quizzes: {exc}\n")
        return None


def _cmd_catalog(
    args: argparse.Namespace,
    config: QuizConfig,
    console: Console,
    logger: logging.Logger,
) -> int:
    quizzes = _fetch(config, args, logger)
    if quizzes is None:
        return 1
    shown = filter_quizzes(quizzes, args.search)
    if args.search and not shown:
        console.print(f"No quizzes match '{args.search}'.")
        return 1
    render_catalog(console, shown)
    return 0


def _cmd_take(
    args: argparse.Namespace,
    loaded: LoadResult,
    console: Console,
    logger: logging.Logger,
) -> int:
    config = loaded.config
    quizzes = _fetch(config, args, logger)
    if quizzes is None:
        return 1
    try:
        quiz = validate_quiz(find_quiz(quizzes, args.quiz_id))
    except KeyError:
        sys.stderr.write(f"Quiz '{args.quiz_id}' is not available.\n")
        return 1
    except InvalidQuizDefinition as exc:
        sys.stderr.write(f"Quiz cannot be started: {exc}\n")
        return 1

    # The attempt is held in memory while the UI loop runs and written once
    # the app has exited.
    target = build_sink(config)
    pending = BufferedResultSink() if target is not None else None
    app = QuizApp(
        quiz,
        sink=pending,
        taker_id=args.taker,
        low_time_warning_seconds=config.session.low_time_warning_seconds,
        pass_percentage=config.session.pass_percentage,
    )
    app.run()

    session = app.runner.session
    if app.abandoned or session is None or session.result is None:
        app.runner.abandon()
        console.print("[yellow]Quiz abandoned; nothing was recorded.[/]")
        return 1
    if pending is not None and target is not None:
        try:
            pending.flush(target)
        except ResultSinkError as exc:
            session.persist_error = str(exc)
            logger.warning(
                "Could not record quiz attempt: %s",
                exc,
                extra={
                    "event_type": "attempt_record_failed",
                    "quiz_id": session.quiz.id,
                },
            )
    render_summary(
        console, session, pass_percentage=config.session.pass_percentage
    )
    return 0


def _cmd_results(
    args: argparse.Namespace, config: QuizConfig, console: Console
) -> int:
    sink = JsonlResultSink(config.results.jsonl_path)
    try:
        attempts = sink.load()
    except ResultSinkError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    if args.quiz_id:
        attempts = [a for a in attempts if a.quiz_id == args.quiz_id]
    render_attempts(console, attempts)
    return 0 if attempts else 1


def _cmd_config_init(args: argparse.Namespace) -> int:
    try:
        layout = workspace_mod.ensure_workspace(path=args.workspace)
        template = config_templates.get_template("quiz")
        target = template.write(
            layout.path_for("config") / CONFIG_FILENAME,
            overwrite=args.force,
        )
    except (ConfigTemplateError, workspace_mod.WorkspaceError) as exc:
        sys.stderr.write(f"{exc}\n")
        return 2
    sys.stdout.write(f"Wrote {target}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())

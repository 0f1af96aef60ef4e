"""Command-line interface for clawde.

Commands:
    run       Wrap an interactive assistant and turn marker comments into prompts
    scan      Find marker comments in a directory
    patterns  List supported file types and their comment syntax
"""

import logging
from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from clawde import __version__
from clawde.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SESSION_ERROR,
    EXIT_SIGINT,
    EXIT_SUCCESS,
    _error,
    _info,
    _setup_logging,
    _silence_logging,
    _success,
    _validate_directory,
    _warning,
    console,
)
from clawde.comments.cache import ProcessedCommentCache
from clawde.comments.dispatcher import CommentProcessor, PromptDispatcher
from clawde.comments.extractor import extract_comments_from_file
from clawde.comments.patterns import get_comment_pattern, supported_extensions
from clawde.comments.prompts import render_batch_prompt
from clawde.comments.search import find_candidate_files
from clawde.comments.types import ActionType, CommentRecord
from clawde.core.config import ClawdeConfig, load_config
from clawde.core.exceptions import (
    ConfigError,
    ConfigValidationError,
    ExtractionError,
    SearchError,
    SessionError,
)
from clawde.git.ignore import build_ignore_predicate
from clawde.terminal.keys import EnterKeyRemapper
from clawde.terminal.session import PtySession, build_child_env, get_window_size, run_interactive
from clawde.watch import PollingFileWatcher

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="clawde",
    help="Wrap an AI coding assistant and feed it AI!/AI?/AI: source comments",
    no_args_is_help=True,
    add_completion=False,
)

_ACTION_STYLE = {
    ActionType.COMMAND: "[red]AI![/red]",
    ActionType.QUESTION: "[yellow]AI?[/yellow]",
    ActionType.CONTEXT: "[dim]AI:[/dim]",
}


def _load_config_or_exit(config_file: Path | None) -> ClawdeConfig:
    """Load configuration, exiting with EXIT_CONFIG_ERROR on failure."""
    try:
        return load_config(config_file)
    except ConfigValidationError as e:
        _error(str(e))
        for err in e.errors:
            path = ".".join(str(x) for x in err["loc"])
            _error(f"  {path}: {err['msg']}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e


def _configured_level(config: ClawdeConfig) -> str | None:
    """Return the log level set in the config file or environment, if any."""
    if "log_level" in config.model_fields_set:
        return config.log_level
    return None


def _printable(text: str) -> str:
    """Replace undecodable filename bytes so the text can be printed."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"clawde {__version__}")
        raise typer.Exit()


@app.callback()
def _main_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Wrap an AI coding assistant and feed it AI!/AI?/AI: source comments."""


@app.command(
    "run",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run_command(
    command: list[str] = typer.Argument(
        ...,
        help="Command to wrap, with its arguments (use -- before assistant options)",
    ),
    watch: str = typer.Option(
        ".",
        "--watch",
        "-w",
        help="Directory to watch for marker comments",
    ),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        help="Write logs to this file (overrides CLAWDE_LOG_FILE)",
    ),
    no_throttle: bool = typer.Option(
        False,
        "--no-throttle",
        help="Write program output immediately",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: .clawde.yaml if present)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log at DEBUG level",
    ),
) -> None:
    """Run an interactive assistant and send it prompts for new marker comments.

    Enter inserts a line break; Ctrl+J submits.

    Examples:
        clawde run claude
        clawde run --watch src -- claude --model sonnet

    """
    config = _load_config_or_exit(config_file)

    log_path = log_file.expanduser() if log_file is not None else config.log_path
    if log_path is not None:
        _setup_logging(
            verbose=verbose,
            quiet=False,
            log_file=log_path,
            level=_configured_level(config),
        )
    else:
        # Console logging would corrupt the wrapped program's screen
        _silence_logging()

    root = _validate_directory(watch)

    session = PtySession(command, env=build_child_env(force_ansi=config.force_ansi))
    try:
        session.start(window_size=get_window_size(0))
    except SessionError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_SESSION_ERROR) from e

    cache = ProcessedCommentCache()
    dispatcher = PromptDispatcher(
        lambda text: session.send_prompt(text, config.submit_delay),
        cache,
    )
    ignore = build_ignore_predicate(root)
    processor = CommentProcessor(
        root,
        cache,
        dispatcher.submit,
        include_context=config.include_context,
        ignore=ignore,
        max_search_files=config.max_search_files,
        search_workers=config.search_workers,
    )
    watcher = PollingFileWatcher(root, processor.handle_file_change, ignore, config.poll_interval)
    remapper = EnterKeyRemapper(held_enter_detection=config.held_enter_detection)

    exit_code = EXIT_ERROR
    try:
        dispatcher.start()
        watcher.start()
        exit_code = run_interactive(
            session,
            remapper,
            output_throttling=config.output_throttling and not no_throttle,
            input_tracking=config.input_tracking,
        )
    except KeyboardInterrupt:
        exit_code = EXIT_SIGINT
    finally:
        watcher.stop()
        dispatcher.stop(timeout=1.0)
        session.close()

    raise typer.Exit(code=exit_code)


def _collect_records(
    root: Path,
    config: ClawdeConfig,
) -> list[CommentRecord]:
    ignore = build_ignore_predicate(root)
    try:
        files = find_candidate_files(
            root,
            ignore,
            max_files=config.max_search_files,
            workers=config.search_workers,
        )
    except SearchError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from e

    records: list[CommentRecord] = []
    for path in files:
        try:
            records.extend(extract_comments_from_file(path))
        except ExtractionError as e:
            _warning(_printable(str(e)))
    return records


def _display_path(path: str, root: Path) -> str:
    try:
        return _printable(str(Path(path).relative_to(root)))
    except ValueError:
        return _printable(path)


@app.command("scan")
def scan_command(
    directory: str = typer.Argument(".", help="Directory to scan"),
    prompt: bool = typer.Option(
        False,
        "--prompt",
        help="Print the prompt that would be sent for actionable comments",
    ),
    context: bool | None = typer.Option(
        None,
        "--context/--no-context",
        help="Include AI: comments as related context in the prompt",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: .clawde.yaml if present)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors"),
) -> None:
    """Find marker comments in a directory and show them as a table.

    Examples:
        clawde scan
        clawde scan src --prompt --no-context

    """
    config = _load_config_or_exit(config_file)
    _setup_logging(verbose=verbose, quiet=quiet, level=_configured_level(config))
    root = _validate_directory(directory)

    records = _collect_records(root, config)
    if not records:
        _info(f"No marker comments found in {root}")
        raise typer.Exit(code=EXIT_SUCCESS)

    table = Table(title=f"Marker comments in {root}")
    table.add_column("File", style="cyan")
    table.add_column("Lines", style="dim")
    table.add_column("Action")
    table.add_column("Content")
    for record in records:
        table.add_row(
            escape(_display_path(record.file_path, root)),
            record.location,
            _ACTION_STYLE[record.action_type],
            escape(record.content),
        )
    console.print(table)

    actionable = [r for r in records if r.action_type.is_actionable]
    _success(f"Found {len(records)} marker comment(s), {len(actionable)} actionable")

    if not prompt:
        return
    if not actionable:
        _info("No actionable comments, nothing to prompt")
        return

    include_context = config.include_context if context is None else context
    context_records = (
        [r for r in records if r.action_type is ActionType.CONTEXT] if include_context else []
    )
    console.print()
    console.print(
        _printable(render_batch_prompt(actionable, context_records)),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


@app.command("patterns")
def patterns_command() -> None:
    """List supported file extensions and their comment syntax."""
    table = Table(title="Comment patterns")
    table.add_column("Extension", style="cyan")
    table.add_column("Dialect", style="dim")
    table.add_column("Single-line")
    table.add_column("Multi-line")
    for ext in supported_extensions():
        pattern = get_comment_pattern(ext)
        if pattern is None:
            continue
        table.add_row(
            ext,
            pattern.name,
            escape(" ".join(pattern.single_line)) or "-",
            escape(" ".join(f"{p.start} {p.end}" for p in pattern.multiline)) or "-",
        )
    console.print(table)


def main() -> None:
    """Entry point for the clawde console script."""
    app()


if __name__ == "__main__":
    main()

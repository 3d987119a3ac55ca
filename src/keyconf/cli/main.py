"""
Typer-based CLI for keyconf.

Mirrors the classic gpgconf command line: one command flag selects the
operation and an optional positional argument names the component (or, for
``--check-config``, a rules file)::

    keyconf --list-components
    keyconf --list-options gpg-agent
    echo 'default-cache-ttl::900' | keyconf --change-options gpg-agent
    keyconf --apply-defaults
    keyconf --check-config [FILE]

This module only translates arguments into ``EngineSettings``, calls one
engine operation and prints its records. Exit codes are decided here and
nowhere else.
"""

import sys
from pathlib import Path
from typing import List, Optional

import typer

from keyconf.core.engine import ConfigEngine, OperationResult
from keyconf.core.settings import EngineSettings
from keyconf.core.utils.logger import get_logger, level_for_verbosity, setup_logging
from keyconf.utils.error_handling import KeyconfError, UsageError

from .exit_codes import EXIT_USER_CANCEL, CliExit

app = typer.Typer(
    name="keyconf",
    help="Manage configuration options for tools of the GnuPG system",
    add_completion=False,
    rich_markup_mode="rich",
)

logger = get_logger()

COMMANDS = (
    "list-components",
    "list-options",
    "change-options",
    "apply-defaults",
    "check-config",
)


def build_engine(settings: EngineSettings) -> ConfigEngine:
    """Create the engine for one invocation; tests replace this."""
    return ConfigEngine(settings)


def _emit(records: List[str], output: Optional[Path]) -> None:
    if output is None:
        for record in records:
            typer.echo(record)
        return
    try:
        with open(output, "w", encoding="utf-8") as f:
            for record in records:
                f.write(record + "\n")
    except OSError as e:
        raise CliExit.error(f"cannot write output file {output}: {e.strerror or e}") from e


def _select_command(flags: dict) -> str:
    chosen = [name for name in COMMANDS if flags[name]]
    if len(chosen) > 1:
        raise UsageError("Conflicting commands: " + ", ".join(f"--{c}" for c in chosen))
    return chosen[0] if chosen else "list-components"


def dispatch(engine: ConfigEngine, command: str, argument: Optional[str]) -> OperationResult:
    """Run ``command`` against ``engine``; raises UsageError for a malformed invocation."""
    if command == "list-components":
        return engine.list_components()

    if command in ("list-options", "change-options"):
        if argument is None:
            raise UsageError("Need one component argument")
        index = engine.find_component(argument)
        if command == "list-options":
            return engine.list_options(index)
        return engine.change_options(index, typer.get_text_stream("stdin"))

    if command == "apply-defaults":
        if argument is not None:
            raise UsageError("No argument allowed")
        return engine.apply_defaults()

    return engine.check_config(Path(argument) if argument else None)


@app.command()
def main(
    args: Optional[List[str]] = typer.Argument(
        None, help="Component name (or rules file for --check-config)"
    ),
    list_components: bool = typer.Option(False, "--list-components", help="list all components"),
    list_options: bool = typer.Option(False, "--list-options", help="|COMPONENT| list options"),
    change_options: bool = typer.Option(False, "--change-options", help="|COMPONENT| change options"),
    apply_defaults: bool = typer.Option(False, "--apply-defaults", help="apply global default values"),
    check_config: bool = typer.Option(False, "--check-config", help="check global configuration file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="use as output file"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="verbose"),
    no_verbose: bool = typer.Option(False, "--no-verbose", hidden=True),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="quiet"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="do not make any changes"),
    runtime: bool = typer.Option(False, "--runtime", "-r", help="activate changes at runtime, if possible"),
    homedir: Optional[Path] = typer.Option(None, "--homedir", help="use DIR as configuration root"),
):
    """Manage configuration options for tools of the GnuPG system."""
    if no_verbose:
        verbose = 0
    setup_logging(level_for_verbosity(verbose, quiet))

    command = "keyconf"
    try:
        command = _select_command(
            {
                "list-components": list_components,
                "list-options": list_options,
                "change-options": change_options,
                "apply-defaults": apply_defaults,
                "check-config": check_config,
            }
        )
        args = args or []
        if len(args) > 1:
            raise UsageError("Too many arguments")
        argument = args[0] if args else None

        settings = EngineSettings.from_env(
            homedir=homedir,
            dry_run=dry_run,
            runtime=runtime,
            verbose=verbose,
            quiet=quiet,
            output=output,
        )
        result = dispatch(build_engine(settings), command, argument)
    except UsageError as e:
        raise CliExit.usage_error(str(e)) from e
    except KeyconfError as e:
        logger.debug(f"{command} failed", exc_info=True)
        raise CliExit(e.exit_code, str(e)) from e
    except KeyboardInterrupt:
        raise CliExit.user_cancel()

    _emit(result.records, output)
    if result.failed:
        raise CliExit(result.exit_code)


def run() -> None:
    """Console script entry point."""
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(EXIT_USER_CANCEL)


if __name__ == "__main__":
    run()

"""
Process exit codes of the keyconf command.

0 means success, 1 a missing component or failed validation, 2 a malformed
invocation. The engine reports outcomes as values; ``CliExit`` is the only
way the command line turns one into a process exit.
"""

from typing import Optional

import typer
from rich.console import Console

from keyconf.utils.error_handling import EXIT_FAILURE, EXIT_OK, EXIT_USAGE

EXIT_SUCCESS = EXIT_OK
EXIT_ERROR = EXIT_FAILURE
EXIT_USAGE_ERROR = EXIT_USAGE
EXIT_USER_CANCEL = 130  # 128 + SIGINT

USAGE_LINE = "usage: keyconf [options]"

err_console = Console(stderr=True)


class CliExit(typer.Exit):
    """
    ``typer.Exit`` that prints an optional message to stderr first.

    Usage:
        raise CliExit.error("cannot write output file")
        raise CliExit.usage_error("No argument allowed")
        raise CliExit(result.exit_code)
    """

    def __init__(self, code: int, message: Optional[str] = None):
        self.message = message
        super().__init__(code)
        if message:
            err_console.print(message, markup=False, highlight=False)

    @classmethod
    def error(cls, message: Optional[str] = None) -> "CliExit":
        return cls(EXIT_ERROR, message)

    @classmethod
    def usage_error(cls, message: str) -> "CliExit":
        """Exit 2 with the usage line followed by ``message``."""
        return cls(EXIT_USAGE_ERROR, f"{USAGE_LINE}\n{message}")

    @classmethod
    def user_cancel(cls) -> "CliExit":
        return cls(EXIT_USER_CANCEL, "interrupted")

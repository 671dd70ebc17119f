import typing as t

import click
from click import ClickException, echo
from click._compat import get_text_stderr


class CLIError(ClickException):
    """A ClickException with a red error message, optionally followed by a hint for the operator"""

    def __init__(self, message: str, hint: t.Optional[str] = None):
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        message = click.style(f"Error: {self.message}", fg="red")
        if self.hint:
            message += "\n" + click.style(self.hint, fg="yellow")
        return message

    def show(self, file: t.Optional[t.IO[t.Any]] = None) -> None:
        if file is None:
            file = get_text_stderr()

        echo(self.format_message(), file=file)

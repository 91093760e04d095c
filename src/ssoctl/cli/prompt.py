"""Interactive prompts used by the SSO flows."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

import click
from rich.markup import escape

from ssoctl.cli.output import console, print_warning
from ssoctl.core.exceptions import SelectionError, UserCancelled, ValidationError

# A validator raises ValidationError for unacceptable input.
Validator = Callable[[str], object]


class Prompter(ABC):
    """
    Source of user decisions.

    Every method raises UserCancelled when the user interrupts the prompt
    (Ctrl-C or end of input).
    """

    @abstractmethod
    def select_one(self, label: str, options: Sequence[str]) -> str:
        """Return one of ``options``."""
        pass

    @abstractmethod
    def text_input(
        self,
        label: str,
        default: str = "",
        validate: Validator | None = None,
    ) -> str:
        """
        Ask for a line of text.

        An empty answer yields ``default``; an empty answer with no default is
        asked again. ``validate`` is applied to the final value.
        """
        pass

    @abstractmethod
    def confirm(self, label: str, default: bool = False) -> bool:
        """Ask a yes/no question."""
        pass


class ConsolePrompter(Prompter):
    """Prompter backed by click prompts and a rich numbered list."""

    def select_one(self, label: str, options: Sequence[str]) -> str:
        if not options:
            raise SelectionError(f"nothing to select for: {label}")

        console.print(f"\n[bold]{label}[/bold]")
        for i, option in enumerate(options, start=1):
            console.print(f"  [cyan]{i:>2}[/cyan]  {escape(option)}")

        try:
            index = click.prompt(
                "Enter number",
                type=click.IntRange(1, len(options)),
                default=1 if len(options) == 1 else None,
            )
        except (click.Abort, EOFError, KeyboardInterrupt) as e:
            raise UserCancelled() from e
        return options[index - 1]

    def text_input(
        self,
        label: str,
        default: str = "",
        validate: Validator | None = None,
    ) -> str:
        while True:
            try:
                value = click.prompt(
                    label,
                    default=default or None,
                    show_default=bool(default),
                )
            except (click.Abort, EOFError, KeyboardInterrupt) as e:
                raise UserCancelled() from e

            value = str(value).strip() or default
            if not value:
                print_warning("Input is required")
                continue
            if validate is not None:
                try:
                    validate(value)
                except ValidationError as e:
                    print_warning(str(e))
                    continue
            return value

    def confirm(self, label: str, default: bool = False) -> bool:
        try:
            return click.confirm(label, default=default)
        except (click.Abort, EOFError, KeyboardInterrupt) as e:
            raise UserCancelled() from e

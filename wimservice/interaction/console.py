# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# wimservice/interaction/console.py
"""
Operator interaction.

The orchestrator never touches stdin/stdout directly; it asks an ``Operator`` to
choose among enumerated options and to acknowledge messages. ``ConsoleOperator``
is the interactive implementation on top of a Rich console.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel


class Operator(Protocol):
    def notify(self, message: str, style: str = "") -> None: ...

    def choose(self, prompt: str, options: Mapping[str, str]) -> str: ...

    def acknowledge(self, message: str) -> None: ...


class ConsoleOperator:
    """
    Interactive operator on a Rich console.

    ``choose`` shows the numbered options and re-prompts until the answer is one of
    the option keys. ``acknowledge`` is the "press Enter" gate shown before exit on
    every path; ``pause=False`` turns it into a plain message for unattended runs.
    """

    def __init__(
        self,
        logger: logging.Logger,
        console: Optional[Console] = None,
        *,
        pause: bool = True,
    ):
        self.logger = logger
        self.console = console or Console(highlight=False)
        self.pause = bool(pause)

    def notify(self, message: str, style: str = "") -> None:
        self.console.print(escape(message), style=style or None)

    def choose(self, prompt: str, options: Mapping[str, str]) -> str:
        body = "\n".join(f"[bold]{key}[/bold]  {label}" for key, label in options.items())
        self.console.print(Panel(body, title=prompt, expand=False))
        keys = "/".join(options.keys())
        while True:
            answer = self.console.input(f"Select [{keys}]: ").strip()
            if answer in options:
                self.logger.debug("Operator chose %r (%s)", answer, options[answer])
                return answer
            self.console.print(f"Invalid choice {escape(repr(answer))}; enter one of {keys}.", style="yellow")

    def acknowledge(self, message: str) -> None:
        self.console.print(escape(message))
        if not self.pause:
            return
        try:
            self.console.input("Press Enter to continue...")
        except (EOFError, KeyboardInterrupt):
            # stdin closed or Ctrl-C at the gate: nothing left to wait for.
            self.console.print()


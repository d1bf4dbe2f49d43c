"""Operator console: progress reporting and interactive prompts."""

import logging
from abc import ABC, abstractmethod

from rich.console import Console
from rich.prompt import Prompt

MOTHERSHIP_LOGO = r"""                   `:shmNmmmdhs:`
                 `sNNs:.    .:sNNo`
                :mMh` .:.  .-. `yMm-
               .NMN..:NMN::NMN:..NMN.
          `....sNNmdddmmmddmmmdddmNNs....`
         +yyyyyyyyyyhhyhhyyhhyhhyhyyyyyyyy/
         `+dMmNMmNMNNMNNMNNMmNMNNMmmMNmMd+`
           `/ssyyssyyhhyhyyhyhhyyssyyss/`
                   `+hmNNNNNNmh+`
  __  __  ___ _____ _  _ ___ ___  ___ _  _ ___ ___
 |  \/  |/ _ \_   _| || | __| _ \/ __| || |_ _| _ \
 | |\/| | (_) || | | __ | _||   /\__ \ __ || ||  _/
 |_|  |_|\___/ |_| |_||_|___|_|_\|___/_||_|___|_|"""


class ProgressReporter(ABC):
    """Reports workflow progress: sections, and one step at a time."""

    @abstractmethod
    def section(self, title: str) -> None: ...

    @abstractmethod
    def start(self, message: str) -> None: ...

    @abstractmethod
    def succeed(self) -> None: ...

    @abstractmethod
    def fail(self) -> None: ...


class LoggingProgressReporter(ProgressReporter):
    """Writes progress lines through a logger."""

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(__name__)
        self._current = None

    def section(self, title):
        self.logger.info("")
        self.logger.info(title)

    def start(self, message):
        self._current = message
        self.logger.info(message)

    def succeed(self):
        self.logger.info(f"[ok] {self._current}")
        self._current = None

    def fail(self):
        self.logger.error(f"[failed] {self._current}")
        self._current = None


class Prompter(ABC):
    """Asks the operator for a value."""

    @abstractmethod
    def ask(self, prompt: str) -> str: ...


class ConsolePrompter(Prompter):
    """Reads answers from the terminal with ``rich.prompt.Prompt``.

    Raises EOFError when stdin is closed.
    """

    def __init__(self, console=None):
        self.console = console or Console()

    def ask(self, prompt):
        return Prompt.ask(prompt, console=self.console).strip()


def print_banner(logger=None):
    logger = logger or logging.getLogger(__name__)
    logger.info("")
    logger.info(MOTHERSHIP_LOGO)
    logger.info("")
    logger.info("Automated Setup")
    logger.info("")

"""Interactive terminal prompts."""

from __future__ import annotations

from typing import Callable, Iterable

from super_gsi.domain import ValidationWarning
from super_gsi.logging import get_logger
from super_gsi.storage.exceptions import UserAbortedError

CONFIRM_PROMPT = "Continue anyway? (y/N): "

log = get_logger(source="prompt", tags=["ui"])


class Prompter:
    """Reads answers from the terminal.

    ``input_func`` is injectable so tests can script the answers.
    """

    def __init__(self, input_func: Callable[[str], str] = input):
        self._input = input_func

    def ask(self, question: str) -> str:
        try:
            answer = self._input(question)
        except EOFError as error:
            raise UserAbortedError("No input available") from error
        return answer.strip()

    def confirm(self, question: str = CONFIRM_PROMPT) -> bool:
        """Anything other than ``y``/``Y`` is a no."""
        return self.ask(question) in ("y", "Y")

    def confirm_warnings(self, warnings: Iterable[ValidationWarning]) -> None:
        """Show advisory warnings and ask once whether to go on.

        Raises:
            UserAbortedError: If there were warnings and the user declined.
        """
        warnings = list(warnings)
        if not warnings:
            return
        for warning in warnings:
            log.warning(warning.message)
            for detail in warning.details:
                log.warning(detail)
        if not self.confirm():
            raise UserAbortedError()

"""
Confirmation Gate
-----------------
Yes/no questions for the operator. Empty input takes the default; anything
that is not a recognised yes/no answer is rejected and asked again, with no
limit on the number of attempts.
"""

from typing import TYPE_CHECKING, Optional, TextIO

from rich.console import Console
from rich.prompt import Confirm, InvalidResponse
from rich.text import TextType

if TYPE_CHECKING:
    from .runlog import RunLog

YES_ANSWERS = frozenset({"y", "yes"})
NO_ANSWERS = frozenset({"n", "no"})


class YesNoPrompt(Confirm):
    """rich ``Confirm`` that also accepts full words, in any case."""

    validate_error_message = "[prompt.invalid]Please answer yes or no (y/n)"

    @classmethod
    def get_input(
        cls,
        console: Console,
        prompt: TextType,
        password: bool,
        stream: Optional[TextIO] = None,
    ) -> str:
        # A bare Enter read from a stream arrives as "\n"; treat it like input().
        return super().get_input(console, prompt, password, stream=stream).rstrip("\r\n")

    def process_response(self, value: str) -> bool:
        answer = value.strip().lower()
        if answer in YES_ANSWERS:
            return True
        if answer in NO_ANSWERS:
            return False
        raise InvalidResponse(self.validate_error_message)


def confirm(
    prompt: str,
    default: bool = False,
    *,
    console: Optional[Console] = None,
    stream: Optional[TextIO] = None,
) -> bool:
    """Ask ``prompt`` until a valid yes/no answer (or empty input) is given."""
    return YesNoPrompt.ask(
        f"[prompt]{prompt}[/]", default=default, console=console, stream=stream
    )


class ConfirmationGate:
    """Asks step prompts on the run's console, or answers yes when told to."""

    def __init__(
        self,
        console: Console,
        log: Optional["RunLog"] = None,
        assume_yes: bool = False,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.console = console
        self.log = log
        self.assume_yes = assume_yes
        self.stream = stream

    def confirm(self, prompt: str, default: bool = False) -> bool:
        if self.assume_yes:
            if self.log is not None:
                self.log.debug(f"Assuming yes: {prompt}")
            return True
        answer = confirm(prompt, default, console=self.console, stream=self.stream)
        if self.log is not None:
            self.log.debug(f"Operator answered {'yes' if answer else 'no'}: {prompt}")
        return answer

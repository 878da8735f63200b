"""
Grace-timeout prompts.

When a target is more than three hours in the past the scheduler asks
the operator whether to keep watching. The question is an injected
object so the scheduler can be driven without a real stdin:

- ConsolePrompt reads answers from the terminal
- AutoContinuePrompt answers "continue" without asking (``--yes``)
"""

import asyncio
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, TYPE_CHECKING

from .enums import GraceChoice

if TYPE_CHECKING:
    from .renderer import StatusRenderer


@dataclass(frozen=True)
class GraceDecision:
    """Operator answer to the grace-timeout question."""

    choice: GraceChoice
    custom_interval: Optional[str] = None  # raw text, validated by the scheduler
    warning: Optional[str] = None


class GracePrompt(Protocol):
    """Anything that can answer the grace-timeout question."""

    async def ask(self, elapsed_seconds: int) -> GraceDecision:
        ...


def parse_choice(answer: Optional[str]) -> GraceDecision:
    """
    Interpret a y/n/c answer.

    Empty input and ``y`` continue; anything unrecognised also continues,
    with a warning attached.
    """
    text = (answer or "").strip().lower()
    if text in ("", "y", "yes"):
        return GraceDecision(GraceChoice.CONTINUE)
    if text in ("n", "no"):
        return GraceDecision(GraceChoice.STOP)
    if text in ("c", "custom"):
        return GraceDecision(GraceChoice.CUSTOM)
    return GraceDecision(
        GraceChoice.CONTINUE,
        warning=f"Unrecognised choice {answer.strip()!r}, continuing",
    )


class AutoContinuePrompt:
    """Always continue; used when the operator pre-authorised it."""

    def __init__(self, renderer: Optional["StatusRenderer"] = None) -> None:
        self._renderer = renderer

    async def ask(self, elapsed_seconds: int) -> GraceDecision:
        if self._renderer:
            self._renderer.grace_auto_continue(elapsed_seconds)
        return GraceDecision(GraceChoice.CONTINUE)


class ConsolePrompt:
    """
    Ask on the terminal.

    ``input`` blocks, so each answer is read on a daemon thread and handed
    back to the event loop. A cancelled wait leaves the thread parked on
    stdin; being a daemon it does not keep the process alive.
    """

    def __init__(
        self,
        renderer: "StatusRenderer",
        input_func: Callable[[str], str] = input,
    ) -> None:
        self._renderer = renderer
        self._input_func = input_func

    async def ask(self, elapsed_seconds: int) -> GraceDecision:
        self._renderer.grace_prompt(elapsed_seconds)
        decision = parse_choice(await self._read_line("Choice [y/n/c]: "))
        if decision.choice is GraceChoice.CUSTOM:
            custom = await self._read_line("Enter custom interval in seconds: ")
            return GraceDecision(GraceChoice.CUSTOM, custom_interval=custom.strip())
        return decision

    async def _read_line(self, prompt: str) -> str:
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def _resolve(value: str) -> None:
            if not future.done():
                future.set_result(value)

        def _reader() -> None:
            try:
                line = self._input_func(prompt)
            except EOFError:
                line = ""
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve, line)

        threading.Thread(target=_reader, name="watchdom-prompt", daemon=True).start()
        return await future

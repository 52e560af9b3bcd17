"""The executable logic of a task."""

from __future__ import annotations

import logging
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Callable, Union

from .env import EnvVar
from .state import Content, Input, Output

logger = logging.getLogger(__name__)

_WINDOWS = sys.platform.startswith("win")

Simple = Callable[[Input, EnvVar], Output]


class Complex(ABC):
    """Task logic that carries state of its own."""

    @abstractmethod
    def run(self, input: Input, env: EnvVar) -> Output:
        """Run with the predecessors' outputs and the shared environment."""


class Action:
    """Task logic given either as a callable or as a :class:`Complex`."""

    __slots__ = ("logic", "_runner")

    def __init__(self, logic: Union[Complex, Simple]) -> None:
        if isinstance(logic, Complex):
            runner = logic.run
        elif callable(logic):
            runner = logic
        else:
            raise TypeError(f"an action must be callable or a Complex, not {type(logic).__name__}")
        self.logic = logic
        self._runner = runner

    def run(self, input: Input, env: EnvVar) -> Output:
        return self._runner(input, env)

    def __repr__(self) -> str:
        return f"Action({self.logic!r})"


def _split_lines(raw: bytes) -> list[str]:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return []
    terminator = "\r\n" if _WINDOWS else "\n"
    lines = text.split(terminator)
    if lines[-1] == "":
        lines.pop()
    return lines[::-1] if _WINDOWS else lines


class CommandAction(Complex):
    """Runs a shell command; string inputs are passed as extra arguments.

    On success the output holds ``(stdout_lines, stderr_lines)``; on failure
    the same pair is kept as the content of an error with the exit code.
    """

    def __init__(self, command: str) -> None:
        self.command = command

    def run(self, input: Input, env: EnvVar) -> Output:
        if _WINDOWS:
            args = ["powershell", "-Command", self.command]
        else:
            args = ["sh", "-c", self.command]
        args.extend(text for text in (item.get(str) for item in input) if text is not None)

        logger.info("cmd: %r, args: %r", args[0], args[1:])
        try:
            completed = subprocess.run(args, capture_output=True, check=False)
        except OSError as exc:
            return Output.error_with_exit_code(exc.errno, Content(str(exc)))

        stdout = _split_lines(completed.stdout)
        stderr = _split_lines(completed.stderr)
        if completed.returncode == 0:
            return Output.new((stdout, stderr))
        code = completed.returncode if completed.returncode >= 0 else 0
        return Output.error_with_exit_code(code, Content((stdout, stderr)))

    def __repr__(self) -> str:
        return f"CommandAction({self.command!r})"
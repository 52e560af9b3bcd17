"""Task input, output and per-task execution state."""

from __future__ import annotations

import asyncio
import enum
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator


@dataclass(frozen=True)
class Content:
    """A container for any value produced by a task."""

    value: Any

    def get(self, kind: type = object) -> Any:
        """Return the value if it is an instance of ``kind``, else None."""
        return self.value if isinstance(self.value, kind) else None

    def into_inner(self, kind: type = object) -> Any:
        """Return the stored value itself if it is of ``kind``, else None."""
        return self.get(kind)


class _Kind(enum.Enum):
    OUT = enum.auto()
    ERR = enum.auto()
    ERR_WITH_EXIT_CODE = enum.auto()


@dataclass(frozen=True)
class Output:
    """What a task produced: a value, nothing, or an error."""

    content: Content | None = None
    message: str | None = None
    exit_code: int | None = None
    _kind: _Kind = field(default=_Kind.OUT, repr=False)

    @classmethod
    def new(cls, value: Any) -> Output:
        """A successful output holding ``value``."""
        return cls(content=Content(value))

    @classmethod
    def empty(cls) -> Output:
        """A successful output holding nothing."""
        return cls()

    @classmethod
    def error(cls, message: str) -> Output:
        """An error output with a message."""
        return cls(message=message, _kind=_Kind.ERR)

    @classmethod
    def error_with_exit_code(cls, code: int | None, content: Content | None) -> Output:
        """An error output with an optional exit code and optional content."""
        return cls(content=content, exit_code=code, _kind=_Kind.ERR_WITH_EXIT_CODE)

    def is_err(self) -> bool:
        return self._kind is not _Kind.OUT

    def get_out(self) -> Content | None:
        """The content of a successful output; None for errors."""
        return self.content if self._kind is _Kind.OUT else None

    def get_err(self) -> str | None:
        """A description of the error, or None for a successful output."""
        if self._kind is _Kind.OUT:
            return None
        if self._kind is _Kind.ERR:
            return self.message
        code = "" if self.exit_code is None else str(self.exit_code)
        return f"code: {code}"


class Input:
    """The outputs of a task's predecessors, in the order they were collected."""

    __slots__ = ("_contents",)

    def __init__(self, contents: Iterable[Content] = ()) -> None:
        self._contents = tuple(contents)

    def __iter__(self) -> Iterator[Content]:
        return iter(self._contents)

    def __len__(self) -> int:
        return len(self._contents)

    def __repr__(self) -> str:
        return f"Input({list(self._contents)!r})"


class ExecState:
    """Result and synchronisation point of one task during a run.

    Successors wait on :meth:`acquire`; once the task finishes, it releases
    one permit per successor so each can read its output.
    """

    def __init__(self) -> None:
        self._success = False
        self._output = Output.empty()
        self._lock = threading.Lock()
        self._semaphore = asyncio.Semaphore(0)

    @property
    def success(self) -> bool:
        with self._lock:
            return self._success

    def set_output(self, output: Output) -> None:
        with self._lock:
            self._success = True
            self._output = output

    def get_output(self) -> Content | None:
        with self._lock:
            return self._output.get_out()

    def get_full_output(self) -> Output:
        with self._lock:
            return self._output

    def exe_success(self) -> None:
        with self._lock:
            self._success = True

    def exe_fail(self) -> None:
        with self._lock:
            self._success = False

    def release(self, permits: int) -> None:
        """Make ``permits`` more waiters able to proceed."""
        for _ in range(permits):
            self._semaphore.release()

    async def acquire(self) -> None:
        """Wait for a permit and consume it."""
        await self._semaphore.acquire()
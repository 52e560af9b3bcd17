"""Tasks: the units that a graph schedules."""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from .action import Action, Complex, Simple
from .state import Output

_ids = itertools.count(1)
_id_lock = threading.Lock()


def alloc_id() -> int:
    """Return a new task id, unique within this process."""
    with _id_lock:
        return next(_ids)


class Task(ABC):
    """What every task offers to a graph: an id, a name, predecessors and an action."""

    @property
    @abstractmethod
    def id(self) -> int:
        """The unique id of this task."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The name of this task."""

    @property
    @abstractmethod
    def precursors(self) -> Sequence[int]:
        """Ids of the tasks that must run before this one."""

    @property
    @abstractmethod
    def action(self) -> Action:
        """The logic this task runs."""

    def __repr__(self) -> str:
        return f"{self.id},\t{self.name},\t{list(self.precursors)}"


def _noop(_input, _env) -> Output:
    return Output.empty()


class DefaultTask(Task):
    """A general-purpose task.

    Without a name it is called ``"Task <id>"``; without an action it
    produces an empty output.
    """

    def __init__(self, name: str | None = None, action: Action | Complex | Simple | None = None) -> None:
        self._id = alloc_id()
        self._name = name if name is not None else f"Task {self._id}"
        self._precursors: list[int] = []
        if action is None:
            action = Action(_noop)
        self._action = action if isinstance(action, Action) else Action(action)

    @classmethod
    def with_closure(cls, name: str, closure: Simple) -> DefaultTask:
        """A task whose logic is the callable ``closure(input, env)``."""
        return cls(name, Action(closure))

    @classmethod
    def with_action(cls, name: str, action: Complex) -> DefaultTask:
        """A task whose logic is a :class:`Complex` object."""
        if not isinstance(action, Complex):
            raise TypeError(f"expected a Complex action, not {type(action).__name__}")
        return cls(name, Action(action))

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value

    @property
    def precursors(self) -> tuple[int, ...]:
        return tuple(self._precursors)

    @property
    def action(self) -> Action:
        return self._action

    def set_predecessors(self, predecessors: Iterable[Task]) -> None:
        """Make the given tasks run before this one."""
        self._precursors.extend(task.id for task in predecessors)

    def set_predecessors_by_id(self, predecessor_ids: Iterable[int]) -> None:
        """Like :meth:`set_predecessors`, but given task ids."""
        self._precursors.extend(predecessor_ids)

    def set_closure(self, closure: Simple) -> None:
        self._action = Action(closure)

    def set_action(self, action: Complex) -> None:
        if not isinstance(action, Complex):
            raise TypeError(f"expected a Complex action, not {type(action).__name__}")
        self._action = Action(action)

    def __copy__(self) -> DefaultTask:
        clone = type(self).__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._precursors = list(self._precursors)
        return clone
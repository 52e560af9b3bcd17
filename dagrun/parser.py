"""The interface of task configuration parsers."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Mapping

from .action import Action
from .errors import FileNotFound
from .task import Task


def load_file(path: str | os.PathLike) -> str:
    """Return the whole text of a configuration file."""
    with open(path, encoding="utf-8") as handle:
        return handle.read()


class Parser(ABC):
    """Turns a configuration into a list of tasks with resolved dependencies.

    ``specific_actions`` maps a task's identifier in the configuration to
    logic supplied by the caller instead of the configuration.
    """

    def parse_tasks(
        self, file: str | os.PathLike, specific_actions: Mapping[str, Action] | None = None
    ) -> list[Task]:
        """Read ``file`` and parse its content."""
        try:
            content = load_file(file)
        except OSError as exc:
            raise FileNotFound(str(exc)) from exc
        return self.parse_tasks_from_str(content, specific_actions)

    @abstractmethod
    def parse_tasks_from_str(
        self, content: str, specific_actions: Mapping[str, Action] | None = None
    ) -> list[Task]:
        """Parse configuration text into tasks."""
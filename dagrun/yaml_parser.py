"""The default parser, reading tasks from YAML.

The document must have a top-level ``dagrs`` mapping; each entry is a task::

    dagrs:
      a:
        name: "Task 1"
        after: [b, c]
        cmd: echo a
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Sequence

import yaml

from .action import Action, CommandAction
from .errors import (
    IllegalYamlContent,
    NoNameAttr,
    NoScriptAttr,
    NotFoundPrecursor,
    ParserError,
    StartWordError,
)
from .parser import Parser
from .task import Task, alloc_id


class YamlTask(Task):
    """A task read from a YAML configuration.

    Besides the usual attributes it keeps its identifier in the configuration
    and the identifiers of its predecessors there.
    """

    def __init__(self, yaml_id: str, precursors: Sequence[str], name: str, action: Action) -> None:
        self._yaml_id = yaml_id
        self._id = alloc_id()
        self._name = name
        self._str_precursors = tuple(precursors)
        self._precursors: tuple[int, ...] = ()
        self._action = action

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def precursors(self) -> tuple[int, ...]:
        return self._precursors

    @property
    def action(self) -> Action:
        return self._action

    @property
    def str_id(self) -> str:
        """The identifier of this task in the configuration."""
        return self._yaml_id

    @property
    def str_precursors(self) -> tuple[str, ...]:
        """The identifiers of the predecessors in the configuration."""
        return self._str_precursors

    def init_precursors(self, precursor_ids: Sequence[int]) -> None:
        """Set the task ids of the predecessors once all tasks have ids."""
        self._precursors = tuple(precursor_ids)


class YamlParser(Parser):
    """Parses YAML task configurations; tasks run their ``cmd`` in a shell."""

    def parse_tasks(
        self, file: str | os.PathLike, specific_actions: Mapping[str, Action] | None = None
    ) -> list[YamlTask]:
        """Read a YAML file and parse its tasks."""
        return super().parse_tasks(file, specific_actions)

    def parse_tasks_from_str(
        self, content: str, specific_actions: Mapping[str, Action] | None = None
    ) -> list[YamlTask]:
        """Parse YAML text into tasks with resolved predecessors."""
        try:
            documents = list(yaml.safe_load_all(content))
        except yaml.YAMLError as exc:
            raise IllegalYamlContent(str(exc)) from exc
        if not documents:
            raise ParserError("No Tasks found")

        root = documents[0]
        entries = root.get("dagrs") if isinstance(root, dict) else None
        if not isinstance(entries, dict):
            raise StartWordError()

        actions = dict(specific_actions or {})
        tasks: list[YamlTask] = []
        ids: dict[str, int] = {}
        for key, item in entries.items():
            if not isinstance(key, str):
                raise ParserError("Invalid YAML Node Type")
            task = self._parse_one(key, item, actions.pop(key, None))
            ids[key] = task.id
            tasks.append(task)

        for task in tasks:
            try:
                task.init_precursors([ids[pre] for pre in task.str_precursors])
            except KeyError:
                raise NotFoundPrecursor(task.name) from None
        return tasks

    @staticmethod
    def _parse_one(task_id: str, item: Any, action: Any) -> YamlTask:
        fields = item if isinstance(item, dict) else {}
        name = fields.get("name")
        if not isinstance(name, str):
            raise NoNameAttr(task_id)

        after = fields.get("after")
        precursors: list[str] = []
        if isinstance(after, list):
            for pre in after:
                if not isinstance(pre, str):
                    raise ParserError("Invalid YAML Node Type")
                precursors.append(pre)

        if action is not None:
            action = action if isinstance(action, Action) else Action(action)
        else:
            cmd = fields.get("cmd")
            if not isinstance(cmd, str):
                raise NoScriptAttr(name)
            action = Action(CommandAction(cmd))
        return YamlTask(task_id, precursors, name, action)
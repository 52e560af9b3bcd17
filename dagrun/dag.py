"""Scheduling and running a graph of dependent tasks."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Iterable, Mapping

from .action import Action
from .env import EnvVar
from .errors import EmptyJob, LoopGraph, RelyTaskIllegal
from .graph import Graph
from .parser import Parser
from .state import ExecState, Input, Output
from .task import Task
from .yaml_parser import YamlParser

logger = logging.getLogger(__name__)


class Dag:
    """A job made of tasks with dependencies.

    Running a graph works as follows:

    - a dependency graph is built from the tasks and sorted topologically;
    - every task is started at once and waits for the outputs of its
      predecessors;
    - a task whose predecessor failed, or that runs after the job was
      stopped, does nothing;
    - when a task fails the job stops, unless :meth:`keep_going` was asked
      for, in which case only the tasks depending on the failed one are
      given up.

    Once a job has run to completion it cannot be started again without
    :meth:`reset`.
    """

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self.tasks: dict[int, Task] = {task.id: task for task in tasks}
        self.reset()

    def reset(self) -> None:
        """Forget the state of any previous run, keeping the tasks."""
        self._graph = Graph()
        self._states: dict[int, ExecState] = {}
        self._env = EnvVar()
        self._can_continue = True
        self._sequence: list[int] = []
        self._keep_going = False
        self._keep_going_errored = False

    @classmethod
    def with_tasks(cls, tasks: Iterable[Task]) -> Dag:
        """A job running the given tasks."""
        return cls(tasks)

    @classmethod
    def with_yaml(
        cls, file: str | os.PathLike, specific_actions: Mapping[str, Action] | None = None
    ) -> Dag:
        """A job read from a YAML configuration file."""
        return cls.with_config_file_and_parser(file, YamlParser(), specific_actions)

    @classmethod
    def with_yaml_str(cls, content: str, specific_actions: Mapping[str, Action] | None = None) -> Dag:
        """A job read from YAML configuration text."""
        return cls.with_config_str_and_parser(content, YamlParser(), specific_actions)

    @classmethod
    def with_config_file_and_parser(
        cls,
        file: str | os.PathLike,
        parser: Parser,
        specific_actions: Mapping[str, Action] | None = None,
    ) -> Dag:
        """A job read from a configuration file with the given parser."""
        return cls(parser.parse_tasks(file, specific_actions))

    @classmethod
    def with_config_str_and_parser(
        cls, content: str, parser: Parser, specific_actions: Mapping[str, Action] | None = None
    ) -> Dag:
        """A job read from configuration text with the given parser."""
        return cls(parser.parse_tasks_from_str(content, specific_actions))

    def keep_going(self) -> Dag:
        """Run independent tasks even after a task has failed; returns self."""
        self._keep_going = True
        return self

    def set_env(self, env: EnvVar) -> None:
        """Set the variables shared by the tasks; call before running."""
        self._env = env

    def _create_graph(self) -> None:
        graph = Graph()
        graph.set_graph_size(len(self.tasks))
        for task_id in self.tasks:
            graph.add_node(task_id)
        for task_id, task in self.tasks.items():
            index = graph.find_index_by_id(task_id)
            for precursor in task.precursors:
                rely_index = graph.find_index_by_id(precursor)
                if rely_index is None:
                    raise RelyTaskIllegal(task.name)
                graph.add_edge(rely_index, index)
        self._graph = graph

    def init(self) -> None:
        """Prepare a run: task states, the dependency graph and the execution order."""
        self._states = {task_id: ExecState() for task_id in self.tasks}
        self._create_graph()
        order = self._graph.topo_sort()
        if order is None:
            raise LoopGraph()
        if not order:
            raise EmptyJob()
        self._sequence = [self._graph.find_id_by_index(index) for index in order]

    def start(self) -> None:
        """Prepare and run the job to completion.

        Raises :class:`EmptyJob` if the job has already run or a task failed.
        """
        if not self._can_continue:
            raise EmptyJob()
        self.init()
        asyncio.run(self.run())

    async def run(self) -> None:
        """Run the prepared job in the current event loop."""
        logger.debug(
            "[Start]%s -> [End]", " -> ".join(self.tasks[task_id].name for task_id in self._sequence)
        )
        handles = [
            (task_id, asyncio.create_task(self._execute_task(self.tasks[task_id])))
            for task_id in self._sequence
        ]
        for task_id, handle in handles:
            try:
                succeeded = await handle
            except Exception as exc:  # noqa: BLE001
                logger.error("Task execution encountered an unexpected error! %s", exc)
                succeeded = False
            if not succeeded:
                self._handle_error(task_id)

        if self._keep_going:
            if self._keep_going_errored:
                raise EmptyJob()
            return
        if not self._can_continue:
            raise EmptyJob()
        self._can_continue = False

    async def _execute_task(self, task: Task) -> bool:
        env = self._env
        task_id = task.id
        task_name = task.name
        state = self._states[task_id]
        out_degree = self._graph.get_node_out_degree(task_id)
        waits = [self._states[precursor] for precursor in task.precursors]
        action = task.action

        inputs = []
        for wait_for in waits:
            await wait_for.acquire()
            if not self._can_continue or not wait_for.success:
                return True
            content = wait_for.get_output()
            if content is not None:
                inputs.append(content)

        logger.debug("Executing task [name: %s, id: %s]", task_name, task_id)
        try:
            out = await asyncio.to_thread(action.run, Input(inputs), env)
        except Exception as exc:  # noqa: BLE001
            logger.error("Execution failed [name: %s, id: %s] - %s", task_name, task_id, exc)
            return False
        if not isinstance(out, Output):
            logger.error(
                "Execution failed [name: %s, id: %s] - returned %s instead of an Output",
                task_name,
                task_id,
                type(out).__name__,
            )
            return False

        if out.is_err():
            error = out.get_err() or ""
            logger.error("Execution failed [name: %s, id: %s] - %s", task_name, task_id, error)
            state.set_output(out)
            return False
        state.set_output(out)
        state.exe_success()
        state.release(out_degree)
        logger.debug("Execution succeed [name: %s, id: %s]", task_name, task_id)
        return True

    def _handle_error(self, task_id: int) -> None:
        if self._keep_going:
            self._handle_errored_keep_going(task_id)
        else:
            self._handle_errored_stopping(task_id)

    def _handle_errored_stopping(self, task_id: int) -> None:
        if not self._can_continue:
            return
        self._can_continue = False
        position = self._sequence.index(task_id)
        for later_id in self._sequence[position:]:
            self._release_errored(later_id, mark_failed=False)

    def _handle_errored_keep_going(self, task_id: int) -> None:
        self._keep_going_errored = True
        for index in self._graph.get_node_successors(task_id):
            self._release_errored(self._graph.find_id_by_index(index), mark_failed=True)

    def _release_errored(self, task_id: int, mark_failed: bool) -> None:
        state = self._states[task_id]
        state.release(self._graph.get_node_out_degree(task_id))
        if mark_failed:
            state.exe_fail()

    def get_result(self) -> Any:
        """The value produced by the last task in execution order, or None."""
        if not self._sequence:
            return None
        content = self._states[self._sequence[-1]].get_output()
        return None if content is None else content.value

    def get_results(self) -> dict[int, Any]:
        """The value produced by every task, keyed by task id; None where there is none."""
        results: dict[int, Any] = {}
        for task_id, state in self._states.items():
            content = state.get_output()
            results[task_id] = None if content is None else content.value
        return results

    def get_outputs(self) -> dict[int, Output]:
        """The full output of every task, keyed by task id."""
        return {task_id: state.get_full_output() for task_id, state in self._states.items()}

    def __repr__(self) -> str:
        return f"Dag(tasks={list(self.tasks.values())!r})"
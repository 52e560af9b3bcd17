"""Managing several task graphs and running them by name or in order."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterator

from .dag import Dag
from .errors import DagError, EmptyJob

logger = logging.getLogger(__name__)


class Engine:
    """Holds named jobs and runs them one at a time.

    Jobs are prepared when they are added and run in the order in which
    they were added by :meth:`run_sequential`. A job that cannot be
    prepared (no tasks, a cycle, a missing dependency) is logged and left out.
    """

    def __init__(self) -> None:
        self._dags: dict[str, Dag] = {}

    def append_dag(self, name: str, dag: Dag) -> None:
        """Prepare ``dag`` and add it under ``name``.

        A name that is already taken keeps its first job.
        """
        if name in self._dags:
            return
        try:
            dag.init()
        except DagError as exc:
            logger.error("Some error occur: %s", exc)
            return
        self._dags[name] = dag

    def run_dag(self, name: str) -> None:
        """Run the job called ``name``.

        Raises :class:`EmptyJob` if there is no such job, and whatever the
        job raises if it fails.
        """
        dag = self._dags.get(name)
        if dag is None:
            logger.error("No job named '%s'", name)
            raise EmptyJob()
        asyncio.run(dag.run())

    def run_sequential(self) -> None:
        """Run every job in the order it was added, stopping at the first failure."""
        for name in list(self._dags):
            self.run_dag(name)

    def get_dag_result(self, name: str) -> Any:
        """The result of the last task of the job ``name``, or None."""
        dag = self._dags.get(name)
        return None if dag is None else dag.get_result()

    def __contains__(self, name: object) -> bool:
        return name in self._dags

    def __len__(self) -> int:
        return len(self._dags)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._dags))

    def __repr__(self) -> str:
        return f"Engine(dags={list(self._dags)!r})"
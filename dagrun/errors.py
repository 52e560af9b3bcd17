"""Errors raised while building, parsing and running task graphs."""

from __future__ import annotations


class DagError(Exception):
    """Base class of every error raised by this package."""


class ParserError(DagError):
    """A task configuration could not be parsed."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Parsing error: {detail}")


class RelyTaskIllegal(DagError):
    """A task depends on a task that is not part of the graph."""

    def __init__(self, task_name: str) -> None:
        self.task_name = task_name
        super().__init__(f"Task[{task_name}] dependency task not exist.")


class LoopGraph(DagError):
    """The task dependencies form a cycle."""

    def __init__(self) -> None:
        super().__init__("Illegal directed a cyclic graph, loop Detect!")


class EmptyJob(DagError):
    """The job has no tasks, or it cannot be run (again)."""

    def __init__(self) -> None:
        super().__init__("There are no tasks in the job.")


class TaskError(DagError):
    """A task reported an error while running."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Task error: {message}")


class YamlTaskError(ParserError):
    """A task entry of a YAML configuration is invalid."""


class StartWordError(YamlTaskError):
    """The configuration does not start with the ``dagrs`` key."""

    def __init__(self) -> None:
        super().__init__("File content is not start with 'dagrs'.")


class NoNameAttr(YamlTaskError):
    """A task entry has no ``name`` field."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task has no name field. [{task_id}]")


class NotFoundPrecursor(YamlTaskError):
    """A task names a predecessor that does not exist."""

    def __init__(self, task_name: str) -> None:
        self.task_name = task_name
        super().__init__(f"Task cannot find the specified predecessor. [{task_name}]")


class NoScriptAttr(YamlTaskError):
    """A task has neither a ``cmd`` field nor a supplied action."""

    def __init__(self, task_name: str) -> None:
        self.task_name = task_name
        super().__init__(f"The 'script' attribute is not defined. [{task_name}]")


class FileContentError(ParserError):
    """The content of a configuration file is unusable."""


class IllegalYamlContent(FileContentError):
    """The configuration is not well-formed YAML."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Illegal yaml content: {reason}")


class EmptyFile(FileContentError):
    """The configuration file is empty."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File is empty! [{path}]")


class FileNotFound(ParserError):
    """The configuration file could not be opened."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"File not found. [{reason}]")
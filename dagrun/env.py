"""Variables shared by all tasks of one graph."""

from __future__ import annotations

from typing import Any

from .state import Content


class EnvVar:
    """Named values set before a run and read by tasks while it runs."""

    def __init__(self) -> None:
        self._variables: dict[str, Content] = {}

    def set(self, name: str, value: Any) -> None:
        self._variables[name] = Content(value)

    def get(self, name: str, kind: type = object) -> Any:
        """Return the variable ``name`` if it exists and is of ``kind``, else None."""
        content = self._variables.get(name)
        return None if content is None else content.get(kind)

    def __repr__(self) -> str:
        values = {name: content.value for name, content in self._variables.items()}
        return f"EnvVar({values!r})"
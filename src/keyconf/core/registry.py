"""
Component registry for keyconf.

Static catalog of the backend tools whose configuration keyconf manages. The
registry is built once per invocation from a table of ``ComponentInfo``
entries and is read-only afterwards; indices are the table positions and stay
stable for the lifetime of the registry.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from keyconf.core.settings import EngineSettings
from keyconf.utils.error_handling import NotFoundError


@dataclass(frozen=True)
class ComponentInfo:
    """Table entry describing a known component."""

    name: str
    description: str
    executable: Optional[str] = None  # defaults to name
    config_name: Optional[str] = None  # defaults to "<name>.conf"
    socket_name: Optional[str] = None  # control channel below the homedir
    reload_command: Optional[str] = None  # sent over the control channel


@dataclass(frozen=True)
class Component:
    """A resolved component with its paths and installed state."""

    index: int
    name: str
    description: str
    executable_path: Path
    config_path: Path
    installed: bool
    socket_path: Optional[Path] = None
    reload_command: Optional[str] = None
    pid_path: Optional[Path] = None

    def record(self) -> str:
        return f"{self.index}:{self.name}:{self.description}"


DEFAULT_COMPONENTS: Tuple[ComponentInfo, ...] = (
    ComponentInfo("gpg", "OpenPGP"),
    ComponentInfo("gpgsm", "S/MIME"),
    ComponentInfo(
        "gpg-agent",
        "Private Keys",
        socket_name="S.gpg-agent",
        reload_command="RELOADAGENT",
    ),
    ComponentInfo(
        "scdaemon",
        "Smartcards",
        socket_name="S.scdaemon",
        reload_command="RESTART",
    ),
    ComponentInfo(
        "dirmngr",
        "Network",
        socket_name="S.dirmngr",
        reload_command="RELOADDIRMNGR",
    ),
)


def is_runnable(path: Path) -> bool:
    """True when ``path`` is a regular file the current user may execute."""
    return path.is_file() and os.access(path, os.X_OK)


class ComponentRegistry:
    """Ordered, immutable collection of components."""

    def __init__(
        self,
        settings: EngineSettings,
        table: Iterable[ComponentInfo] = DEFAULT_COMPONENTS,
    ):
        components: List[Component] = []
        seen = set()
        for index, info in enumerate(table):
            if info.name in seen:
                raise ValueError(f"duplicate component name: {info.name}")
            seen.add(info.name)
            executable = settings.bindir / (info.executable or info.name)
            components.append(
                Component(
                    index=index,
                    name=info.name,
                    description=info.description,
                    executable_path=executable,
                    config_path=settings.homedir / (info.config_name or f"{info.name}.conf"),
                    installed=is_runnable(executable),
                    socket_path=settings.homedir / info.socket_name if info.socket_name else None,
                    reload_command=info.reload_command,
                    pid_path=settings.homedir / f"{info.name}.pid",
                )
            )
        self._components: Tuple[Component, ...] = tuple(components)

    def list(self) -> Sequence[Component]:
        return self._components

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self):
        return iter(self._components)

    def find(self, name: str) -> int:
        """Return the index of the component called ``name``."""
        for component in self._components:
            if component.name == name:
                return component.index
        raise NotFoundError(f"Component not found: {name}")

    def get(self, index: int) -> Component:
        if not 0 <= index < len(self._components):
            raise NotFoundError(f"Component index out of range: {index}")
        return self._components[index]

    def lookup(self, name: str) -> Optional[Component]:
        """Like ``find`` but returns None for unknown names."""
        for component in self._components:
            if component.name == name:
                return component
        return None

"""
Capability providers: what a component reports about its own options.

The engine never spawns processes directly; it asks a ``CapabilityProvider``.
The default provider runs ``<executable> --gpgconf-list`` with a timeout and
reads ``name:flags:default`` records from its output. Tests inject a
``StaticCapabilityProvider`` instead.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Protocol

from keyconf.core.config.schema import OptionFlag, REPORTABLE_FLAGS
from keyconf.core.registry import Component
from keyconf.core.utils.escaping import percent_unescape
from keyconf.core.utils.logger import log_debug
from keyconf.utils.error_handling import ComponentUnavailableError


@dataclass(frozen=True)
class ReportedOption:
    """Flags and default a component reports for one of its options."""

    flags: OptionFlag = OptionFlag.NONE
    default: Optional[str] = None


class CapabilityProvider(Protocol):
    def query(self, component: Component, timeout: float) -> Dict[str, ReportedOption]:
        """Return reported options keyed by name, or raise ComponentUnavailableError."""
        ...


def parse_gpgconf_list(lines: Iterable[str]) -> Dict[str, ReportedOption]:
    """
    Parse ``--gpgconf-list`` output.

    Each record is ``name:flags[:default]``. String defaults carry a leading
    double quote and are percent-escaped. Malformed records are skipped.
    """
    reported: Dict[str, ReportedOption] = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split(":")
        name = fields[0]
        flags = OptionFlag.NONE
        try:
            if len(fields) > 1 and fields[1]:
                flags = OptionFlag(int(fields[1]) & REPORTABLE_FLAGS)
        except ValueError:
            log_debug("capabilities", f"skipping malformed record: {line}")
            continue
        default = None
        if len(fields) > 2 and fields[2]:
            default = percent_unescape(fields[2].lstrip('"'))
        reported[name] = ReportedOption(flags, default)
    return reported


class ExecutableCapabilityProvider:
    """Query the installed component executable."""

    def __init__(self, list_argument: str = "--gpgconf-list"):
        self.list_argument = list_argument

    def query(self, component: Component, timeout: float) -> Dict[str, ReportedOption]:
        command = [str(component.executable_path), self.list_argument]
        log_debug("capabilities", f"running {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ComponentUnavailableError(
                f"{component.name}: no answer from {component.executable_path} within {timeout}s"
            ) from e
        except OSError as e:
            raise ComponentUnavailableError(
                f"{component.name}: cannot run {component.executable_path}: {e.strerror or e}"
            ) from e

        if result.returncode != 0:
            raise ComponentUnavailableError(
                f"{component.name}: {component.executable_path} exited with status {result.returncode}"
            )
        return parse_gpgconf_list(result.stdout.splitlines())


class StaticCapabilityProvider:
    """In-memory provider; components named in ``unavailable`` fail to answer."""

    def __init__(
        self,
        reports: Mapping[str, Mapping[str, ReportedOption]] | None = None,
        unavailable: Iterable[str] = (),
    ):
        self.reports = dict(reports or {})
        self.unavailable = set(unavailable)
        self.queried: list[str] = []

    def query(self, component: Component, timeout: float) -> Dict[str, ReportedOption]:
        self.queried.append(component.name)
        if component.name in self.unavailable:
            raise ComponentUnavailableError(f"{component.name}: component not available")
        return dict(self.reports.get(component.name, {}))

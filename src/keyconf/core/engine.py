"""
Configuration engine facade.

``ConfigEngine`` exposes the operations a front end needs: list components,
list options, change options, apply defaults and check the configuration.
Every operation returns an ``OperationResult`` with the records to print,
the issues found and the exit code to use; none of them exits the process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

from keyconf.core.capabilities import CapabilityProvider, ExecutableCapabilityProvider
from keyconf.core.config.changes import apply_changes
from keyconf.core.config.options import ComponentOptions, OptionSchemaProvider
from keyconf.core.config.schema import DEFAULT_SCHEMAS, ComponentSchema, OptionSpec, OptionType
from keyconf.core.config.validation import check_config, load_global_rules
from keyconf.core.registry import DEFAULT_COMPONENTS, ComponentInfo, ComponentRegistry
from keyconf.core.runtime import RuntimeNotifier
from keyconf.core.settings import EngineSettings
from keyconf.core.utils.escaping import percent_escape
from keyconf.core.utils.logger import log_info
from keyconf.utils.error_handling import (
    EXIT_FAILURE,
    EXIT_OK,
    Issue,
    ValidationError,
    report_issue,
)


@dataclass
class OperationResult:
    """Records to print plus the problems found while producing them."""

    records: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    written: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(issue.is_error for issue in self.issues)

    @property
    def exit_code(self) -> int:
        return EXIT_FAILURE if self.failed else EXIT_OK


def format_value(spec: OptionSpec, values) -> str:
    if spec.type is OptionType.FLAG:
        return "1"
    if spec.is_list:
        return ",".join(percent_escape(v, ",") for v in values)
    return percent_escape(values[0]) if values else ""


def option_record(model: ComponentOptions, spec: OptionSpec) -> str:
    """``name:flags:level:description:type:argName:default:value`` for one option."""
    if spec.type is OptionType.ALIAS:
        arg_name, default, current = percent_escape(spec.alias_of), "", ""
    else:
        arg_name = percent_escape(spec.arg_name)
        default = format_value(spec, spec.default_items) if spec.default is not None else ""
        value = model.value(spec.name)
        current = format_value(spec, value.values) if value.is_explicit else ""
    return ":".join(
        (
            spec.name,
            str(int(model.flags_for(spec))),
            spec.level.label,
            percent_escape(spec.description),
            spec.type.value,
            arg_name,
            default,
            current,
        )
    )


class ConfigEngine:
    """Component and option configuration engine for one invocation."""

    def __init__(
        self,
        settings: EngineSettings,
        components: Iterable[ComponentInfo] = DEFAULT_COMPONENTS,
        schemas: Mapping[str, ComponentSchema] = DEFAULT_SCHEMAS,
        capabilities: Optional[CapabilityProvider] = None,
        notifier: Optional[RuntimeNotifier] = None,
    ):
        self.settings = settings
        self.registry = ComponentRegistry(settings, components)
        self.provider = OptionSchemaProvider(
            self.registry,
            settings,
            capabilities or ExecutableCapabilityProvider(),
            schemas,
        )
        self.notifier = notifier or RuntimeNotifier(settings.notify_timeout)

    def find_component(self, name: str) -> int:
        return self.registry.find(name)

    def list_components(self) -> OperationResult:
        return OperationResult(records=[c.record() for c in self.registry.list()])

    def _load(self, index: int) -> ComponentOptions:
        """Retrieve one component with global ``[no-change]`` locks applied."""
        model = self.provider.retrieve_one(index)
        rules = load_global_rules(self.provider, None)
        if rules.failed:
            for issue in rules.issues:
                report_issue(issue)
            raise ValidationError(f"errors in global rules file {rules.path}")
        rules.lock(model)
        return model

    def list_options(self, index: int) -> OperationResult:
        model = self._load(index)
        for issue in model.issues:
            report_issue(issue)
        return OperationResult(records=[option_record(model, spec) for spec in model.schema])

    def change_options(self, index: int, lines: Iterable[str]) -> OperationResult:
        """
        Apply a change batch to one component.

        Accepted changes are written even when other lines of the batch
        failed; dry-run suppresses the write entirely.
        """
        model = self._load(index)
        report = apply_changes(model, lines)
        for issue in report.issues:
            report_issue(issue)

        result = OperationResult(issues=list(report.issues))
        if model.save(dry_run=self.settings.dry_run):
            result.written.append(model.name)
            log_info(model.name, f"changed: {', '.join(model.changed)}")
            if self.settings.runtime and not self.settings.dry_run:
                self.notifier.notify_reload(model.component)
        return result

    def _check(self, filename: Optional[Path], apply_defaults: bool) -> OperationResult:
        report = check_config(self.provider, filename, apply_defaults=apply_defaults)
        result = OperationResult(issues=report.issues, written=report.written)
        if apply_defaults and self.settings.runtime and not self.settings.dry_run:
            for name in report.written:
                self.notifier.notify_reload(self.registry.lookup(name))
        return result

    def apply_defaults(self) -> OperationResult:
        return self._check(None, apply_defaults=True)

    def check_config(self, filename: Optional[Path] = None) -> OperationResult:
        return self._check(filename, apply_defaults=False)

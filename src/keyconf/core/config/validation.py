"""Cross-component configuration checks and global default application."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from keyconf.core.config.global_rules import RuleSet, load_rules
from keyconf.core.config.options import ComponentOptions, OptionSchemaProvider
from keyconf.core.config.schema import OptionValue, ValueState
from keyconf.core.utils.logger import log_info
from keyconf.utils.error_handling import ConfigFileError, Issue, report_issue


@dataclass
class CheckReport:
    """Aggregate outcome of checking (and optionally defaulting) every component."""

    issues: List[Issue] = field(default_factory=list)
    written: List[str] = field(default_factory=list)
    checked: List[str] = field(default_factory=list)

    @property
    def errors(self) -> List[Issue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> List[Issue]:
        return [issue for issue in self.issues if not issue.is_error]

    @property
    def error_count(self) -> int:
        return len(self.errors)


def missing_required(model: ComponentOptions) -> List[Issue]:
    return [
        Issue(model.name, "required option is not set", option=spec.name)
        for spec in model.schema.value_options()
        if spec.required and model.value(spec.name).state is ValueState.UNSET
    ]


def force_defaults(model: ComponentOptions) -> List[str]:
    """Pin the default of every unset force-default option; returns their names."""
    forced = []
    for spec in model.schema.value_options():
        if spec.force_default and spec.default is not None and model.value(spec.name).state is ValueState.UNSET:
            model.set_value(spec.name, OptionValue.explicit(spec.default_items))
            forced.append(spec.name)
    return forced


def load_global_rules(provider: OptionSchemaProvider, filename: Optional[Path]) -> RuleSet:
    """Rules from ``filename`` if given, else from the default file if present."""
    path = Path(filename) if filename is not None else provider.settings.global_rules_path
    return load_rules(path, provider.registry, provider.schemas, required=filename is not None)


def check_config(
    provider: OptionSchemaProvider,
    filename: Optional[Path] = None,
    apply_defaults: bool = False,
) -> CheckReport:
    """
    Check every registered component, best-effort.

    Problems are collected into the report instead of stopping the loop;
    the caller decides the outcome from ``error_count``.
    """
    report = CheckReport()
    dry_run = provider.settings.dry_run

    try:
        rules = load_global_rules(provider, filename)
    except ConfigFileError as e:
        report.issues.append(Issue(Path(e.path).name, e.reason))
        rules = RuleSet()
    report.issues.extend(rules.issues)

    retrieval = provider.retrieve(None)
    report.issues.extend(retrieval.issues)

    for index in sorted(retrieval.models):
        model = retrieval.models[index]
        report.checked.append(model.name)
        rules.lock(model)
        report.issues.extend(model.issues)

        if apply_defaults:
            rules.apply(model)
            forced = force_defaults(model)
            if forced:
                log_info(model.name, f"forcing defaults for {', '.join(forced)}")
            try:
                if model.save(dry_run=dry_run):
                    report.written.append(model.name)
            except ConfigFileError as e:
                report.issues.append(Issue(model.name, str(e)))

        report.issues.extend(missing_required(model))

    for issue in report.issues:
        report_issue(issue)
    log_info(
        "check",
        f"{len(report.checked)} components checked, "
        f"{report.error_count} errors, {len(report.warnings)} warnings",
    )
    return report

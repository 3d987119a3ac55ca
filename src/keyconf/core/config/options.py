"""
Option retrieval: schema derivation plus current values from disk.

``OptionSchemaProvider.retrieve`` builds one ``ComponentOptions`` model per
selected component. With a single target every failure propagates; with
``None`` (all components) failures are recorded per component and the rest
are still retrieved.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Set

from keyconf.core.capabilities import CapabilityProvider, ReportedOption
from keyconf.core.config.parser import ParsedConfig, read_config, serialize
from keyconf.core.config.persistence import save_config_atomic
from keyconf.core.config.schema import (
    DEFAULT_SCHEMAS,
    ComponentSchema,
    OptionFlag,
    OptionSpec,
    OptionType,
    OptionValue,
)
from keyconf.core.registry import Component, ComponentRegistry
from keyconf.core.settings import EngineSettings
from keyconf.core.utils.logger import log_debug, log_option_change, log_warning
from keyconf.utils.error_handling import Issue, KeyconfError, issue_from_exception


def merge_schema(schema: ComponentSchema, reported: Mapping[str, ReportedOption]) -> ComponentSchema:
    """Overlay flags and defaults reported by the component onto the static table."""
    merged = []
    for spec in schema:
        info = reported.get(spec.name)
        if info is None or spec.type is OptionType.ALIAS:
            merged.append(spec)
            continue
        default = info.default if info.default is not None else spec.default
        merged.append(
            replace(spec, extra_flags=spec.extra_flags | (info.flags & ~OptionFlag.DEFAULT), default=default)
        )
    for name in reported:
        if name not in schema:
            log_debug(schema.component, f"ignoring option {name} reported by component")
    return ComponentSchema(schema.component, tuple(merged))


@dataclass
class ComponentOptions:
    """In-memory option model of one component."""

    component: Component
    schema: ComponentSchema
    parsed: ParsedConfig
    values: Dict[str, OptionValue] = field(default_factory=dict)
    locked: Set[str] = field(default_factory=set)

    def __post_init__(self):
        if not self.values:
            self.values = {
                spec.name: self.parsed.value_of(spec.name) for spec in self.schema.value_options()
            }

    @property
    def name(self) -> str:
        return self.component.name

    def resolve(self, name: str) -> Optional[OptionSpec]:
        return self.schema.resolve(name)

    def value(self, name: str) -> OptionValue:
        return self.values.get(name, OptionValue.unset())

    def set_value(self, name: str, value: OptionValue) -> None:
        old = self.value(name)
        if old != value:
            log_option_change(self.name, name, _describe(old), _describe(value))
        self.values[name] = value

    def lock(self, name: str) -> None:
        self.locked.add(name)

    def flags_for(self, spec: OptionSpec) -> OptionFlag:
        flags = spec.flags
        if spec.name in self.locked:
            flags |= OptionFlag.NO_CHANGE
        return flags

    def is_changeable(self, spec: OptionSpec) -> bool:
        return not (self.flags_for(spec) & OptionFlag.NO_CHANGE)

    @property
    def changed(self) -> List[str]:
        return [name for name, value in self.values.items() if value != self.parsed.value_of(name)]

    @property
    def issues(self) -> List[Issue]:
        return list(self.parsed.issues)

    def render(self) -> str:
        return serialize(self.parsed, self.schema, self.values)

    def save(self, dry_run: bool = False) -> bool:
        """
        Write the model back to the component's config file.

        Returns True when the on-disk file was (or, with ``dry_run``, would
        have been) modified.
        """
        text = self.render()
        if text == self.parsed.text:
            log_debug(self.name, "no changes to write")
            return False
        if dry_run:
            log_debug(self.name, f"dry run, not writing {self.component.config_path}")
            return True
        save_config_atomic(text, self.component.config_path)
        return True


def _describe(value: OptionValue) -> str:
    if value.is_explicit:
        return ",".join(value.values) or "set"
    return value.state.value


@dataclass
class RetrievalResult:
    """Models and per-component failures of one retrieval."""

    models: Dict[int, ComponentOptions] = field(default_factory=dict)
    failures: Dict[int, KeyconfError] = field(default_factory=dict)
    names: Dict[int, str] = field(default_factory=dict)

    @property
    def issues(self) -> List[Issue]:
        return [issue_from_exception(self.names[i], e) for i, e in sorted(self.failures.items())]


class OptionSchemaProvider:
    """Derives option schemas and loads current values for components."""

    def __init__(
        self,
        registry: ComponentRegistry,
        settings: EngineSettings,
        capabilities: CapabilityProvider,
        schemas: Mapping[str, ComponentSchema] = DEFAULT_SCHEMAS,
    ):
        self.registry = registry
        self.settings = settings
        self.capabilities = capabilities
        self.schemas = schemas

    def schema_for(self, component: Component) -> ComponentSchema:
        reported = self.capabilities.query(component, self.settings.query_timeout)
        static = self.schemas.get(component.name) or ComponentSchema(component.name, ())
        return merge_schema(static, reported)

    def retrieve_one(self, index: int) -> ComponentOptions:
        component = self.registry.get(index)
        schema = self.schema_for(component)
        parsed = read_config(component.config_path, schema)
        return ComponentOptions(component, schema, parsed)

    def retrieve(self, target: Optional[int] = None) -> RetrievalResult:
        """Retrieve one component (errors propagate) or all of them (errors recorded)."""
        result = RetrievalResult()
        if target is not None:
            model = self.retrieve_one(target)
            result.models[target] = model
            result.names[target] = model.name
            return result

        for component in self.registry:
            result.names[component.index] = component.name
            try:
                result.models[component.index] = self.retrieve_one(component.index)
            except KeyconfError as e:
                log_warning(component.name, f"skipping component: {e}")
                result.failures[component.index] = e
        return result

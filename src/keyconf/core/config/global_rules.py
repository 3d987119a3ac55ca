"""
Global rules file (``keyconf.conf`` in the configuration root).

Site-wide rules, one per line::

    # component  option            flag         value
    gpg-agent    min-passphrase-len [change]    12
    dirmngr      use-tor            [no-change]
    gpg          trust-model        [default]

``[change]`` (the default when no flag is given) sets the option to the
value, ``[default]`` resets it and ``[no-change]`` forbids changing it
through the change protocol. ``[change]``/``[default]`` take effect when
defaults are applied; ``[no-change]`` locks are honoured by every operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional

from keyconf.core.config.changes import explicit_value
from keyconf.core.config.options import ComponentOptions
from keyconf.core.config.schema import ComponentSchema, OptionType, OptionValue
from keyconf.core.registry import ComponentRegistry
from keyconf.core.utils.logger import log_debug, log_info
from keyconf.utils.error_handling import ConfigFileError, Issue


class RuleFlag(Enum):
    CHANGE = "change"
    DEFAULT = "default"
    NO_CHANGE = "no-change"


@dataclass(frozen=True)
class GlobalRule:
    line: int
    component: str
    option: str
    flag: RuleFlag
    value: Optional[str] = None
    resolved: Optional[OptionValue] = None


@dataclass
class RuleSet:
    """Valid rules of a rules file plus the problems found in it."""

    path: Optional[Path] = None
    rules: List[GlobalRule] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(issue.is_error for issue in self.issues)

    def for_component(self, name: str) -> List[GlobalRule]:
        return [rule for rule in self.rules if rule.component == name]

    def lock(self, model: ComponentOptions) -> None:
        """Mark options with a ``[no-change]`` rule as unchangeable."""
        for rule in self.for_component(model.name):
            if rule.flag is RuleFlag.NO_CHANGE:
                model.lock(model.resolve(rule.option).name)

    def apply(self, model: ComponentOptions) -> None:
        """Apply ``[change]`` and ``[default]`` rules to ``model``."""
        for rule in self.for_component(model.name):
            spec = model.resolve(rule.option)
            if rule.flag is RuleFlag.CHANGE:
                model.set_value(spec.name, rule.resolved)
            elif rule.flag is RuleFlag.DEFAULT:
                model.set_value(spec.name, OptionValue.use_default())


def _split_rule(content: str):
    parts = content.split(None, 2)
    if len(parts) < 2:
        return None
    component, option = parts[0], parts[1]
    rest = parts[2].strip() if len(parts) > 2 else ""
    flag_text = None
    if rest.startswith("["):
        end = rest.find("]")
        if end < 0:
            return component, option, rest[1:], None
        flag_text = rest[1:end].strip()
        rest = rest[end + 1:].strip()
    return component, option, flag_text, rest or None


def parse_rules(
    text: str,
    registry: ComponentRegistry,
    schemas: Mapping[str, ComponentSchema],
    path: Optional[Path] = None,
) -> RuleSet:
    """Parse and check rules text; invalid rules become issues."""
    label = path.name if path else "rules"
    ruleset = RuleSet(path=path)

    for number, raw in enumerate(text.split("\n"), start=1):
        content = raw.strip()
        if not content or content.startswith("#"):
            continue

        def issue(message: str, option: Optional[str] = None) -> None:
            ruleset.issues.append(Issue(label, message, option=option, line=number))

        split = _split_rule(content)
        if split is None:
            issue("expected <component> <option> [flag] [value]")
            continue
        component, option, flag_text, value = split

        try:
            flag = RuleFlag(flag_text) if flag_text is not None else RuleFlag.CHANGE
        except ValueError:
            issue(f"invalid flag '[{flag_text}]'", option)
            continue
        if registry.lookup(component) is None:
            issue(f"unknown component '{component}'", option)
            continue
        spec = schemas.get(component, ComponentSchema(component, ())).resolve(option)
        if spec is None:
            issue(f"unknown option for component '{component}'", option)
            continue

        resolved = None
        if flag is RuleFlag.CHANGE:
            if spec.type is OptionType.FLAG:
                if value:
                    issue("flag option does not take a value", option)
                    continue
                resolved = OptionValue.explicit()
            elif value is None:
                issue("missing value for [change] rule", option)
                continue
            else:
                try:
                    resolved = explicit_value(spec, value)
                except ValueError as e:
                    issue(str(e), option)
                    continue
        elif value is not None:
            issue(f"[{flag.value}] rule does not take a value", option)
            continue

        ruleset.rules.append(GlobalRule(number, component, option, flag, value, resolved))

    log_debug("rules", f"{label}: {len(ruleset.rules)} rules, {len(ruleset.issues)} problems")
    return ruleset


def load_rules(
    path: Path,
    registry: ComponentRegistry,
    schemas: Mapping[str, ComponentSchema],
    required: bool = False,
) -> RuleSet:
    """
    Load a rules file.

    A missing file yields an empty rule set unless ``required`` is set (the
    file was named explicitly), in which case ConfigFileError is raised.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        if required:
            raise ConfigFileError(path, "no such file") from e
        return RuleSet(path=path)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(path, f"cannot read: {e}") from e
    log_info("rules", f"processing {path}")
    return parse_rules(text, registry, schemas, path)

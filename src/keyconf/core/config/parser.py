"""
Line-oriented config file parser and serializer.

A component config file is kept as the ordered list of its lines so that a
rewrite only touches the directives of options that actually changed.
Everything else (comments, blank lines, directives keyconf does not know)
is written back byte for byte at its original position.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from keyconf.core.config.schema import ComponentSchema, OptionSpec, OptionType, OptionValue
from keyconf.core.utils.logger import log_debug
from keyconf.utils.error_handling import ConfigFileError, Issue, Severity


class LineKind(Enum):
    DIRECTIVE = "directive"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class ConfigLine:
    """One physical line, including its line terminator."""

    raw: str
    kind: LineKind
    number: int
    name: Optional[str] = None
    value: Optional[str] = None
    unknown: bool = False

    @property
    def is_directive(self) -> bool:
        return self.kind is LineKind.DIRECTIVE


@dataclass
class ParsedConfig:
    """A parsed config file: its lines plus the option values they set."""

    component: str
    lines: List[ConfigLine] = field(default_factory=list)
    values: Dict[str, OptionValue] = field(default_factory=dict)
    issues: List[Issue] = field(default_factory=list)
    newline: str = "\n"
    exists: bool = True

    @property
    def text(self) -> str:
        return "".join(line.raw for line in self.lines)

    @property
    def unknown(self) -> List[ConfigLine]:
        return [line for line in self.lines if line.unknown]

    def value_of(self, name: str) -> OptionValue:
        return self.values.get(name, OptionValue.unset())


_LINE = re.compile(r"[^\n]*\n|[^\n]+\Z")


def _split_directive(content: str):
    parts = content.split(None, 1)
    name = parts[0]
    value = parts[1].strip() if len(parts) > 1 else None
    return name, value


def parse_text(text: str, schema: ComponentSchema) -> ParsedConfig:
    """Parse config file text against ``schema``."""
    parsed = ParsedConfig(component=schema.component)
    # only \n ends a line; \x0c, \x1c, \u2028 and the like are ordinary text
    raw_lines = _LINE.findall(text)
    if raw_lines and raw_lines[0].endswith("\r\n"):
        parsed.newline = "\r\n"

    for number, raw in enumerate(raw_lines, start=1):
        content = raw.strip()
        if not content or content.startswith("#"):
            parsed.lines.append(ConfigLine(raw, LineKind.PASSTHROUGH, number))
            continue

        name, value = _split_directive(content)
        spec = schema.resolve(name)
        parsed.lines.append(
            ConfigLine(raw, LineKind.DIRECTIVE, number, name, value, unknown=spec is None)
        )
        if spec is None:
            parsed.issues.append(
                Issue(schema.component, "unknown option", option=name, line=number,
                      severity=Severity.WARNING)
            )
            continue

        try:
            items = spec.check_item(value)
        except ValueError as e:
            parsed.issues.append(Issue(schema.component, str(e), option=name, line=number))
            continue

        if spec.is_list:
            previous = parsed.values.get(spec.name)
            prior = previous.values if previous is not None else ()
            parsed.values[spec.name] = OptionValue.explicit(prior + items)
        else:
            # last occurrence wins
            parsed.values[spec.name] = OptionValue.explicit(items)

    return parsed


def read_config(path: Path, schema: ComponentSchema) -> ParsedConfig:
    """Read and parse ``path``; a missing file parses as empty."""
    try:
        # bytes that are not UTF-8 survive as surrogates and are written back as-is
        with open(path, encoding="utf-8", errors="surrogateescape", newline="") as f:
            text = f.read()
    except FileNotFoundError:
        log_debug("parser", f"no config file at {path}, all options unset")
        parsed = parse_text("", schema)
        parsed.exists = False
        return parsed
    except OSError as e:
        raise ConfigFileError(path, f"cannot read: {e}") from e
    return parse_text(text, schema)


def render_option(spec: OptionSpec, value: OptionValue, newline: str = "\n") -> List[str]:
    """Directive lines expressing ``value``; empty unless the value is explicit."""
    if not value.is_explicit:
        return []
    if spec.type is OptionType.FLAG:
        return [f"{spec.name}{newline}"]
    return [f"{spec.name} {item}{newline}" for item in value.values]


def _terminate(out: List[str], newline: str) -> None:
    if out and not out[-1].endswith(("\n", "\r")):
        out[-1] += newline


def serialize(
    parsed: ParsedConfig,
    schema: ComponentSchema,
    current: Mapping[str, OptionValue],
) -> str:
    """
    Produce file text for ``current`` values, editing ``parsed`` minimally.

    For each option whose value differs from what was parsed:
    - existing lines are rewritten in place (lists at their first
      occurrence, scalars at the effective last one) and the other
      occurrences dropped
    - options without a line are appended after the last directive
    - options that are no longer explicit lose all their lines
    """
    replacements: Dict[int, List[str]] = {}
    appended: List[str] = []

    for spec in schema.value_options():
        new_value = current.get(spec.name, OptionValue.unset())
        if new_value == parsed.value_of(spec.name):
            continue
        names = set(schema.names_for(spec.name))
        positions = [
            i for i, line in enumerate(parsed.lines)
            if line.is_directive and not line.unknown and line.name in names
        ]
        rendered = render_option(spec, new_value, parsed.newline)
        if not positions:
            appended.extend(rendered)
            continue
        anchor = positions[0] if spec.is_list else positions[-1]
        for i in positions:
            replacements[i] = rendered if i == anchor else []

    directive_positions = [i for i, line in enumerate(parsed.lines) if line.is_directive]
    insert_after = directive_positions[-1] if directive_positions else len(parsed.lines) - 1

    out: List[str] = []
    if appended and insert_after < 0:
        out.extend(appended)
    for i, line in enumerate(parsed.lines):
        out.extend(replacements.get(i, [line.raw]))
        if appended and i == insert_after:
            _terminate(out, parsed.newline)
            out.extend(appended)
    return "".join(out)


"""
Change protocol interpreter.

Each input line has the form ``<option>:<flags>:<value>``. ``flags`` is a
decimal bitset (16 selects the default, 128 leaves the option alone) or one
of the names ``explicit``, ``use-default`` and ``no-change``; an empty field
means explicit. ``<option>:<flags>`` without a second colon carries no value
at all, which for flag options means "unset". Values are percent-escaped.

Lines are independent: a bad line is reported and skipped while the changes
of the other lines still apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from keyconf.core.config.options import ComponentOptions
from keyconf.core.config.schema import OptionSpec, OptionType, OptionValue
from keyconf.core.utils.escaping import percent_unescape
from keyconf.utils.error_handling import Issue

FLAG_DEFAULT = 16
FLAG_NO_CHANGE = 128


class ChangeAction(Enum):
    EXPLICIT = "explicit"
    USE_DEFAULT = "use-default"
    NO_CHANGE = "no-change"


@dataclass(frozen=True)
class ChangeRequest:
    name: str
    action: ChangeAction
    value: Optional[str]
    line: int = 0


@dataclass
class ChangeReport:
    """Outcome of applying one batch of change requests."""

    applied: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(issue.is_error for issue in self.issues)


def parse_flags(text: str) -> ChangeAction:
    text = text.strip()
    if not text:
        return ChangeAction.EXPLICIT
    if text.isdigit():
        bits = int(text)
        if bits & FLAG_NO_CHANGE:
            return ChangeAction.NO_CHANGE
        if bits & FLAG_DEFAULT:
            return ChangeAction.USE_DEFAULT
        return ChangeAction.EXPLICIT
    try:
        return ChangeAction(text.lower())
    except ValueError:
        raise ValueError(f"invalid flags '{text}'") from None


def parse_change_line(text: str, number: int = 0) -> ChangeRequest:
    """Split one protocol line; raises ValueError when it is malformed."""
    text = text.rstrip("\r\n")
    fields = text.split(":", 2)
    if len(fields) < 2 or not fields[0].strip():
        raise ValueError("expected <option>:<flags>:<value>")
    value = fields[2] if len(fields) == 3 else None
    return ChangeRequest(fields[0].strip(), parse_flags(fields[1]), value, number)


def explicit_value(spec: OptionSpec, text: Optional[str]) -> OptionValue:
    """
    Type-check change-protocol text for ``spec``.

    Raises ValueError with a user-facing message on a mismatch.
    """
    if spec.type is OptionType.FLAG:
        if text is None:
            return OptionValue.unset()
        if text != "":
            raise ValueError("flag option takes an empty value")
        return OptionValue.explicit()
    if not text:
        return OptionValue.unset()
    if spec.type is OptionType.LIST:
        items = [percent_unescape(item) for item in text.split(spec.delimiter)]
        values = []
        for item in items:
            values.extend(spec.check_item(item))
        return OptionValue.explicit(values)
    value = percent_unescape(text)
    if spec.type is OptionType.STRING and value.startswith('"'):
        # gpgconf clients mark string values with a leading quote
        value = value[1:]
    return OptionValue.explicit(spec.check_item(value))


def apply_request(model: ComponentOptions, request: ChangeRequest) -> Optional[Issue]:
    """Apply one request to ``model``; returns an issue instead of raising."""

    def issue(message: str) -> Issue:
        return Issue(model.name, message, option=request.name, line=request.line)

    spec = model.resolve(request.name)
    if spec is None:
        return issue("unknown option")
    if request.action is ChangeAction.NO_CHANGE:
        return None
    if not model.is_changeable(spec):
        return issue("option may not be changed")

    if request.action is ChangeAction.USE_DEFAULT:
        if request.value:
            return issue("a value is not allowed together with the default flag")
        model.set_value(spec.name, OptionValue.use_default())
        return None

    try:
        value = explicit_value(spec, request.value)
    except ValueError as e:
        return issue(str(e))
    model.set_value(spec.name, value)
    return None


def apply_changes(model: ComponentOptions, lines: Iterable[str]) -> ChangeReport:
    """Apply every line of a change batch, collecting per-line issues."""
    report = ChangeReport()
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            request = parse_change_line(line, number)
        except ValueError as e:
            report.issues.append(Issue(model.name, str(e), line=number))
            continue
        problem = apply_request(model, request)
        if problem is not None:
            report.issues.append(problem)
        elif request.action is not ChangeAction.NO_CHANGE:
            report.applied.append(model.resolve(request.name).name)
    return report

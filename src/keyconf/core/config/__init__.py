"""
Option schemas, config file handling, change protocol and validation.

Only the leaf modules are re-exported here; ``options``, ``changes``,
``global_rules`` and ``validation`` depend on ``keyconf.core.capabilities``
and are imported from their own modules.
"""

from .schema import (
    ComponentSchema,
    Level,
    OptionFlag,
    OptionSpec,
    OptionType,
    OptionValue,
    ValueState,
)
from .parser import ConfigLine, LineKind, ParsedConfig, parse_text, read_config, serialize
from .persistence import save_config_atomic

__all__ = [
    "ComponentSchema",
    "ConfigLine",
    "Level",
    "LineKind",
    "OptionFlag",
    "OptionSpec",
    "OptionType",
    "OptionValue",
    "ParsedConfig",
    "ValueState",
    "parse_text",
    "read_config",
    "save_config_atomic",
    "serialize",
]

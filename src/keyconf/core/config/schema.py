"""Option schema: typed descriptors for every option a component understands."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple


class OptionType(Enum):
    FLAG = "flag"
    STRING = "string"
    INTEGER = "integer"
    LIST = "list"
    ALIAS = "alias"


class Level(IntEnum):
    BASIC = 0
    ADVANCED = 1
    EXPERT = 2
    INVISIBLE = 3

    @property
    def label(self) -> str:
        return self.name.lower()


class OptionFlag(IntFlag):
    NONE = 0
    ARG_REQUIRED = 2
    LIST = 4
    RUNTIME = 8
    DEFAULT = 16
    FORCE_DEFAULT = 32
    NO_CHANGE = 128


# Flags a component may report about itself via --gpgconf-list.
REPORTABLE_FLAGS = OptionFlag.RUNTIME | OptionFlag.DEFAULT | OptionFlag.NO_CHANGE

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class OptionSpec:
    """Metadata describing one option of a component."""

    name: str
    type: OptionType
    level: Level = Level.BASIC
    description: str = ""
    default: Optional[str] = None
    arg_name: str = ""
    extra_flags: OptionFlag = OptionFlag.NONE
    delimiter: str = ","
    alias_of: Optional[str] = None
    required: bool = False

    @property
    def flags(self) -> OptionFlag:
        flags = self.extra_flags
        if self.default is not None:
            flags |= OptionFlag.DEFAULT
        if self.type is OptionType.LIST:
            flags |= OptionFlag.LIST
        if self.type in (OptionType.STRING, OptionType.INTEGER, OptionType.LIST):
            flags |= OptionFlag.ARG_REQUIRED
        return flags

    @property
    def is_list(self) -> bool:
        return self.type is OptionType.LIST

    @property
    def default_items(self) -> Tuple[str, ...]:
        """The default as stored values; a list default holds one item per delimiter."""
        if self.default is None:
            return ()
        if self.is_list:
            return tuple(self.default.split(self.delimiter))
        return (self.default,)

    @property
    def no_change(self) -> bool:
        return bool(self.extra_flags & OptionFlag.NO_CHANGE)

    @property
    def force_default(self) -> bool:
        return bool(self.extra_flags & OptionFlag.FORCE_DEFAULT)

    def check_item(self, text: Optional[str]) -> Tuple[str, ...]:
        """
        Validate the value of a single directive for this option.

        Returns the stored value tuple; raises ValueError with a
        user-facing message on a type mismatch.
        """
        if self.type is OptionType.FLAG:
            if text:
                raise ValueError("option does not take an argument")
            return ()
        if text is None or text == "":
            raise ValueError("option requires an argument")
        if self.type is OptionType.INTEGER and not _INTEGER_RE.match(text):
            raise ValueError(f"invalid integer value '{text}'")
        return (text,)


class ValueState(Enum):
    EXPLICIT = "explicit"
    DEFAULT = "default"
    UNSET = "unset"


@dataclass(frozen=True)
class OptionValue:
    """Tri-state current value of an option."""

    state: ValueState = ValueState.UNSET
    values: Tuple[str, ...] = ()

    @classmethod
    def explicit(cls, values: Iterable[str] = ()) -> "OptionValue":
        return cls(ValueState.EXPLICIT, tuple(values))

    @classmethod
    def use_default(cls) -> "OptionValue":
        return cls(ValueState.DEFAULT)

    @classmethod
    def unset(cls) -> "OptionValue":
        return cls(ValueState.UNSET)

    @property
    def is_explicit(self) -> bool:
        return self.state is ValueState.EXPLICIT


@dataclass(frozen=True)
class ComponentSchema:
    """Ordered, immutable option table of one component."""

    component: str
    options: Tuple[OptionSpec, ...]
    _by_name: Dict[str, OptionSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        by_name: Dict[str, OptionSpec] = {}
        for spec in self.options:
            if spec.name in by_name:
                raise ValueError(f"{self.component}: duplicate option {spec.name}")
            by_name[spec.name] = spec
        for spec in self.options:
            if spec.type is OptionType.ALIAS and spec.alias_of not in by_name:
                raise ValueError(
                    f"{self.component}: alias {spec.name} targets unknown option {spec.alias_of}"
                )
        object.__setattr__(self, "_by_name", by_name)

    def __iter__(self) -> Iterator[OptionSpec]:
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def spec(self, name: str) -> Optional[OptionSpec]:
        """Return the spec declared under ``name`` (aliases are not followed)."""
        return self._by_name.get(name)

    def resolve(self, name: str) -> Optional[OptionSpec]:
        """Return the spec that holds the value for ``name``, following aliases."""
        spec = self._by_name.get(name)
        if spec is not None and spec.type is OptionType.ALIAS:
            return self._by_name[spec.alias_of]
        return spec

    def names_for(self, canonical: str) -> Tuple[str, ...]:
        """All directive names that address ``canonical`` (itself plus aliases)."""
        return (canonical,) + tuple(
            s.name for s in self.options if s.type is OptionType.ALIAS and s.alias_of == canonical
        )

    def value_options(self) -> Iterator[OptionSpec]:
        """Specs that carry a value, i.e. everything except aliases."""
        return (s for s in self.options if s.type is not OptionType.ALIAS)


def _flag(name, level=Level.BASIC, description="", **kw) -> OptionSpec:
    return OptionSpec(name, OptionType.FLAG, level, description, **kw)


def _string(name, level=Level.BASIC, description="", **kw) -> OptionSpec:
    return OptionSpec(name, OptionType.STRING, level, description, **kw)


def _integer(name, level=Level.BASIC, description="", **kw) -> OptionSpec:
    return OptionSpec(name, OptionType.INTEGER, level, description, **kw)


def _list(name, level=Level.BASIC, description="", **kw) -> OptionSpec:
    return OptionSpec(name, OptionType.LIST, level, description, **kw)


DEFAULT_SCHEMAS: Mapping[str, ComponentSchema] = {
    "gpg": ComponentSchema(
        "gpg",
        (
            _flag("verbose", description="verbose"),
            _flag("quiet", description="be somewhat more quiet"),
            _flag("no-greeting", Level.INVISIBLE),
            _string("default-key", description="use NAME as default secret key", arg_name="NAME"),
            _list("encrypt-to", description="encrypt to user ID NAME as well", arg_name="NAME"),
            _list("group", description="set up email aliases", arg_name="SPEC"),
            _string("keyserver", Level.INVISIBLE, "use this keyserver to lookup keys", arg_name="NAME"),
            _list("auto-key-locate", Level.ADVANCED, "mechanisms to locate keys", arg_name="MECHANISMS"),
            _string(
                "compliance",
                Level.EXPERT,
                "use compliance mode",
                default="gnupg",
                arg_name="NAME",
                extra_flags=OptionFlag.FORCE_DEFAULT,
            ),
            _string("trust-model", Level.EXPERT, "trust model", default="pgp", arg_name="NAME"),
            _integer("completes-needed", Level.EXPERT, "marginal trust threshold", default="1", arg_name="N"),
            _integer("max-cert-depth", Level.EXPERT, "maximum certification depth", default="5", arg_name="N"),
            _string("display-charset", Level.ADVANCED, "native character set", default="utf-8", arg_name="NAME"),
            OptionSpec("charset", OptionType.ALIAS, Level.INVISIBLE, alias_of="display-charset"),
        ),
    ),
    "gpgsm": ComponentSchema(
        "gpgsm",
        (
            _flag("verbose", description="verbose"),
            _flag("quiet", description="be somewhat more quiet"),
            _string("default-key", description="use NAME as default secret key", arg_name="NAME"),
            _list("keyserver", description="configuration of LDAP servers to use", arg_name="LDAP"),
            _flag("disable-crl-checks", Level.ADVANCED, "never consult a CRL"),
            _integer("include-certs", Level.EXPERT, "number of certificates to include", default="-2", arg_name="N"),
            _string("cipher-algo", Level.EXPERT, "use cipher algorithm NAME", default="AES256", arg_name="NAME"),
        ),
    ),
    "gpg-agent": ComponentSchema(
        "gpg-agent",
        (
            _flag("verbose", description="verbose", extra_flags=OptionFlag.RUNTIME),
            _flag("quiet", description="be somewhat more quiet"),
            _string("log-file", Level.ADVANCED, "write server mode logs to FILE", arg_name="FILE"),
            _integer(
                "default-cache-ttl",
                description="expire cached PINs after N seconds",
                default="600",
                arg_name="N",
                extra_flags=OptionFlag.RUNTIME,
            ),
            _integer(
                "max-cache-ttl",
                Level.EXPERT,
                "set maximum PIN cache lifetime to N seconds",
                default="7200",
                arg_name="N",
                extra_flags=OptionFlag.RUNTIME,
            ),
            _integer(
                "min-passphrase-len",
                Level.EXPERT,
                "set minimal required length for new passphrases to N",
                default="8",
                arg_name="N",
                extra_flags=OptionFlag.RUNTIME | OptionFlag.FORCE_DEFAULT,
            ),
            _flag("enable-ssh-support", description="enable ssh support"),
            _string("pinentry-program", Level.ADVANCED, "use PGM as the PIN-Entry program", arg_name="PGM"),
            _flag("allow-loopback-pinentry", Level.EXPERT, "allow caller to override the pinentry",
                  extra_flags=OptionFlag.RUNTIME),
        ),
    ),
    "scdaemon": ComponentSchema(
        "scdaemon",
        (
            _flag("verbose", description="verbose"),
            _flag("quiet", description="be somewhat more quiet"),
            _string("reader-port", description="connect to reader at port N", arg_name="N"),
            _integer("card-timeout", Level.ADVANCED, "disconnect the card after N seconds of inactivity",
                     default="0", arg_name="N"),
            _flag("disable-ccid", Level.EXPERT, "do not use the internal CCID driver"),
            _string("pcsc-driver", Level.ADVANCED, "use NAME as PC/SC driver", arg_name="NAME"),
        ),
    ),
    "dirmngr": ComponentSchema(
        "dirmngr",
        (
            _flag("verbose", description="verbose"),
            _flag("quiet", description="be somewhat more quiet"),
            _list("keyserver", description="use keyserver at URL", arg_name="URL"),
            _flag("honor-http-proxy", description="use system's HTTP proxy setting"),
            _string("http-proxy", Level.ADVANCED, "use HTTP proxy at URL", arg_name="URL"),
            _integer("ldaptimeout", Level.ADVANCED, "set LDAP timeout to N seconds", default="100", arg_name="N"),
            _flag("use-tor", Level.ADVANCED, "route all network traffic via Tor"),
            _integer("resolver-timeout", Level.EXPERT, "DNS resolver timeout", default="30", arg_name="N"),
        ),
    ),
}

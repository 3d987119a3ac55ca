"""Engine settings: the explicit configuration value passed to every operation."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_BINDIR = Path("/usr/bin")
DEFAULT_QUERY_TIMEOUT = 5.0
DEFAULT_NOTIFY_TIMEOUT = 2.0
GLOBAL_RULES_NAME = "keyconf.conf"


def default_homedir(environ: Mapping[str, str] | None = None) -> Path:
    """Resolve the configuration root: KEYCONF_HOMEDIR, GNUPGHOME, then ~/.gnupg."""
    env = os.environ if environ is None else environ
    for key in ("KEYCONF_HOMEDIR", "GNUPGHOME"):
        value = env.get(key)
        if value:
            return Path(value).expanduser()
    return Path.home() / ".gnupg"


@dataclass(frozen=True)
class EngineSettings:
    """
    Settings for one invocation of the engine.

    Constructed once by the caller (normally the CLI) and handed to the
    engine; nothing in the engine reads process-wide state.
    """

    homedir: Path
    bindir: Path = DEFAULT_BINDIR
    dry_run: bool = False
    runtime: bool = False
    verbose: int = 0
    quiet: bool = False
    output: Optional[Path] = None
    query_timeout: float = DEFAULT_QUERY_TIMEOUT
    notify_timeout: float = DEFAULT_NOTIFY_TIMEOUT

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        homedir: str | os.PathLike | None = None,
        **overrides,
    ) -> "EngineSettings":
        """
        Build settings from the environment plus explicit overrides.

        Explicit arguments win over environment variables, which win over
        the built-in defaults.
        """
        env = os.environ if environ is None else environ
        root = Path(homedir).expanduser() if homedir else default_homedir(env)
        bindir = Path(env["KEYCONF_BINDIR"]) if env.get("KEYCONF_BINDIR") else DEFAULT_BINDIR
        overrides.setdefault("bindir", bindir)
        return cls(homedir=root, **overrides)

    @property
    def global_rules_path(self) -> Path:
        return self.homedir / GLOBAL_RULES_NAME

    def with_options(self, **changes) -> "EngineSettings":
        return replace(self, **changes)

"""
Shared pytest fixtures and configuration for keyconf tests.

Everything here runs against a temporary configuration root with a fake
two-component registry, in-memory option schemas and a static capability
provider, so no test spawns a process or touches a real GnuPG home.
"""

import sys
from pathlib import Path
from typing import Dict

import pytest

# Put `src/` first so `import keyconf` uses workspace code.
_REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from keyconf.core.capabilities import StaticCapabilityProvider  # noqa: E402
from keyconf.core.config.schema import ComponentSchema  # noqa: E402
from keyconf.core.engine import ConfigEngine  # noqa: E402
from keyconf.core.settings import EngineSettings  # noqa: E402
from keyconf.core.utils.logger import reset_logging  # noqa: E402

from tests.fakes import TOOL_COMPONENTS, TOOL_SCHEMAS, RecordingNotifier  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_logging():
    """Each test gets a logger bound to the current (captured) stderr."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def homedir(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def settings(tmp_path: Path, homedir: Path) -> EngineSettings:
    return EngineSettings(homedir=homedir, bindir=tmp_path / "bin")


@pytest.fixture
def capabilities() -> StaticCapabilityProvider:
    return StaticCapabilityProvider()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_engine(settings, capabilities, notifier):
    """Factory so tests can tweak settings before building the engine."""

    def _make(**overrides) -> ConfigEngine:
        return ConfigEngine(
            settings.with_options(**overrides) if overrides else settings,
            components=TOOL_COMPONENTS,
            schemas=TOOL_SCHEMAS,
            capabilities=capabilities,
            notifier=notifier,
        )

    return _make


@pytest.fixture
def engine(make_engine) -> ConfigEngine:
    return make_engine()


@pytest.fixture
def write_conf(homedir: Path):
    """Write ``<component>.conf`` below the temporary homedir."""

    def _write(component: str, text: str) -> Path:
        path = homedir / f"{component}.conf"
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write


@pytest.fixture
def read_conf(homedir: Path):
    def _read(component: str) -> str:
        return (homedir / f"{component}.conf").read_bytes().decode("utf-8")

    return _read


@pytest.fixture
def tool_schemas() -> Dict[str, ComponentSchema]:
    return dict(TOOL_SCHEMAS)

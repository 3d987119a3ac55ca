"""Config file persistence utilities."""

from __future__ import annotations

import os
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path

from keyconf.core.utils.logger import log_config_write
from keyconf.utils.error_handling import ConfigFileError

NEW_FILE_MODE = 0o600
NEW_DIR_MODE = 0o700


@contextmanager
def config_write_lock(path: Path):
    """Lock abstraction (no-op: concurrent writers are not detected)."""
    yield


def save_config_atomic(text: str, target_path: Path) -> None:
    """
    Replace ``target_path`` with ``text`` without ever exposing a partial file.

    The data goes to a temporary file in the same directory which is then
    renamed over the target. Permission bits of an existing target are kept.
    On failure the temporary file is removed and the target is untouched.
    """
    try:
        target_path.parent.mkdir(mode=NEW_DIR_MODE, parents=True, exist_ok=True)
        mode = stat.S_IMODE(target_path.stat().st_mode)
    except FileNotFoundError:
        mode = NEW_FILE_MODE
    except OSError as e:
        raise ConfigFileError(target_path, f"cannot prepare write: {e}") from e

    with config_write_lock(target_path):
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{target_path.name}.", suffix=".tmp", dir=target_path.parent
            )
        except OSError as e:
            raise ConfigFileError(target_path, f"cannot create temporary file: {e}") from e
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, mode)
            temp_path.replace(target_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            log_config_write(target_path, str(e))
            raise ConfigFileError(target_path, f"cannot write: {e}") from e
    log_config_write(target_path)

"""
Runtime notifier: ask a running component to reload its configuration.

Tries the component's control socket first (an Assuan style exchange: read
the greeting, send the reload command, expect ``OK``). Without a socket it
falls back to sending SIGHUP to the pid recorded in ``<name>.pid``, but only
after confirming that pid still belongs to the component. Every failure ends
up as a logged warning; nothing here affects the exit code.

The whole exchange shares one deadline of ``timeout`` seconds.
"""

from __future__ import annotations

import os
import signal
import socket
import subprocess
import time
from pathlib import Path
from typing import Optional

from keyconf.core.registry import Component
from keyconf.core.utils.logger import log_debug, log_info, log_warning
from keyconf.utils.error_handling import NotifyError

MAX_REPLY_LENGTH = 1000

# /proc/<pid>/comm holds at most 15 characters of the command name
_COMM_LENGTH = 15


def _remaining(deadline: float) -> float:
    left = deadline - time.monotonic()
    if left <= 0:
        raise NotifyError("no answer within the notify timeout")
    return left


def _read_line(sock: socket.socket, deadline: float) -> str:
    data = b""
    while not data.endswith(b"\n"):
        sock.settimeout(_remaining(deadline))
        chunk = sock.recv(256)
        if not chunk:
            break
        data += chunk
        if len(data) > MAX_REPLY_LENGTH:
            raise NotifyError(f"reply longer than {MAX_REPLY_LENGTH} bytes")
    return data.decode("utf-8", errors="replace").strip()


def process_name(pid: int, timeout: float) -> Optional[str]:
    """Executable name of ``pid``, or None when no such process is visible."""
    proc = Path("/proc") / str(pid)
    if Path("/proc/self").exists():
        try:
            return Path(os.readlink(proc / "exe")).name.removesuffix(" (deleted)")
        except OSError:
            pass
        try:
            return (proc / "comm").read_text(encoding="utf-8", errors="replace").strip()
        except OSError:
            return None
    try:
        result = subprocess.run(
            ["ps", "-o", "comm=", "-p", str(pid)],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    name = result.stdout.strip()
    return Path(name).name if name else None


def is_component_process(name: Optional[str], component: Component) -> bool:
    if not name:
        return False
    for expected in {component.executable_path.name, component.name}:
        if name == expected:
            return True
        if len(name) == _COMM_LENGTH and expected.startswith(name):
            return True
    return False


class RuntimeNotifier:
    """Best-effort reload signalling with a bounded wait."""

    def __init__(self, timeout: float = 2.0):
        self.timeout = timeout

    def notify_reload(self, component: Component) -> bool:
        """Returns True when a running instance acknowledged the reload."""
        deadline = time.monotonic() + self.timeout
        try:
            if component.socket_path is not None and component.socket_path.exists():
                self._send_command(
                    component.socket_path, component.reload_command or "RELOAD", deadline
                )
            elif component.pid_path is not None and component.pid_path.exists():
                self._send_hangup(component, deadline)
            else:
                log_info(component.name, "not running, nothing to reload")
                return False
        except NotifyError as e:
            log_warning(component.name, f"reload failed: {e}")
            return False
        log_info(component.name, "reload requested")
        return True

    def _send_command(self, path: Path, command: str, deadline: float) -> None:
        family = getattr(socket, "AF_UNIX", None)
        if family is None:
            raise NotifyError("unix domain sockets are not supported on this platform")
        try:
            with socket.socket(family, socket.SOCK_STREAM) as sock:
                sock.settimeout(_remaining(deadline))
                sock.connect(str(path))
                greeting = _read_line(sock, deadline)
                if not greeting.startswith("OK"):
                    raise NotifyError(f"unexpected greeting from {path}: {greeting!r}")
                sock.settimeout(_remaining(deadline))
                sock.sendall(f"{command}\n".encode("utf-8"))
                reply = _read_line(sock, deadline)
                log_debug("runtime", f"{path}: {command} -> {reply}")
                if not reply.startswith("OK"):
                    raise NotifyError(f"{command} rejected: {reply or 'no reply'}")
        except (OSError, socket.timeout) as e:
            raise NotifyError(f"cannot talk to {path}: {e}") from e

    def _send_hangup(self, component: Component, deadline: float) -> None:
        pid_path = component.pid_path
        try:
            pid = int(pid_path.read_text(encoding="utf-8").split()[0])
        except (OSError, ValueError, IndexError) as e:
            raise NotifyError(f"unusable pid file {pid_path}") from e
        hangup = getattr(signal, "SIGHUP", None)
        if hangup is None:
            raise NotifyError("SIGHUP is not supported on this platform")

        running = process_name(pid, _remaining(deadline))
        if not is_component_process(running, component):
            raise NotifyError(
                f"stale pid file {pid_path}: pid {pid} is {running or 'not running'}"
            )
        try:
            os.kill(pid, hangup)
        except OSError as e:
            raise NotifyError(f"cannot signal pid {pid}: {e}") from e

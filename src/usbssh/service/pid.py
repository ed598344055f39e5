"""PID file management utilities.

The SSH server writes its own pid file (a single line with the decimal pid).
usbssh only ever reads and removes it.
"""

import os
import signal
from pathlib import Path


def read_pid_file(pid_path: Path) -> int | None:
    """Read the pid recorded in a pid file.

    Args:
        pid_path: Path to the PID file.

    Returns:
        The pid, or None if the file is missing, unreadable or malformed.
    """
    try:
        content = pid_path.read_text().strip().split("\n")
        pid = int(content[0])
    except (OSError, ValueError, IndexError):
        return None
    if pid <= 0:
        return None
    return pid


def remove_pid_file(pid_path: Path) -> None:
    """Remove PID file if it exists.

    Args:
        pid_path: Path to the PID file.
    """
    pid_path.unlink(missing_ok=True)


def is_process_alive(pid: int) -> bool:
    """Check if a process with given PID is alive.

    Args:
        pid: Process ID to check.

    Returns:
        True if process exists and is running.
    """
    try:
        os.kill(pid, 0)  # Signal 0 checks existence without sending signal
        return True
    except PermissionError:
        # Exists but owned by someone else
        return True
    except OSError:
        return False


def send_signal(pid: int, sig: signal.Signals) -> bool:
    """Send signal to process.

    Args:
        pid: Process ID to signal.
        sig: Signal to send.

    Returns:
        True if signal was sent successfully.
    """
    try:
        os.kill(pid, sig)
        return True
    except OSError:
        return False

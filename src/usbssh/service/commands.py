"""Subprocess helpers shared by the supervisor and the gadget controller.

Neither helper reads the child's output through a pipe. Init scripts and
dropbear leave background children holding stdout and stderr, and a pipe
would not reach EOF until those exit. Success is the exit status alone.
"""

import asyncio
import logging
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


async def run_command(*args: str, cwd: Path | None = None) -> tuple[int, str, str]:
    """Run a command until it exits, capturing its output.

    Output is spooled to temporary files and read back after the exit, so a
    background child that inherits the descriptors cannot stall the wait.

    Args:
        *args: Program and arguments.
        cwd: Working directory for the child.

    Returns:
        Tuple of (returncode, stdout, stderr).

    Raises:
        FileNotFoundError: If the program does not exist.
    """
    logger.debug(f"Running command: {' '.join(args)}")
    with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=out,
            stderr=err,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=cwd,
        )
        returncode = await proc.wait()
        out.seek(0)
        err.seek(0)
        return (
            returncode,
            out.read().decode(errors="replace"),
            err.read().decode(errors="replace"),
        )


async def launch_detaching(*args: str, cwd: Path | None, log_path: Path) -> int:
    """Run a command that forks into the background and wait for the parent.

    Args:
        *args: Program and arguments.
        cwd: Working directory for the child.
        log_path: File that receives the child's stdout and stderr.

    Returns:
        The launcher's exit status.

    Raises:
        FileNotFoundError: If the program does not exist.
    """
    logger.debug(f"Launching: {' '.join(args)}")
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a") as log_file:  # noqa: ASYNC230
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=log_file,
            stderr=log_file,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=cwd,
            start_new_session=True,
        )
        return await proc.wait()

"""Control socket client used by the CLI."""

import json
import socket
from pathlib import Path
from typing import Any

from usbssh.config.paths import get_control_socket_path
from usbssh.control.protocol import encode_frame, make_request, read_frame_sync

# Stop can take ~3s of polling and gadget setup ~2s; leave headroom.
DEFAULT_TIMEOUT = 30.0


class ControlError(Exception):
    """Control call failed on the daemon side."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data

    @property
    def service_code(self) -> str | None:
        """Service error code such as ``stop-timeout``, if the daemon sent one."""
        if isinstance(self.data, dict):
            return self.data.get("code")
        return None


def control_call(
    method: str,
    params: dict[str, Any] | None = None,
    socket_path: Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """Call a method on the running usbssh daemon.

    Args:
        method: Method name (e.g., "service.toggle").
        params: Method parameters.
        socket_path: Control socket path. Defaults to the standard location.
        timeout: Socket timeout in seconds.

    Returns:
        The method result.

    Raises:
        ControlError: If the daemon reports an error.
        ConnectionError: If the daemon is not reachable.
    """
    path = socket_path or get_control_socket_path()
    if not path.exists():
        raise ConnectionError(f"usbssh daemon is not running (no socket at {path})")

    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(str(path))
        sock.sendall(encode_frame(make_request(method, params)))
        data = read_frame_sync(sock)
    except ConnectionError:
        raise
    except OSError as e:
        raise ConnectionError(f"Control call {method} failed: {e}") from e
    finally:
        sock.close()

    if data is None:
        raise ConnectionError("Connection closed by daemon")
    try:
        reply = json.loads(data)
    except json.JSONDecodeError as e:
        raise ConnectionError(f"Malformed reply to {method}: {e}") from e

    if "error" in reply:
        err = reply["error"]
        raise ControlError(err.get("code", 0), err.get("message", ""), err.get("data"))
    return reply.get("result")

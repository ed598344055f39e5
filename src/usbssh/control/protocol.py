"""Wire format of the usbssh control socket.

Each message is a JSON-RPC 2.0 object prefixed with its length as a 4-byte
big-endian integer. One request gets one reply on the same connection.

Failures of the SSH service itself use ``SERVICE_ERROR`` and carry the
service error code (``stop-timeout``, ``helper-missing``, ...) in
``error.data.code`` so hooks can branch on it.
"""

import asyncio
import json
import socket
import struct
from typing import Any

HEADER = struct.Struct("!I")
MAX_FRAME_SIZE = 64 * 1024


class ErrorCode:
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # Server-defined range
    SERVICE_ERROR = -32000
    SETTINGS_ERROR = -32001


def encode_frame(message: dict[str, Any]) -> bytes:
    data = json.dumps(message).encode()
    return HEADER.pack(len(data)) + data


def make_request(
    method: str, params: dict[str, Any] | None = None, request_id: int = 1
) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "method": method,
        "params": dict(params or {}),
        "id": request_id,
    }


def make_result(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def make_error(
    request_id: Any, code: int, message: str, data: Any = None
) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def _check_length(header: bytes) -> int:
    (length,) = HEADER.unpack(header)
    if length > MAX_FRAME_SIZE:
        raise ValueError(f"Control message too large: {length} bytes")
    return length


async def read_frame(reader: asyncio.StreamReader) -> bytes | None:
    """Read one frame from the daemon side; None when the client hung up."""
    try:
        header = await reader.readexactly(HEADER.size)
        return await reader.readexactly(_check_length(header))
    except asyncio.IncompleteReadError:
        return None


def _recv_exactly(sock: socket.socket, size: int) -> bytes | None:
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            return None
        data += chunk
    return data


def read_frame_sync(sock: socket.socket) -> bytes | None:
    """Read one frame on a blocking socket; None when the daemon hung up."""
    header = _recv_exactly(sock, HEADER.size)
    if header is None:
        return None
    return _recv_exactly(sock, _check_length(header))

"""Control socket server run inside the usbssh daemon."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from usbssh.config.models import ConfigError
from usbssh.control.protocol import (
    ErrorCode,
    encode_frame,
    make_error,
    make_result,
    read_frame,
)
from usbssh.service.errors import ServiceError

logger = logging.getLogger(__name__)

ControlHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class ControlServer:
    """Accepts user actions and hardware events on an owner-only Unix socket."""

    def __init__(self, socket_path: Path):
        self._socket_path = socket_path
        self._server: asyncio.Server | None = None
        self._methods: dict[str, ControlHandler] = {}

    def register(self, method: str, handler: ControlHandler) -> None:
        self._methods[method] = handler

    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    @property
    def socket_path(self) -> Path:
        return self._socket_path

    @property
    def is_running(self) -> bool:
        return self._server is not None

    async def start(self) -> None:
        self._socket_path.parent.mkdir(parents=True, exist_ok=True)
        # Left behind by a daemon that was killed
        self._socket_path.unlink(missing_ok=True)

        self._server = await asyncio.start_unix_server(
            self._serve, path=str(self._socket_path)
        )
        self._socket_path.chmod(0o600)
        logger.info(
            "control_server_started", extra={"file.path": str(self._socket_path)}
        )

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._socket_path.unlink(missing_ok=True)
        logger.info("control_server_stopped")

    async def _serve(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        try:
            while (data := await read_frame(reader)) is not None:
                writer.write(encode_frame(await self.process_request(data)))
                await writer.drain()
        except (ConnectionError, ValueError) as e:
            logger.warning("control_connection_error", extra={"error.message": str(e)})
        finally:
            writer.close()
            await writer.wait_closed()

    async def process_request(self, data: bytes) -> dict[str, Any]:
        """Dispatch one request payload and build the reply.

        Service and settings failures keep their domain identity in the
        reply; anything else is reported as an internal error.
        """
        try:
            request = json.loads(data)
        except json.JSONDecodeError as e:
            return make_error(None, ErrorCode.PARSE_ERROR, f"Parse error: {e}")

        if not isinstance(request, dict):
            return make_error(
                None, ErrorCode.INVALID_REQUEST, "Request must be an object"
            )

        request_id = request.get("id")
        method = request.get("method")
        params = request.get("params") or {}

        if request.get("jsonrpc") != "2.0" or not method:
            return make_error(
                request_id, ErrorCode.INVALID_REQUEST, "Not a JSON-RPC 2.0 request"
            )
        if not isinstance(params, dict):
            return make_error(
                request_id, ErrorCode.INVALID_PARAMS, "params must be an object"
            )

        handler = self._methods.get(method)
        if handler is None:
            return make_error(
                request_id, ErrorCode.METHOD_NOT_FOUND, f"Unknown method: {method}"
            )

        try:
            return make_result(request_id, await handler(params))
        except ServiceError as e:
            logger.warning(
                "control_service_error",
                extra={"rpc.method": method, "error.code": e.code},
            )
            return make_error(
                request_id, ErrorCode.SERVICE_ERROR, str(e), {"code": e.code}
            )
        except ConfigError as e:
            logger.warning(
                "control_settings_error",
                extra={"rpc.method": method, "error.message": str(e)},
            )
            return make_error(request_id, ErrorCode.SETTINGS_ERROR, str(e))
        except Exception as e:
            logger.exception("control_method_error", extra={"rpc.method": method})
            return make_error(request_id, ErrorCode.INTERNAL_ERROR, str(e))

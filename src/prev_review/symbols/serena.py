"""
Serena symbol-context client.

Talks to a Serena MCP server over newline-delimited JSON-RPC on the child
process's stdio and asks it for the symbol enclosing a given line.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from pydantic import ValidationError

from ..errors import SymbolProviderError, SymbolProviderUnavailable
from .models import JsonRpcResponse, SerenaMode, SymbolInfo, ToolCallResult

logger = structlog.get_logger(__name__)

SERENA_COMMAND = ("uvx", "--from", "git+https://github.com/oraios/serena", "serena")
MCP_PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "prev-review", "version": "0.1.0"}

# Symbol bodies arrive as single JSON lines; asyncio defaults to 64 KiB.
STREAM_LIMIT = 16 * 1024 * 1024

UNAVAILABLE_HINT = (
    "serena is required (serena mode 'on') but unavailable; ensure uvx is installed, "
    "git is available, and the runner can reach github.com. For CI, install uv/uvx "
    "then run: uvx --from git+https://github.com/oraios/serena serena --help"
)


async def is_serena_available(command: tuple[str, ...] = SERENA_COMMAND) -> bool:
    """Check whether the Serena CLI can be launched."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            "--help",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        return False
    return await proc.wait() == 0


class SerenaClient:
    """A running Serena MCP server."""

    def __init__(self, process: asyncio.subprocess.Process, request_timeout: float = 30.0):
        self._process = process
        self._request_timeout = request_timeout
        self._request_id = 0

    @classmethod
    async def start(
        cls,
        command: tuple[str, ...] = SERENA_COMMAND,
        request_timeout: float = 30.0,
    ) -> SerenaClient:
        """Spawn the server and perform the MCP handshake."""
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                "start-mcp-server",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            raise SymbolProviderError(f"failed to start serena: {e}") from e

        client = cls(process, request_timeout=request_timeout)
        try:
            await client._initialize()
        except SymbolProviderError as e:
            await client.close()
            raise SymbolProviderError(f"serena handshake failed: {e}") from e

        logger.info("Serena started", pid=process.pid)
        return client

    async def __aenter__(self) -> SerenaClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _initialize(self) -> None:
        await self._call(
            "initialize",
            {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": CLIENT_INFO,
            },
        )
        await self._send({"jsonrpc": "2.0", "method": "notifications/initialized"})

    async def _send(self, payload: dict[str, Any]) -> None:
        stdin = self._process.stdin
        if stdin is None or stdin.is_closing():
            raise SymbolProviderError("serena stdin is closed")
        stdin.write(json.dumps(payload).encode() + b"\n")
        try:
            await stdin.drain()
        except ConnectionError as e:
            raise SymbolProviderError(f"failed to write request: {e}") from e

    async def _read_response(self, request_id: int) -> JsonRpcResponse:
        stdout = self._process.stdout
        if stdout is None:
            raise SymbolProviderError("serena stdout is closed")
        while True:
            try:
                line = await stdout.readline()
            except ValueError as e:
                raise SymbolProviderError(f"serena response too large: {e}") from e
            if not line:
                raise SymbolProviderError("serena closed the connection")
            try:
                response = JsonRpcResponse.model_validate_json(line)
            except ValidationError:
                # Log output and notifications interleave with responses.
                continue
            if response.id == request_id:
                return response

    async def _call(self, method: str, params: dict[str, Any]) -> Any:
        self._request_id += 1
        request_id = self._request_id
        await self._send({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})

        try:
            response = await asyncio.wait_for(
                self._read_response(request_id), timeout=self._request_timeout
            )
        except asyncio.TimeoutError as e:
            raise SymbolProviderError(f"serena did not answer {method}") from e

        if response.error is not None:
            raise SymbolProviderError(
                f"serena error {response.error.code}: {response.error.message}"
            )
        return response.result

    async def find_enclosing_symbol(self, file_path: str, line: int) -> SymbolInfo | None:
        """Find the function/class enclosing ``line``; None when there is none."""
        result = await self._call(
            "tools/call",
            {
                "name": "find_symbol",
                "arguments": {"file_path": file_path, "line_number": line},
            },
        )

        try:
            tool_result = ToolCallResult.model_validate(result or {})
        except ValidationError as e:
            raise SymbolProviderError(f"failed to parse symbol result: {e}") from e

        if not tool_result.content:
            return None

        text = tool_result.content[0].text
        try:
            return SymbolInfo.model_validate_json(text)
        except ValidationError:
            return SymbolInfo(file_path=file_path, content=text)

    async def close(self) -> None:
        """Terminate the server process."""
        process = self._process
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
        logger.debug("Serena stopped", pid=process.pid)


class SerenaLauncher:
    """Starts one Serena server per review run."""

    def __init__(self, command: tuple[str, ...] = SERENA_COMMAND, request_timeout: float = 30.0):
        self.command = command
        self.request_timeout = request_timeout

    async def launch(self) -> SerenaClient:
        return await SerenaClient.start(self.command, request_timeout=self.request_timeout)


async def resolve_serena_launcher(
    mode: SerenaMode | str,
    command: tuple[str, ...] = SERENA_COMMAND,
) -> SerenaLauncher | None:
    """Decide once whether symbol context is used.

    Returns None when symbol context is off or unavailable in ``auto`` mode.

    Raises:
        SymbolProviderUnavailable: mode is ``on`` and Serena cannot be launched.
    """
    mode = SerenaMode.parse(mode)
    if mode is SerenaMode.OFF:
        return None

    if not await is_serena_available(command):
        if mode is SerenaMode.ON:
            raise SymbolProviderUnavailable(UNAVAILABLE_HINT)
        logger.info("Serena unavailable, using line-based context")
        return None

    return SerenaLauncher(command)

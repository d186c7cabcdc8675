"""
Async vMix HTTP API client.

Everything goes through ``GET http://<host>:<port>/api``: without parameters
vMix answers with its XML state, with ``Function=...`` it runs a shortcut
function. Failures are raised as ``RemoteUnavailable`` and never retried
here; the caller decides what a failed command means.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from services.vmix.commands import RemoteCommand
from services.vmix.state import RemoteState, RemoteStateError, parse_state
from shared.logging.logger import get_logger
from shared.vmix.models import DEFAULT_HOST, DEFAULT_PORT

log = get_logger("vmix.client")

UNREACHABLE = "could not reach remote system"


class RemoteUnavailable(RuntimeError):
    def __init__(self, detail: str = "", status_code: Optional[int] = None):
        message = UNREACHABLE if not detail else f"{UNREACHABLE}: {detail}"
        super().__init__(message)
        self.status_code = status_code


@dataclass
class CommandResult:
    success: bool
    error: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None) -> "CommandResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> "CommandResult":
        return cls(success=False, error=error)


class VMixClient:
    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        timeout: float = 5.0,
        discovery_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host = host
        self.port = int(port)
        self.timeout = timeout
        self.discovery_timeout = discovery_timeout if discovery_timeout is not None else timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.connected = False

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/api"

    def set_connection(self, host: str, port: int) -> None:
        """Point at another vMix instance; requests use the new address."""
        if host == self.host and int(port) == self.port:
            return
        self.host = host
        self.port = int(port)
        self.connected = False

    # ------------------------------------------------------------------

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "VMixClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _get(self, params: Optional[dict], timeout: float) -> httpx.Response:
        try:
            resp = await self._http().get(self.base_url, params=params, timeout=timeout)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            self.connected = False
            raise RemoteUnavailable(
                f"{e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            self.connected = False
            raise RemoteUnavailable(str(e) or type(e).__name__) from e

    # ------------------------------------------------------------------

    async def test_connection(self) -> CommandResult:
        try:
            await self._get(None, self.discovery_timeout)
        except RemoteUnavailable as e:
            log.warning(f"vMix at {self.host}:{self.port} unavailable: {e}")
            return CommandResult.failed(str(e))
        self.connected = True
        return CommandResult.ok()

    async def send(self, command: RemoteCommand) -> CommandResult:
        """Run one vMix function. Raises ``RemoteUnavailable`` on failure."""
        log.debug(f"vMix <- {command.describe()}")
        resp = await self._get(command.to_params(), self.timeout)
        self.connected = True
        return CommandResult.ok(resp.text)

    async def fetch_state(self) -> RemoteState:
        resp = await self._get(None, self.discovery_timeout)
        try:
            state = parse_state(resp.content)
        except RemoteStateError as e:
            raise RemoteUnavailable(str(e)) from e
        self.connected = True
        return state

"""toncenter v2 JSON-RPC client with retry on transient failures."""

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

import httpx

from tonwallet.errors import GetMethodFailed, MalformedResponse, RpcPermanent, RpcTransient
from tonwallet.rpc.retry import TRANSIENT_STATUS_CODES, retry_async
from tonwallet.ton.address import Address
from tonwallet.ton.cell import Cell, deserialize_boc
from tonwallet.ton.payloads import address_slice_boc

logger = logging.getLogger(__name__)

T = TypeVar("T")

StackValue = Union[int, Cell, Any]


@dataclass
class GetMethodResult:
    """Outcome of a contract get-method call."""

    exit_code: int
    stack: list[StackValue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        # 0 and 1 are both successful TVM exit codes
        return self.exit_code in (0, 1)

    def int_at(self, index: int) -> int:
        try:
            value = self.stack[index]
        except IndexError as e:
            raise MalformedResponse(f"Stack has no entry {index}") from e
        if not isinstance(value, int):
            raise MalformedResponse(f"Stack entry {index} is not a number")
        return value

    def cell_at(self, index: int) -> Cell:
        try:
            value = self.stack[index]
        except IndexError as e:
            raise MalformedResponse(f"Stack has no entry {index}") from e
        if not isinstance(value, Cell):
            raise MalformedResponse(f"Stack entry {index} is not a cell")
        return value


def _parse_stack_entry(entry: Any) -> StackValue:
    if not isinstance(entry, (list, tuple)) or len(entry) != 2:
        raise MalformedResponse(f"Unexpected stack entry: {entry!r}")
    kind, value = entry
    if kind == "num":
        try:
            return int(value, 16) if isinstance(value, str) else int(value)
        except ValueError as e:
            raise MalformedResponse(f"Bad number on stack: {value!r}") from e
    if kind in ("cell", "slice"):
        raw = value.get("bytes") if isinstance(value, dict) else value
        try:
            return deserialize_boc(base64.b64decode(raw))
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"Bad {kind} on stack: {e}") from e
    return value


class RpcGateway:
    """Blockchain reads and writes through toncenter.

    Every call goes through `call`, which retries rate-limited and
    server-unavailable failures with exponential backoff.

    Usage:
        async with RpcGateway(endpoint, api_key) as rpc:
            balance = await rpc.get_balance(address)
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        *,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.endpoint = endpoint
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep
        self._owns_client = client is None
        headers = {"X-API-Key": api_key} if api_key else {}
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers)
        self._request_id = 0

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "RpcGateway":
        if settings is None:
            from tonwallet.config import get_settings

            settings = get_settings()
        return cls(
            settings.toncenter_endpoint,
            settings.toncenter_api_key,
            max_attempts=settings.rpc_max_attempts,
            backoff_base=settings.rpc_backoff_base,
            timeout=settings.rpc_timeout,
            **kwargs,
        )

    async def __aenter__(self) -> "RpcGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call(self, fn: Callable[[], Awaitable[T]], operation_name: Optional[str] = None) -> T:
        """Run an RPC coroutine factory under the retry policy."""
        return await retry_async(
            fn,
            max_attempts=self.max_attempts,
            base_delay=self.backoff_base,
            sleep=self._sleep,
            operation_name=operation_name,
        )

    async def _request(self, method: str, params: dict) -> Any:
        """Single JSON-RPC attempt, translating failures into the RPC error classes."""
        self._request_id += 1
        payload = {"id": self._request_id, "jsonrpc": "2.0", "method": method, "params": params}
        logger.debug(f"RPC {method} {params.get('address', '')}")

        try:
            response = await self._client.post(self.endpoint, json=payload)
        except httpx.TransportError as e:
            raise RpcTransient(f"{method}: {type(e).__name__}: {e}") from e

        if response.status_code in TRANSIENT_STATUS_CODES:
            raise RpcTransient(
                f"{method}: HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                raise RpcPermanent(
                    f"{method}: HTTP {response.status_code}", status_code=response.status_code
                ) from e
            raise MalformedResponse(f"{method}: response is not JSON") from e

        if not isinstance(data, dict):
            raise MalformedResponse(f"{method}: unexpected response {data!r}")

        if not data.get("ok", False):
            code = data.get("code") or response.status_code
            error = data.get("error") or "unknown error"
            if code in TRANSIENT_STATUS_CODES:
                raise RpcTransient(f"{method}: {error}", status_code=code)
            raise RpcPermanent(f"{method}: {error}", status_code=code)

        if response.status_code >= 400:
            raise RpcPermanent(
                f"{method}: HTTP {response.status_code}", status_code=response.status_code
            )

        if "result" not in data:
            raise MalformedResponse(f"{method}: response has no result")
        return data["result"]

    async def invoke(self, method: str, params: dict) -> Any:
        """Call a JSON-RPC method with retry."""
        return await self.call(lambda: self._request(method, params), operation_name=method)

    async def get_balance(self, address: str) -> int:
        """Native balance in nanoton."""
        result = await self.invoke("getAddressBalance", {"address": address})
        try:
            return int(result)
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"getAddressBalance: bad balance {result!r}") from e

    async def run_get_method_raw(
        self, address: str, method: str, stack: Optional[list] = None
    ) -> GetMethodResult:
        """Invoke a get-method without checking the exit code."""
        result = await self.invoke(
            "runGetMethod", {"address": address, "method": method, "stack": stack or []}
        )
        if not isinstance(result, dict):
            raise MalformedResponse(f"runGetMethod {method}: unexpected result {result!r}")
        exit_code = int(result.get("exit_code", 0))
        entries = result.get("stack") or []
        return GetMethodResult(exit_code, [_parse_stack_entry(e) for e in entries])

    async def run_get_method(
        self, address: str, method: str, stack: Optional[list] = None
    ) -> GetMethodResult:
        """Invoke a get-method.

        Raises:
            GetMethodFailed: If the contract exits with a failure code (for
                example an account that does not exist).
        """
        result = await self.run_get_method_raw(address, method, stack)
        if not result.ok:
            raise GetMethodFailed(method, address, result.exit_code)
        return result

    async def get_seqno(self, address: str) -> int:
        """Current wallet seqno; 0 for a wallet that is not deployed yet."""
        result = await self.run_get_method_raw(address, "seqno")
        if not result.ok or not result.stack:
            logger.debug(f"Wallet {address} not initialized (exit code {result.exit_code})")
            return 0
        return result.int_at(0)

    async def get_wallet_address(self, master: str, owner: Address) -> Address:
        """Ask a jetton master for the owner's jetton wallet address."""
        result = await self.run_get_method(
            master, "get_wallet_address", [["tvm.Slice", address_slice_boc(owner)]]
        )
        try:
            address = result.cell_at(0).begin_parse().load_address()
        except ValueError as e:
            raise MalformedResponse(f"get_wallet_address: {e}") from e
        if address is None:
            raise MalformedResponse("get_wallet_address returned an empty address")
        return address

    async def get_jetton_balance(self, jetton_wallet: str) -> int:
        """Balance stored in a jetton wallet contract."""
        result = await self.run_get_method(jetton_wallet, "get_wallet_data")
        return result.int_at(0)

    async def get_transactions(self, address: str, limit: int = 10) -> list[dict]:
        """Most recent transactions of an account, newest first."""
        result = await self.invoke("getTransactions", {"address": address, "limit": limit})
        if not isinstance(result, list):
            raise MalformedResponse(f"getTransactions: unexpected result {result!r}")
        return result

    async def send_boc(self, boc: str) -> Any:
        """Broadcast a base64-encoded external message."""
        result = await self.invoke("sendBoc", {"boc": boc})
        logger.info("Message broadcast accepted")
        return result

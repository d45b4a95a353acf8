"""
Lector on-chain de solo lectura sobre web3 (AsyncWeb3).

Reglas:
- Lecturas puntuales contra el nodo conectado: sin caché y sin reintentos.
- Cada llamada está acotada por un timeout; un nodo colgado no bloquea el ciclo.
- Los errores salen siempre como ChainUnavailable o ReadReverted, nunca como
  excepciones propias del transporte.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from web3 import AsyncWeb3, Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from chain.abi import ERC20_ABI, ROUTER_ABI
from chain.errors import ChainError, ChainUnavailable, ReadReverted
from chain.types import Balance, BasketAsset

logger = structlog.get_logger(__name__)


class ChainReader:
    """
    Acceso tipado a balances, metadatos de token y supply.

    Uso:
        reader = ChainReader.from_rpc_url(settings.RPC_URL, timeout=10.0)
        wei = await reader.native_balance(treasury)

    El objeto w3 es inyectable para facilitar tests unitarios.
    """

    def __init__(self, w3: Any, timeout: float = 10.0) -> None:
        self._w3 = w3
        self._timeout = timeout

    @classmethod
    def from_rpc_url(cls, rpc_url: str, timeout: float = 10.0) -> "ChainReader":
        provider = AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        return cls(AsyncWeb3(provider), timeout=timeout)

    # -----------------------------------------------------------------------
    # Llamada base con timeout y mapeo de errores
    # -----------------------------------------------------------------------

    async def _call(self, call: str, make_request: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await asyncio.wait_for(make_request(), timeout=self._timeout)
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            logger.warning("chain.read_reverted", call=call, error=str(exc))
            raise ReadReverted(call, str(exc)) from exc
        except asyncio.TimeoutError as exc:
            logger.warning("chain.timeout", call=call, timeout=self._timeout)
            raise ChainUnavailable(call, f"timeout after {self._timeout}s") from exc
        except ChainError:
            raise
        except Exception as exc:
            logger.warning("chain.unavailable", call=call, error=str(exc))
            raise ChainUnavailable(call, str(exc) or type(exc).__name__) from exc

    def _erc20(self, token: str) -> Any:
        return self._w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

    # -----------------------------------------------------------------------
    # Lecturas
    # -----------------------------------------------------------------------

    async def native_balance(self, account: str) -> int:
        """Balance nativo (wei) de la cuenta."""
        return int(
            await self._call(
                "eth_getBalance",
                lambda: self._w3.eth.get_balance(Web3.to_checksum_address(account)),
            )
        )

    async def token_decimals(self, token: str) -> int:
        return int(await self._call("decimals", lambda: self._erc20(token).functions.decimals().call()))

    async def token_balance(self, asset: BasketAsset, account: str) -> Balance:
        """balanceOf(account) del token junto con sus decimales."""
        raw = await self._call(
            "balanceOf",
            lambda: self._erc20(asset.address).functions.balanceOf(Web3.to_checksum_address(account)).call(),
        )
        decimals = await self.token_decimals(asset.address)
        return Balance(asset=asset, raw_amount=int(raw), decimals=decimals)

    async def total_supply(self, token: str) -> tuple[int, int]:
        """(supply en bruto, decimales) del token del índice."""
        raw = await self._call("totalSupply", lambda: self._erc20(token).functions.totalSupply().call())
        decimals = await self.token_decimals(token)
        return int(raw), decimals

    async def quote_amounts_out(self, router: str, amount_in: int, path: list[str]) -> list[int]:
        """
        getAmountsOut(amount_in, path) del router: simula el swap sin ejecutarlo.
        Devuelve la lista de importes en bruto, uno por salto del path.
        """

        def make_request() -> Awaitable[Any]:
            contract = self._w3.eth.contract(address=Web3.to_checksum_address(router), abi=ROUTER_ABI)
            checksummed = [Web3.to_checksum_address(addr) for addr in path]
            return contract.functions.getAmountsOut(amount_in, checksummed).call()

        amounts = await self._call("getAmountsOut", make_request)
        return [int(a) for a in amounts or []]

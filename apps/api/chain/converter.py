"""
Conversión de balances del basket a la unidad de referencia mediante el
quote del router (path [activo, referencia]).

Un fallo de quote NUNCA lanza excepción: se devuelve un ReferenceAmount marcado
como fallido y el estimador lo cuenta como cero.
"""

import structlog

from chain.errors import ChainError
from chain.reader import ChainReader
from chain.types import Balance, ReferenceAmount

logger = structlog.get_logger(__name__)


class UnitConverter:
    def __init__(
        self,
        reader: ChainReader,
        router_address: str,
        reference_address: str,
        reference_decimals: int = 18,
    ) -> None:
        self._reader = reader
        self._router = router_address
        self._reference = reference_address
        self._reference_decimals = reference_decimals

    async def to_reference(self, balance: Balance) -> ReferenceAmount:
        asset = balance.asset

        # Balance cero: contribución cero sin llamada de red
        if balance.is_zero:
            return ReferenceAmount(asset=asset, amount=0.0)

        # El propio activo de referencia (p. ej. WETH) se cuenta 1:1
        if asset.address.lower() == self._reference.lower():
            return ReferenceAmount(asset=asset, amount=balance.amount)

        try:
            amounts = await self._reader.quote_amounts_out(
                self._router,
                balance.raw_amount,
                [asset.address, self._reference],
            )
        except ChainError as exc:
            logger.warning("converter.quote_failed", asset=asset.symbol, error=str(exc))
            return ReferenceAmount(asset=asset, amount=0.0, error=str(exc))

        if not amounts or amounts[-1] <= 0:
            logger.warning("converter.quote_empty", asset=asset.symbol, amounts=amounts)
            return ReferenceAmount(asset=asset, amount=0.0, error="empty quote result")

        amount = amounts[-1] / 10**self._reference_decimals
        logger.debug("converter.quoted", asset=asset.symbol, amount_in=balance.amount, amount_out=amount)
        return ReferenceAmount(asset=asset, amount=amount)

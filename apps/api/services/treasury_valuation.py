"""
Valoración on-chain de la tesorería del índice.

Un ciclo:
  1. Balance nativo de la tesorería (contribución directa en unidad de referencia).
  2. Balance de cada activo del basket → conversión vía router (en paralelo).
     Los fallos por activo se registran y cuentan como cero.
  3. totalSupply y decimales del token del índice. Supply cero → sin estimación.
  4. Precio fiat de la unidad de referencia. No disponible → sin estimación.
  5. NAV = (valor tesorería / supply) * precio fiat, en float64.

ChainUnavailable en la lectura nativa o del supply se propaga: el NavEstimator
lo convierte en "sin estimación" para este ciclo. Cualquier ChainError al leer
el balance de un activo del basket se aísla como fallo de ese activo.
"""

import asyncio
import math
from collections.abc import Sequence
from datetime import datetime, timezone

import structlog

from chain.converter import UnitConverter
from chain.errors import ChainError
from chain.reader import ChainReader
from chain.types import BasketAsset, ReferenceAmount, TreasuryValue
from pricing.fiat_rate import FiatRateSource
from services.nav_sources import NavEstimate

logger = structlog.get_logger(__name__)


class OnChainTreasurySource:
    name = "onchain"

    def __init__(
        self,
        reader: ChainReader,
        converter: UnitConverter,
        fiat_rate: FiatRateSource,
        index_token: str,
        treasury: str,
        basket: Sequence[BasketAsset],
        reference_decimals: int = 18,
    ) -> None:
        self._reader = reader
        self._converter = converter
        self._fiat_rate = fiat_rate
        self._index_token = index_token
        self._treasury = treasury
        self._basket = tuple(basket)
        self._reference_decimals = reference_decimals

    async def _asset_contribution(self, asset: BasketAsset) -> ReferenceAmount:
        try:
            balance = await self._reader.token_balance(asset, self._treasury)
        except ChainError as exc:
            # Token roto, revert o timeout: se aísla como fallo de este activo
            return ReferenceAmount(asset=asset, amount=0.0, error=str(exc))
        return await self._converter.to_reference(balance)

    async def treasury_value(self) -> TreasuryValue:
        native_wei = await self._reader.native_balance(self._treasury)
        value = TreasuryValue(native_amount=native_wei / 10**self._reference_decimals)

        # Se esperan todas las lecturas antes de propagar un error inesperado
        results = await asyncio.gather(
            *(self._asset_contribution(a) for a in self._basket),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            for extra in errors[1:]:
                logger.error("nav.asset.unexpected_error", error=str(extra), error_type=type(extra).__name__)
            raise errors[0]

        contributions: list[ReferenceAmount] = list(results)
        for contribution in contributions:
            if contribution.failed:
                logger.warning(
                    "nav.asset.conversion_failed",
                    asset=contribution.asset.symbol,
                    error=contribution.error,
                )
            value.add(contribution)
        return value

    async def estimate(self) -> NavEstimate | None:
        log = logger.bind(index_token=self._index_token, basket_size=len(self._basket))

        value = await self.treasury_value()

        raw_supply, supply_decimals = await self._reader.total_supply(self._index_token)
        supply = raw_supply / 10**supply_decimals
        if supply == 0:
            log.warning("nav.zero_supply", raw_supply=raw_supply)
            return None

        rate = await self._fiat_rate.fetch_rate()
        if rate is None:
            log.warning("nav.fiat_rate_unavailable")
            return None

        nav = (value.total / supply) * rate
        if not math.isfinite(nav):
            log.warning("nav.non_finite", treasury_value=value.total, supply=supply, rate=rate)
            return None

        log.info(
            "nav.computed",
            nav=nav,
            treasury_value=value.total,
            native=value.native_amount,
            supply=supply,
            fiat_rate=rate,
            failed_assets=value.failed_assets,
        )
        return NavEstimate(value_per_share=nav, computed_at=datetime.now(timezone.utc))

    async def aclose(self) -> None:
        # El provider HTTP de web3 gestiona sus propias sesiones
        pass

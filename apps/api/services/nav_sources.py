"""
Fuentes de precio NAV intercambiables.

Todas cumplen el mismo contrato `estimate() -> NavEstimate | None` y se
seleccionan por configuración (NAV_SOURCE):
  - fixed    → FixedTestSource: precio aleatorio alrededor de una base (pruebas)
  - exchange → ExchangeQuoteSource: último precio del par en un exchange
  - onchain  → OnChainTreasurySource (services/treasury_valuation.py)
"""

import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

import structlog

from pricing.exchange_client import ExchangeClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NavEstimate:
    """NAV por participación en fiat en un instante dado."""

    value_per_share: float
    computed_at: datetime | None = None


def is_valid_nav(value: float) -> bool:
    """Solo se aceptan NAV finitos y estrictamente positivos."""
    return math.isfinite(value) and value > 0


class NavSource(Protocol):
    name: str

    async def estimate(self) -> NavEstimate | None: ...

    async def aclose(self) -> None: ...


class FixedTestSource:
    """Precio sintético: base + random() * spread. Solo para entornos de prueba."""

    name = "fixed"

    def __init__(self, base: float = 0.001, spread: float = 0.0005, rng: random.Random | None = None) -> None:
        self._base = base
        self._spread = spread
        self._rng = rng or random.Random()

    async def estimate(self) -> NavEstimate | None:
        value = self._base + self._rng.random() * self._spread
        return NavEstimate(value_per_share=value, computed_at=datetime.now(timezone.utc))

    async def aclose(self) -> None:
        pass


class ExchangeQuoteSource:
    """NAV tomado del último precio del token del índice en un exchange."""

    name = "exchange"

    def __init__(self, client: ExchangeClient, symbol: str) -> None:
        self._client = client
        self._symbol = symbol

    async def estimate(self) -> NavEstimate | None:
        price = await self._client.get_ticker_price(self._symbol)
        logger.debug("exchange_source.quoted", symbol=self._symbol, price=price)
        return NavEstimate(value_per_share=price, computed_at=datetime.now(timezone.utc))

    async def aclose(self) -> None:
        await self._client.close()

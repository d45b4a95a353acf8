"""
Estimador NAV: frontera donde los fallos de componentes se convierten en
"sin estimación" en lugar de propagarse al scheduler.

Nunca devuelve un NAV cero, negativo, NaN o infinito: cero es indistinguible
de "sin datos" y no debe persistirse.
"""

import random
from datetime import datetime, timezone

import structlog

from chain.converter import UnitConverter
from chain.reader import ChainReader
from core.config import Settings
from pricing.exchange_client import ExchangeClient
from pricing.fiat_rate import FiatRateSource
from services.nav_sources import (
    ExchangeQuoteSource,
    FixedTestSource,
    NavEstimate,
    NavSource,
    is_valid_nav,
)
from services.treasury_valuation import OnChainTreasurySource

logger = structlog.get_logger(__name__)


class NavEstimator:
    def __init__(self, source: NavSource) -> None:
        self.source = source

    async def estimate(self) -> NavEstimate | None:
        log = logger.bind(source=self.source.name)
        try:
            estimate = await self.source.estimate()
        except Exception as exc:
            log.error("nav.estimate_failed", error=str(exc), error_type=type(exc).__name__)
            return None

        if estimate is None:
            log.info("nav.no_estimate")
            return None

        if not is_valid_nav(estimate.value_per_share):
            log.warning("nav.rejected", value=estimate.value_per_share)
            return None

        if estimate.computed_at is None:
            estimate = NavEstimate(
                value_per_share=estimate.value_per_share,
                computed_at=datetime.now(timezone.utc),
            )
        return estimate

    async def aclose(self) -> None:
        await self.source.aclose()


def build_nav_source(settings: Settings) -> NavSource:
    """Construye la fuente de precio indicada por NAV_SOURCE."""
    if settings.NAV_SOURCE == "fixed":
        return FixedTestSource(
            base=settings.FIXED_NAV_BASE,
            spread=settings.FIXED_NAV_SPREAD,
            rng=random.Random(),
        )

    if settings.NAV_SOURCE == "exchange":
        client = ExchangeClient(
            base_url=settings.EXCHANGE_API_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        return ExchangeQuoteSource(client, settings.EXCHANGE_SYMBOL)

    reader = ChainReader.from_rpc_url(settings.RPC_URL, timeout=settings.RPC_TIMEOUT_SECONDS)
    converter = UnitConverter(
        reader,
        router_address=settings.ROUTER_ADDRESS,
        reference_address=settings.REFERENCE_ASSET_ADDRESS,
        reference_decimals=settings.REFERENCE_DECIMALS,
    )
    fiat_rate = FiatRateSource(
        asset_id=settings.FIAT_RATE_ASSET_ID,
        currency=settings.FIAT_CURRENCY,
        url=settings.FIAT_RATE_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    return OnChainTreasurySource(
        reader=reader,
        converter=converter,
        fiat_rate=fiat_rate,
        index_token=settings.INDEX_TOKEN_ADDRESS,
        treasury=settings.treasury_address,
        basket=settings.basket,
        reference_decimals=settings.REFERENCE_DECIMALS,
    )

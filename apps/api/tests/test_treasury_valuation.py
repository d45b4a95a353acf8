"""
Tests del ciclo de valoración on-chain.
El nodo se sustituye por un FakeReader en memoria; el router y el precio fiat
son deterministas para poder comprobar el NAV exacto.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from chain.converter import UnitConverter
from chain.errors import ChainUnavailable, ReadReverted
from chain.types import Balance, BasketAsset
from pricing.fiat_rate import FiatRateSource
from services.nav_estimator import NavEstimator
from services.treasury_valuation import OnChainTreasurySource

INDEX_TOKEN = "0x" + "1" * 40
TREASURY = "0x" + "2" * 40
ROUTER = "0x" + "3" * 40
WETH = "0x" + "4" * 40

ASSET_A = BasketAsset(symbol="A", address="0x" + "a" * 40)
ASSET_B = BasketAsset(symbol="B", address="0x" + "b" * 40)
ASSET_C = BasketAsset(symbol="C", address="0x" + "c" * 40)

ETH = 10**18


class FakeReader:
    """
    Nodo en memoria.
    balances: dirección → (raw, decimals) o excepción.
    quotes:   dirección → importe de salida en wei o excepción.
    """

    def __init__(
        self,
        native: int | Exception = 1000 * ETH,
        supply: tuple[int, int] | Exception = (500 * ETH, 18),
        balances: dict | None = None,
        quotes: dict | None = None,
    ) -> None:
        self.native = native
        self.supply = supply
        self.balances = balances or {}
        self.quotes = quotes or {}
        self.quote_calls: list[str] = []

    async def native_balance(self, account: str) -> int:
        if isinstance(self.native, Exception):
            raise self.native
        return self.native

    async def token_balance(self, asset: BasketAsset, account: str) -> Balance:
        value = self.balances.get(asset.address, (0, 18))
        if isinstance(value, Exception):
            raise value
        raw, decimals = value
        return Balance(asset=asset, raw_amount=raw, decimals=decimals)

    async def total_supply(self, token: str) -> tuple[int, int]:
        if isinstance(self.supply, Exception):
            raise self.supply
        return self.supply

    async def quote_amounts_out(self, router: str, amount_in: int, path: list[str]) -> list[int]:
        self.quote_calls.append(path[0])
        out = self.quotes[path[0]]
        if isinstance(out, Exception):
            raise out
        return [amount_in, out]


class SlowSiblingReader(FakeReader):
    """C tarda en responder; A y B fallan con un error no contenido."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.finished: list[str] = []

    async def token_balance(self, asset: BasketAsset, account: str) -> Balance:
        if asset.address == ASSET_C.address:
            await asyncio.sleep(0.05)
            self.finished.append(asset.symbol)
            return Balance(asset=asset, raw_amount=0, decimals=18)
        raise RuntimeError(f"bug reading {asset.symbol}")


def make_source(
    reader: FakeReader,
    basket: list[BasketAsset],
    rate: float | None = 2.0,
    reference_decimals: int = 18,
) -> OnChainTreasurySource:
    fiat = AsyncMock(spec=FiatRateSource)
    fiat.fetch_rate = AsyncMock(return_value=rate)
    converter = UnitConverter(
        reader,
        router_address=ROUTER,
        reference_address=WETH,
        reference_decimals=reference_decimals,
    )
    return OnChainTreasurySource(
        reader=reader,
        converter=converter,
        fiat_rate=fiat,
        index_token=INDEX_TOKEN,
        treasury=TREASURY,
        basket=basket,
        reference_decimals=reference_decimals,
    )


# ===========================================================================
# Escenarios
# ===========================================================================


class TestOnChainTreasurySource:
    async def test_zero_balance_asset_contributes_nothing_and_is_not_quoted(self):
        reader = FakeReader(balances={ASSET_A.address: (0, 18)})
        source = make_source(reader, [ASSET_A], rate=2.0)

        estimate = await source.estimate()

        # (1000 / 500) * 2.0
        assert estimate is not None
        assert estimate.value_per_share == pytest.approx(4.0)
        assert reader.quote_calls == []

    async def test_basket_assets_are_converted_and_summed(self):
        reader = FakeReader(
            balances={ASSET_A.address: (5 * 10**6, 6), ASSET_B.address: (ETH, 18)},
            quotes={ASSET_A.address: 100 * ETH, ASSET_B.address: 400 * ETH},
        )
        source = make_source(reader, [ASSET_A, ASSET_B], rate=2.0)

        estimate = await source.estimate()

        # (1000 + 100 + 400) / 500 * 2.0
        assert estimate.value_per_share == pytest.approx(6.0)
        assert sorted(reader.quote_calls) == sorted([ASSET_A.address, ASSET_B.address])

    async def test_failed_asset_counts_as_zero(self):
        balances = {ASSET_A.address: (ETH, 18), ASSET_B.address: (ETH, 18)}
        ok_reader = FakeReader(balances=balances, quotes={ASSET_A.address: 100 * ETH, ASSET_B.address: 50 * ETH})
        failing_reader = FakeReader(
            balances=balances,
            quotes={ASSET_A.address: 100 * ETH, ASSET_B.address: ReadReverted("getAmountsOut", "reverted")},
        )
        without_b_reader = FakeReader(balances={ASSET_A.address: (ETH, 18)}, quotes={ASSET_A.address: 100 * ETH})

        full = await make_source(ok_reader, [ASSET_A, ASSET_B]).estimate()
        partial = await make_source(failing_reader, [ASSET_A, ASSET_B]).estimate()
        without_b = await make_source(without_b_reader, [ASSET_A]).estimate()

        assert partial.value_per_share == pytest.approx(without_b.value_per_share)
        assert partial.value_per_share == pytest.approx((1100 / 500) * 2.0)
        assert partial.value_per_share <= full.value_per_share

    async def test_reverted_balance_read_is_contained(self):
        reader = FakeReader(balances={ASSET_A.address: ReadReverted("balanceOf", "not a token")})
        estimate = await make_source(reader, [ASSET_A]).estimate()

        assert estimate.value_per_share == pytest.approx(4.0)

    async def test_balance_read_timeout_is_contained(self):
        reader = FakeReader(
            balances={
                ASSET_A.address: ChainUnavailable("balanceOf", "timeout after 10.0s"),
                ASSET_B.address: (ETH, 18),
            },
            quotes={ASSET_B.address: 100 * ETH},
        )
        source = make_source(reader, [ASSET_A, ASSET_B])

        value = await source.treasury_value()
        estimate = await NavEstimator(source).estimate()

        # (1000 + 100) / 500 * 2.0
        assert value.failed_assets == ["A"]
        assert estimate is not None
        assert estimate.value_per_share == pytest.approx(4.4)

    async def test_unexpected_errors_wait_for_every_asset_read(self):
        reader = SlowSiblingReader()
        source = make_source(reader, [ASSET_A, ASSET_B, ASSET_C])

        with pytest.raises(RuntimeError, match="bug reading A"):
            await source.estimate()
        assert reader.finished == ["C"]

    async def test_reference_decimals_scale_native_balance_and_quotes(self):
        reader = FakeReader(
            native=1000 * 10**6,
            balances={ASSET_A.address: (ETH, 18)},
            quotes={ASSET_A.address: 100 * 10**6},
        )
        value = await make_source(reader, [ASSET_A], reference_decimals=6).treasury_value()
        estimate = await make_source(reader, [ASSET_A], reference_decimals=6).estimate()

        assert value.native_amount == pytest.approx(1000.0)
        assert value.total == pytest.approx(1100.0)
        assert estimate.value_per_share == pytest.approx(4.4)

        assert estimate.value_per_share == pytest.approx(4.0)

    async def test_treasury_value_reports_failed_assets(self):
        reader = FakeReader(
            balances={ASSET_A.address: (ETH, 18)},
            quotes={ASSET_A.address: ChainUnavailable("getAmountsOut", "timeout")},
        )
        value = await make_source(reader, [ASSET_A]).treasury_value()

        assert value.failed_assets == ["A"]
        assert value.total == pytest.approx(1000.0)

    async def test_zero_supply_produces_no_estimate(self):
        reader = FakeReader(supply=(0, 18))
        assert await make_source(reader, []).estimate() is None

    async def test_missing_fiat_rate_produces_no_estimate(self):
        reader = FakeReader(
            balances={ASSET_A.address: (ETH, 18)},
            quotes={ASSET_A.address: 100 * ETH},
        )
        assert await make_source(reader, [ASSET_A], rate=None).estimate() is None

    async def test_non_finite_result_produces_no_estimate(self):
        # 1e6 / 0.001 * 1e308 → inf
        reader = FakeReader(native=10**24, supply=(10**15, 18))
        assert await make_source(reader, [], rate=1e308).estimate() is None

    async def test_supply_read_failure_propagates(self):
        reader = FakeReader(supply=ChainUnavailable("totalSupply", "down"))
        with pytest.raises(ChainUnavailable):
            await make_source(reader, []).estimate()


# ===========================================================================
# Frontera del estimador
# ===========================================================================


class TestEstimatorWithTreasurySource:
    async def test_node_unavailable_yields_no_estimate(self):
        reader = FakeReader(native=ChainUnavailable("eth_getBalance", "connection refused"))
        estimator = NavEstimator(make_source(reader, [ASSET_A]))

        assert await estimator.estimate() is None

    async def test_supply_failure_yields_no_estimate(self):
        reader = FakeReader(supply=ReadReverted("totalSupply", "reverted"))
        estimator = NavEstimator(make_source(reader, []))

        assert await estimator.estimate() is None

    async def test_unexpected_asset_errors_yield_no_estimate(self):
        reader = SlowSiblingReader()
        estimator = NavEstimator(make_source(reader, [ASSET_A, ASSET_B, ASSET_C]))

        assert await estimator.estimate() is None
        assert reader.finished == ["C"]

    async def test_empty_treasury_is_rejected_as_zero_nav(self):
        reader = FakeReader(native=0)
        estimator = NavEstimator(make_source(reader, []))

        assert await estimator.estimate() is None

"""
Tipos de dominio de la valoración on-chain.
Balance, ReferenceAmount y TreasuryValue viven solo durante un ciclo de valoración.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BasketAsset:
    """Un token del basket: símbolo y dirección del contrato."""

    symbol: str
    address: str


@dataclass(frozen=True)
class Balance:
    asset: BasketAsset
    # Cantidad entera tal como la devuelve el contrato (sin normalizar)
    raw_amount: int
    decimals: int

    @property
    def amount(self) -> float:
        return self.raw_amount / 10**self.decimals

    @property
    def is_zero(self) -> bool:
        return self.raw_amount == 0


@dataclass(frozen=True)
class ReferenceAmount:
    """Importe ya expresado en la unidad de referencia (nativa de la cadena)."""

    asset: BasketAsset
    amount: float
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class TreasuryValue:
    native_amount: float = 0.0
    contributions: list[ReferenceAmount] = field(default_factory=list)

    def add(self, contribution: ReferenceAmount) -> None:
        self.contributions.append(contribution)

    @property
    def failed_assets(self) -> list[str]:
        return [c.asset.symbol for c in self.contributions if c.failed]

    @property
    def total(self) -> float:
        # Las contribuciones fallidas cuentan como cero
        return self.native_amount + sum(c.amount for c in self.contributions if not c.failed)

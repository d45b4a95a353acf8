"""
Precio fiat del activo de referencia.

Fuente por defecto: CoinGecko /simple/price (free tier, sin API key).
Cualquier fallo devuelve None ("rate no disponible"): el ciclo de valoración
se aborta porque todo el NAV depende multiplicativamente de este valor.
"""

import math

import httpx
import structlog

logger = structlog.get_logger(__name__)

COINGECKO_URL = "https://api.coingecko.com/api/v3/simple/price"


class FiatRateSource:
    """
    Uso:
        source = FiatRateSource(asset_id="ethereum", currency="usd")
        rate = await source.fetch_rate()   # float | None

    El http_client es inyectable para tests; si no se pasa, cada llamada abre y
    cierra su propio cliente.
    """

    def __init__(
        self,
        asset_id: str,
        currency: str = "usd",
        url: str = COINGECKO_URL,
        timeout: float = 6.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._asset_id = asset_id
        self._currency = currency.lower()
        self._url = url
        self._timeout = httpx.Timeout(timeout)
        self._client = http_client

    async def fetch_rate(self) -> float | None:
        try:
            if self._client is not None:
                data = await self._get(self._client)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    data = await self._get(client)
        except httpx.HTTPError as exc:
            logger.warning("fiat_rate.http_error", url=self._url, error=str(exc))
            return None
        except ValueError as exc:
            # JSON mal formado
            logger.warning("fiat_rate.malformed_payload", url=self._url, error=str(exc))
            return None

        return self._extract(data)

    async def _get(self, client: httpx.AsyncClient) -> object:
        resp = await client.get(
            self._url,
            params={"ids": self._asset_id, "vs_currencies": self._currency},
        )
        resp.raise_for_status()
        return resp.json()

    def _extract(self, data: object) -> float | None:
        """Devuelve data[asset_id][currency] si es un número finito y positivo."""
        entry = data.get(self._asset_id) if isinstance(data, dict) else None
        value = entry.get(self._currency) if isinstance(entry, dict) else None

        # bool es subclase de int: no es un precio válido
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            logger.warning("fiat_rate.missing_field", asset_id=self._asset_id, currency=self._currency)
            return None
        try:
            rate = float(value)
        except ValueError:
            logger.warning("fiat_rate.non_numeric", value=value)
            return None
        if not math.isfinite(rate) or rate <= 0:
            logger.warning("fiat_rate.invalid_value", value=rate)
            return None
        return rate

"""
Cliente HTTP para endpoints públicos de un exchange estilo Binance.

Reglas:
- Solo endpoints públicos (sin firma ni API key).
- Backoff exponencial en 429/418, respetando la cabecera Retry-After.
- Reintento con backoff en errores de red y timeouts.
"""

import asyncio

import httpx
import structlog

logger = structlog.get_logger(__name__)


class ExchangeAPIError(Exception):
    def __init__(self, status_code: int, code: int, msg: str) -> None:
        self.status_code = status_code
        self.code = code
        self.msg = msg
        super().__init__(f"Exchange error {code}: {msg} (HTTP {status_code})")


class ExchangeClient:
    """
    Uso:
        async with ExchangeClient() as client:
            price = await client.get_ticker_price("PINDEXUSDT")

    El http_client es inyectable para facilitar tests unitarios.
    """

    MAX_RETRIES: int = 3
    BASE_BACKOFF: float = 2.0  # segundos
    MAX_RETRY_AFTER: int = 30

    def __init__(
        self,
        base_url: str = "https://api.binance.com",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
        )

    async def __aenter__(self) -> "ExchangeClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, path: str, params: dict | None = None) -> object:
        last_exc: Exception | None = None

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await self._client.request("GET", path, params=params)

                if response.status_code in (429, 418):
                    retry_after = min(int(response.headers.get("Retry-After", 1)), self.MAX_RETRY_AFTER)
                    logger.warning(
                        "exchange.rate_limit_hit",
                        status=response.status_code,
                        retry_after=retry_after,
                        attempt=attempt,
                        path=path,
                    )
                    if attempt < self.MAX_RETRIES - 1:
                        await asyncio.sleep(retry_after)
                        continue
                    raise ExchangeAPIError(response.status_code, -1003, "Rate limit exceeded")

                if response.status_code >= 400:
                    try:
                        data = response.json()
                    except ValueError:
                        data = {}
                    raise ExchangeAPIError(
                        response.status_code,
                        data.get("code", -1),
                        data.get("msg", "Unknown error"),
                    )

                return response.json()

            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                backoff = self.BASE_BACKOFF ** (attempt + 1)
                logger.warning(
                    "exchange.network_error",
                    path=path,
                    attempt=attempt,
                    backoff=backoff,
                    error=str(exc),
                )
                last_exc = exc
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(backoff)

        raise last_exc or RuntimeError(f"Max retries exceeded for {path}")

    async def get_ticker_price(self, symbol: str) -> float:
        """GET /api/v3/ticker/price — último precio negociado del par."""
        data = await self._request("/api/v3/ticker/price", params={"symbol": symbol})
        if not isinstance(data, dict) or "price" not in data:
            raise ExchangeAPIError(200, -1, f"Respuesta sin campo price para {symbol}")
        return float(data["price"])

"""
Configuración centralizada del servicio NAV.
Lee todas las variables de entorno usando pydantic-settings.
NUNCA hardcodear direcciones de producción ni URLs privadas del nodo aquí.
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chain.types import BasketAsset

NAV_SOURCES = ("fixed", "exchange", "onchain")


def parse_basket(raw: str) -> tuple[BasketAsset, ...]:
    """
    Convierte "WBTC:0xabc...,LINK:0xdef..." en una tupla de BasketAsset.
    Las entradas vacías se ignoran; un par mal formado lanza ValueError.
    """
    assets: list[BasketAsset] = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        symbol, sep, address = entry.partition(":")
        symbol, address = symbol.strip(), address.strip()
        if not sep or not symbol or not address.startswith("0x"):
            raise ValueError(f"Entrada de BASKET_ASSETS inválida: {entry!r} (formato SYMBOL:0xADDRESS)")
        assets.append(BasketAsset(symbol=symbol.upper(), address=address))
    return tuple(assets)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Base de datos -------------------------------------------------------
    # URL asíncrona (asyncpg) para el servidor FastAPI y el scheduler
    DATABASE_URL: str

    # URL síncrona (psycopg2) usada exclusivamente por Alembic para migraciones
    DATABASE_SYNC_URL: str

    # --- Aplicación ----------------------------------------------------------
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"

    # Orígenes CORS permitidos (cadena separada por comas)
    CORS_ORIGINS: str = "*"

    # --- Fuente de precio ----------------------------------------------------
    # fixed: precio aleatorio de pruebas | exchange: ticker de exchange | onchain: tesorería
    NAV_SOURCE: str = "onchain"

    # --- Nodo RPC ------------------------------------------------------------
    RPC_URL: str = "http://localhost:8545"
    RPC_TIMEOUT_SECONDS: float = 10.0

    # --- Direcciones on-chain -----------------------------------------------
    INDEX_TOKEN_ADDRESS: str = ""
    # Cuenta que custodia el basket; si falta se usa el propio contrato del índice
    TREASURY_ADDRESS: str | None = None
    ROUTER_ADDRESS: str = ""
    # Activo de referencia (wrapped native), usado como destino del quote del router
    REFERENCE_ASSET_ADDRESS: str = ""
    REFERENCE_DECIMALS: int = 18

    # Pares SYMBOL:0xADDRESS separados por comas
    BASKET_ASSETS: str = ""

    # --- Precio fiat del activo de referencia --------------------------------
    FIAT_RATE_URL: str = "https://api.coingecko.com/api/v3/simple/price"
    FIAT_RATE_ASSET_ID: str = "ethereum"
    FIAT_CURRENCY: str = "usd"
    HTTP_TIMEOUT_SECONDS: float = 6.0

    # --- Fuente "exchange" ---------------------------------------------------
    EXCHANGE_API_BASE_URL: str = "https://api.binance.com"
    EXCHANGE_SYMBOL: str = ""

    # --- Fuente "fixed" ------------------------------------------------------
    FIXED_NAV_BASE: float = 0.001
    FIXED_NAV_SPREAD: float = 0.0005

    # --- Scheduler -----------------------------------------------------------
    NAV_INTERVAL_SECONDS: int = 300
    # Ejecutar el scheduler dentro del proceso de la API
    NAV_SCHEDULER_ENABLED: bool = True

    # --- API de lectura ------------------------------------------------------
    HISTORY_DEFAULT_LIMIT: int = 200
    HISTORY_MAX_LIMIT: int = 1000

    # --- Propiedades calculadas ----------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def basket(self) -> tuple[BasketAsset, ...]:
        return parse_basket(self.BASKET_ASSETS)

    @property
    def treasury_address(self) -> str:
        return self.TREASURY_ADDRESS or self.INDEX_TOKEN_ADDRESS

    @field_validator("BASKET_ASSETS")
    @classmethod
    def validate_basket(cls, v: str) -> str:
        parse_basket(v)
        return v

    @field_validator("NAV_SOURCE")
    @classmethod
    def validate_nav_source(cls, v: str) -> str:
        v = v.lower()
        if v not in NAV_SOURCES:
            raise ValueError(f"NAV_SOURCE debe ser uno de: {NAV_SOURCES}")
        return v

    @field_validator("NAV_INTERVAL_SECONDS")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        if v < 10:
            raise ValueError("NAV_INTERVAL_SECONDS debe ser >= 10")
        return v

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        allowed = {"development", "production", "test"}
        if v not in allowed:
            raise ValueError(f"APP_ENV debe ser uno de: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {allowed}")
        return v.upper()

    @model_validator(mode="after")
    def validate_history_limits(self) -> "Settings":
        if self.HISTORY_MAX_LIMIT < 1:
            raise ValueError("HISTORY_MAX_LIMIT debe ser >= 1")
        if not 1 <= self.HISTORY_DEFAULT_LIMIT <= self.HISTORY_MAX_LIMIT:
            raise ValueError("HISTORY_DEFAULT_LIMIT debe estar entre 1 y HISTORY_MAX_LIMIT")
        return self

    @model_validator(mode="after")
    def validate_onchain_addresses(self) -> "Settings":
        if self.NAV_SOURCE != "onchain":
            return self
        missing = [
            name
            for name in ("INDEX_TOKEN_ADDRESS", "ROUTER_ADDRESS", "REFERENCE_ASSET_ADDRESS")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"NAV_SOURCE=onchain requiere: {', '.join(missing)}")
        return self


@lru_cache
def get_settings() -> Settings:
    """Instancia singleton de Settings, cacheada para evitar re-lecturas del .env."""
    return Settings()


# Exportación conveniente para importar directamente en otros módulos
settings: Settings = get_settings()

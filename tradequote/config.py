from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from tradequote.models.asset import ETH_CHAIN_ID

ALLOWANCE_CONTRACT = "0xF892Fef9dA200d9E84c9b0647ecFF0F34633aBe8"
WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or validated."""


class HttpProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str
    api_key: str | None = Field(default=None)
    timeout_s: float = Field(default=10, gt=0)
    max_retries: int = Field(default=3, ge=0)
    backoff_base_s: float = Field(default=0.5, ge=0)
    backoff_max_s: float = Field(default=8, ge=0)
    max_rps: float = Field(default=2.0, gt=0)


class MarketProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Literal["coingecko", "coincap"]
    enabled: bool = Field(default=True)
    http: HttpProviderConfig | None = Field(default=None)
    coin_ids: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _default_http(self) -> "MarketProviderConfig":
        if self.http is None:
            self.http = HttpProviderConfig(base_url=_DEFAULT_BASE_URLS[self.name])
        return self


_DEFAULT_BASE_URLS = {
    "coingecko": "https://api.coingecko.com/api/v3",
    "coincap": "https://api.coincap.io/v2",
}


def _default_market_providers() -> list[MarketProviderConfig]:
    # Order is priority order: more reliable providers first.
    return [MarketProviderConfig(name="coingecko"), MarketProviderConfig(name="coincap")]


class MarketConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    providers: list[MarketProviderConfig] = Field(default_factory=_default_market_providers)
    pool_provider: str | None = Field(default=None)
    volume_provider: str | None = Field(default="coingecko")

    @field_validator("providers")
    @classmethod
    def _validate_unique(cls, value: list[MarketProviderConfig]) -> list[MarketProviderConfig]:
        names = [provider.name for provider in value]
        if len(names) != len(set(names)):
            raise ValueError("market.providers names must be unique")
        return value

    @model_validator(mode="after")
    def _validate_designated_providers(self) -> "MarketConfig":
        names = {provider.name for provider in self.providers}
        for field_name in ("pool_provider", "volume_provider"):
            value = getattr(self, field_name)
            if value is None or value in names:
                continue
            if field_name in self.model_fields_set:
                raise ValueError(f"market.{field_name} {value!r} is not a configured provider")
            # Default points at a provider this config does not run.
            setattr(self, field_name, None)
        return self


class AssetConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    asset_id: str
    symbol: str = Field(default="")
    precision: int = Field(default=18, ge=0)
    is_pool: bool = Field(default=False)
    related_asset_key: str | None = Field(default=None)


class FeeTierConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min_trade_usd: Decimal = Field(ge=0)
    fee_bps: Decimal = Field(ge=0)


class FeeModelConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tiers: list[FeeTierConfig]
    discount_threshold: Decimal = Field(gt=0)

    @field_validator("tiers")
    @classmethod
    def _validate_tiers(cls, value: list[FeeTierConfig]) -> list[FeeTierConfig]:
        if not value:
            raise ValueError("fee model needs at least one tier")
        if value[0].min_trade_usd != 0:
            raise ValueError("first fee tier must start at min_trade_usd 0")
        bounds = [tier.min_trade_usd for tier in value]
        if bounds != sorted(bounds) or len(bounds) != len(set(bounds)):
            raise ValueError("fee tiers must be strictly ascending by min_trade_usd")
        return value


def _default_fee_models() -> dict[str, FeeModelConfig]:
    return {
        "SWAPPER": FeeModelConfig(
            tiers=[
                FeeTierConfig(min_trade_usd=Decimal("0"), fee_bps=Decimal("55")),
                FeeTierConfig(min_trade_usd=Decimal("10000"), fee_bps=Decimal("49")),
                FeeTierConfig(min_trade_usd=Decimal("100000"), fee_bps=Decimal("29")),
            ],
            discount_threshold=Decimal("1000000"),
        ),
        "THORSWAP": FeeModelConfig(
            tiers=[
                FeeTierConfig(min_trade_usd=Decimal("0"), fee_bps=Decimal("35")),
                FeeTierConfig(min_trade_usd=Decimal("50000"), fee_bps=Decimal("25")),
            ],
            discount_threshold=Decimal("50000"),
        ),
    }


class FeesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    models: dict[str, FeeModelConfig] = Field(default_factory=_default_fee_models)


class QuotesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_polling_interval_s: float = Field(default=20, gt=0)
    polling_intervals_s: dict[str, float] = Field(default_factory=dict)
    enabled_providers: list[str] | None = Field(default=None)

    @field_validator("polling_intervals_s")
    @classmethod
    def _validate_intervals(cls, value: dict[str, float]) -> dict[str, float]:
        for provider, interval_s in value.items():
            if interval_s <= 0:
                raise ValueError(f"polling interval for {provider} must be > 0")
        return value


class RoutingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    allowance_contract: str = Field(default=ALLOWANCE_CONTRACT)
    longtail_chain_ids: list[str] = Field(default_factory=lambda: [ETH_CHAIN_ID])
    wrapped_native_tokens: dict[str, str] = Field(default_factory=lambda: {ETH_CHAIN_ID: WETH_ADDRESS})
    streaming_interval: int = Field(default=1, ge=0)


class ObsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    log_jsonl: bool = Field(default=True)
    telemetry_path: str | None = Field(default=None)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    market: MarketConfig = Field(default_factory=MarketConfig)
    assets: list[AssetConfig] = Field(default_factory=list)
    fees: FeesConfig = Field(default_factory=FeesConfig)
    quotes: QuotesConfig = Field(default_factory=QuotesConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    obs: ObsConfig = Field(default_factory=ObsConfig)

    @model_validator(mode="after")
    def _validate_assets(self) -> "AppConfig":
        asset_ids = [asset.asset_id for asset in self.assets]
        if len(asset_ids) != len(set(asset_ids)):
            raise ValueError("assets must not contain duplicate asset_id entries")
        return self


@dataclass(frozen=True)
class LoadedConfig:
    config: AppConfig
    raw: dict[str, Any]


def load_config(path: Path) -> LoadedConfig:
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a mapping")

    try:
        config = AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    return LoadedConfig(config=config, raw=payload)

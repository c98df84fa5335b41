from decimal import Decimal
from pathlib import Path

import pytest

from tradequote.config import ALLOWANCE_CONTRACT, ConfigError, load_config


def test_valid_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        market:
          providers:
            - name: coincap
              coin_ids:
                "eip155:1/slip44:60": ethereum
            - name: coingecko
              http:
                base_url: https://pro-api.coingecko.com/api/v3
                api_key: secret
          volume_provider: coingecko
        assets:
          - asset_id: "eip155:1/slip44:60"
            symbol: ETH
        quotes:
          polling_intervals_s:
            thorchain: 5
        obs:
          log_jsonl: true
        """,
        encoding="utf-8",
    )

    loaded = load_config(config_path)
    config = loaded.config
    assert [provider.name for provider in config.market.providers] == ["coincap", "coingecko"]
    assert config.market.providers[0].http.base_url == "https://api.coincap.io/v2"
    assert config.market.providers[1].http.api_key == "secret"
    assert config.assets[0].precision == 18
    assert config.quotes.polling_intervals_s == {"thorchain": 5}
    assert config.quotes.default_polling_interval_s == 20
    assert config.routing.allowance_contract == ALLOWANCE_CONTRACT
    assert loaded.raw["obs"]["log_jsonl"] is True


def test_defaults_when_empty(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    config = load_config(config_path).config
    assert [provider.name for provider in config.market.providers] == ["coingecko", "coincap"]
    assert config.fees.models["SWAPPER"].tiers[0].fee_bps == Decimal("55")
    assert config.fees.models["THORSWAP"].discount_threshold == Decimal("50000")
    assert config.market.pool_provider is None
    assert config.market.volume_provider == "coingecko"


def test_missing_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_invalid_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        market:
          providers:
            - name: binance
        """,
        encoding="utf-8",
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_unknown_section_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("exchange:\n  base_url: https://api.example.test\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_invalid_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("market: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_duplicate_providers_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        market:
          providers:
            - name: coingecko
            - name: coingecko
        """,
        encoding="utf-8",
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_fee_tiers_must_ascend(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        fees:
          models:
            SWAPPER:
              discount_threshold: 1000
              tiers:
                - {min_trade_usd: 0, fee_bps: 50}
                - {min_trade_usd: 5000, fee_bps: 40}
                - {min_trade_usd: 1000, fee_bps: 30}
        """,
        encoding="utf-8",
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_non_positive_polling_interval_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        quotes:
          polling_intervals_s:
            zrx: 0
        """,
        encoding="utf-8",
    )

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_unconfigured_pool_provider_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        market:
          pool_provider: portals
        """,
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="pool_provider"):
        load_config(config_path)


def test_unconfigured_volume_provider_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        market:
          providers:
            - name: coincap
          volume_provider: coingecko
        """,
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="volume_provider"):
        load_config(config_path)


def test_default_volume_provider_dropped_without_coingecko(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        market:
          providers:
            - name: coincap
          pool_provider: coincap
        """,
        encoding="utf-8",
    )

    market = load_config(config_path).config.market
    assert market.volume_provider is None
    assert market.pool_provider == "coincap"

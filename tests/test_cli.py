import json
from pathlib import Path

import httpx
import pytest

from tradequote.__main__ import EXIT_CONFIG_ERROR, EXIT_NO_DATA, EXIT_OK, main

ETH = "eip155:1/slip44:60"


def write_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"""
        market:
          providers:
            - name: coingecko
              http:
                base_url: https://api.coingecko.test/api/v3
                max_retries: 0
                backoff_base_s: 0
                backoff_max_s: 0
                max_rps: 1000
              coin_ids:
                "{ETH}": ethereum
        assets:
          - asset_id: "{ETH}"
            symbol: ETH
        """,
        encoding="utf-8",
    )
    return config_path


def coingecko_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/coins/markets"):
        return httpx.Response(
            200,
            json=[{"id": "ethereum", "current_price": 2500, "market_cap": 3, "total_volume": 4}],
        )
    if path.endswith("/coins/ethereum"):
        return httpx.Response(200, json={"market_data": {"current_price": {"usd": 2500.5}}})
    if path.endswith("/market_chart"):
        return httpx.Response(200, json={"prices": []})
    return httpx.Response(404, json={"error": "not found"})


def test_price_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    metrics_path = tmp_path / "metrics.json"

    exit_code = main(
        ["price", "--config", str(write_config(tmp_path)), "--asset-id", ETH, "--metrics", str(metrics_path)],
        transport=httpx.MockTransport(coingecko_handler),
    )

    assert exit_code == EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["assetId"] == ETH
    assert payload["price"] == "2500.5"
    assert payload["marketCap"] == "0"
    metrics = json.loads(metrics_path.read_text(encoding="utf-8"))
    assert metrics["coingecko"]["requests_total"] == 1
    assert metrics["coingecko"]["health"] == "ok"


def test_markets_and_top_volume(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = str(write_config(tmp_path))
    transport = httpx.MockTransport(coingecko_handler)

    assert main(["markets", "--config", config_path, "--count", "5"], transport=transport) == EXIT_OK
    markets = json.loads(capsys.readouterr().out)
    assert markets[ETH]["price"] == "2500"

    assert main(["top-volume", "--config", config_path, "--count", "5"], transport=transport) == EXIT_OK
    assert json.loads(capsys.readouterr().out) == [ETH]


def test_empty_history_is_no_data(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(
        ["history", "--config", str(write_config(tmp_path)), "--asset-id", ETH, "--timeframe", "1W"],
        transport=httpx.MockTransport(coingecko_handler),
    )

    assert exit_code == EXIT_NO_DATA
    assert json.loads(capsys.readouterr().out) == []


def test_unknown_asset_is_no_data(tmp_path: Path) -> None:
    exit_code = main(
        ["price", "--config", str(write_config(tmp_path)), "--asset-id", "eip155:1/erc20:0xdead"],
        transport=httpx.MockTransport(coingecko_handler),
    )

    assert exit_code == EXIT_NO_DATA


def test_provider_outage_on_markets(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "bad request"})

    exit_code = main(
        ["markets", "--config", str(write_config(tmp_path))],
        transport=httpx.MockTransport(handler),
    )

    assert exit_code == EXIT_NO_DATA


def test_invalid_config_exit_code(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("market:\n  providers: nope\n", encoding="utf-8")

    assert main(["price", "--config", str(config_path), "--asset-id", ETH]) == EXIT_CONFIG_ERROR

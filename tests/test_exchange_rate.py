import httpx
import pytest

import api.exchange_rate_frankfurter as frankfurter
from api.exchange_rate_frankfurter import ExchangeRateFrankfurterClient
from api.exchange_rate_local import ExchangeRateLocalClient


FRANKFURTER_BASE = "https://api.frankfurter.app"


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(frankfurter.cfg, "backoff_factor", 0.0)
    monkeypatch.setattr(frankfurter.cfg, "max_retries", 3)


@pytest.fixture
def client():
    return ExchangeRateFrankfurterClient(FRANKFURTER_BASE)


@pytest.mark.asyncio
async def test_get_rate_uppercases_codes(httpx_mock, client):
    httpx_mock.add_response(
        method="GET",
        url=f"{FRANKFURTER_BASE}/latest?from=USD&to=EUR",
        json={"amount": 1.0, "base": "USD", "date": "2026-10-16", "rates": {"EUR": 0.923456}},
    )
    result = await client.get_rate("usd", "eur")
    assert result == "1 USD = 0.9235 EUR"
    request = httpx_mock.get_request()
    assert request.url.params["from"] == "USD"
    assert request.url.params["to"] == "EUR"


@pytest.mark.asyncio
async def test_get_rate_missing_target_returns_text(httpx_mock, client):
    httpx_mock.add_response(
        method="GET",
        url=f"{FRANKFURTER_BASE}/latest?from=USD&to=XYZ",
        json={"amount": 1.0, "base": "USD", "rates": {}},
    )
    result = await client.get_rate("usd", "xyz")
    assert result == "Unable to get exchange rate from USD to XYZ"


@pytest.mark.asyncio
async def test_get_rate_client_error_returns_text(httpx_mock, client):
    httpx_mock.add_response(method="GET", url=f"{FRANKFURTER_BASE}/latest?from=USD&to=ZZZ", status_code=404,
                            json={"message": "not found"})
    result = await client.get_rate("USD", "ZZZ")
    assert result.startswith("Error fetching exchange rate:")
    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_get_rate_retries_server_errors(httpx_mock, client):
    url = f"{FRANKFURTER_BASE}/latest?from=GBP&to=USD"
    httpx_mock.add_response(method="GET", url=url, status_code=503)
    httpx_mock.add_response(method="GET", url=url, json={"rates": {"USD": 1.27}})
    result = await client.get_rate("gbp", "usd")
    assert result == "1 GBP = 1.2700 USD"
    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_get_rate_transport_error_never_raises(httpx_mock, client):
    httpx_mock.add_exception(httpx.ConnectError("boom"), is_reusable=True)
    result = await client.get_rate("usd", "eur")
    assert result.startswith("Error fetching exchange rate:")
    assert len(httpx_mock.get_requests()) == 3


@pytest.mark.asyncio
async def test_convert_formats_two_decimals(httpx_mock, client):
    httpx_mock.add_response(
        method="GET",
        url=f"{FRANKFURTER_BASE}/latest?from=USD&to=EUR&amount=100",
        json={"amount": 100.0, "base": "USD", "rates": {"EUR": 92.3456}},
    )
    result = await client.convert(100.0, "usd", "eur")
    assert result == "100 USD = 92.35 EUR"
    assert httpx_mock.get_request().url.params["amount"] == "100"


@pytest.mark.asyncio
async def test_convert_missing_target_returns_text(httpx_mock, client):
    httpx_mock.add_response(
        method="GET",
        url=f"{FRANKFURTER_BASE}/latest?from=USD&to=EUR&amount=12.5",
        json={"rates": {}},
    )
    result = await client.convert(12.5, "usd", "eur")
    assert result == "Unable to convert 12.5 USD to EUR"


@pytest.mark.asyncio
async def test_convert_transport_error_never_raises(httpx_mock, client):
    httpx_mock.add_exception(httpx.ReadTimeout("slow"), is_reusable=True)
    result = await client.convert(5, "usd", "eur")
    assert result.startswith("Error converting currency:")


@pytest.mark.asyncio
async def test_local_client_rates():
    local = ExchangeRateLocalClient()
    assert await local.get_rate("eur", "usd") == "1 EUR = 1.0800 USD"
    assert await local.convert(100.0, "eur", "gbp") == "100 EUR = 85.00 GBP"
    assert await local.get_rate("eur", "xyz") == "Unable to get exchange rate from EUR to XYZ"

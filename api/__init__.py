APIS = {
    "ExchangeRateFrankfurterClient": "api.exchange_rate_frankfurter",
    "ExchangeRateLocalClient": "api.exchange_rate_local",
}


def format_amount(amount: float) -> str:
    """Render 100.0 as "100" and 12.5 as "12.5"."""
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    return str(amount)

"""
Display helpers. Boundary-only: nothing here feeds back into arithmetic.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from marketcore.money._types import MoneyAmount

SYMBOLS: dict[str, str] = {
    "USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥", "CNY": "¥", "CAD": "C$",
    "AUD": "A$", "NZD": "NZ$", "CHF": "CHF", "SEK": "kr", "NOK": "kr",
    "DKK": "kr", "INR": "₹", "BRL": "R$", "MXN": "$", "RUB": "₽",
    "TRY": "₺", "ZAR": "R", "KRW": "₩", "SGD": "S$", "HKD": "HK$",
    "TWD": "NT$", "THB": "฿", "MYR": "RM", "IDR": "Rp", "PHP": "₱",
    "VND": "₫", "AED": "د.إ", "SAR": "﷼", "ILS": "₪",
}

ZERO_DECIMAL: frozenset[str] = frozenset({"JPY", "KRW", "VND", "IDR"})

COUNTRY_CURRENCY: dict[str, str] = {
    "US": "USD", "CA": "CAD", "GB": "GBP", "AU": "AUD", "NZ": "NZD",
    "EU": "EUR", "DE": "EUR", "FR": "EUR", "IT": "EUR", "ES": "EUR", "NL": "EUR",
    "BE": "EUR", "AT": "EUR", "PT": "EUR", "IE": "EUR", "GR": "EUR", "FI": "EUR",
    "JP": "JPY", "CN": "CNY", "IN": "INR", "BR": "BRL", "MX": "MXN",
    "CH": "CHF", "SE": "SEK", "NO": "NOK", "DK": "DKK", "PL": "PLN",
    "RU": "RUB", "TR": "TRY", "ZA": "ZAR", "KR": "KRW", "SG": "SGD",
    "HK": "HKD", "TW": "TWD", "TH": "THB", "MY": "MYR", "ID": "IDR",
    "PH": "PHP", "VN": "VND", "AE": "AED", "SA": "SAR", "IL": "ILS",
    "AR": "ARS", "CL": "CLP", "CO": "COP", "PE": "PEN", "CZ": "CZK",
    "HU": "HUF", "RO": "RON", "NG": "NGN", "EG": "EGP", "KE": "KES",
    "PK": "PKR", "BD": "BDT", "LK": "LKR", "NP": "NPR",
}


def format_money(amount: MoneyAmount) -> str:
    """
    Render with symbol and thousands separators.

    Example:
        format_money(MoneyAmount(123456, "USD"))  # "$1,234.56"
        format_money(MoneyAmount(123456, "JPY"))  # "¥1,235"
    """
    symbol = SYMBOLS.get(amount.currency, f"{amount.currency} ")
    if amount.currency in ZERO_DECIMAL:
        major = amount.to_decimal().quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return f"{symbol}{major:,.0f}"
    return f"{symbol}{amount.to_decimal():,.2f}"


def currency_for_country(country_code: str | None) -> str:
    """ISO country → currency. Unknown or missing codes fall back to USD."""
    if not country_code:
        return "USD"
    return COUNTRY_CURRENCY.get(country_code.upper(), "USD")


__all__ = ("SYMBOLS", "ZERO_DECIMAL", "COUNTRY_CURRENCY", "format_money", "currency_for_country")

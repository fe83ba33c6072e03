"""
Currency conversion and display formatting.
Rates are approximate and relative to USD.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Optional

from priceglass.models.country import Country
from priceglass.normalizers.pricing import parse_price_value

EXCHANGE_RATES = MappingProxyType({
    "USD": 1.00,
    "EUR": 0.92,
    "GBP": 0.78,
    "JPY": 110.21,
    "AUD": 1.53,
    "CAD": 1.36,
    "CHF": 0.89,
    "CNY": 6.47,
    "HKD": 7.77,
    "NZD": 1.65,
    "SEK": 10.52,
    "KRW": 1186.45,
    "SGD": 1.34,
    "NOK": 10.73,
    "MXN": 20.27,
    "INR": 82.95,
    "RUB": 74.53,
    "ZAR": 18.66,
    "TRY": 29.83,
    "BRL": 5.17,
    "TWD": 27.98,
    "DKK": 6.86,
    "PLN": 4.25,
    "THB": 33.28,
    "IDR": 14350.65,
    "HUF": 345.84,
    "CZK": 23.31,
    "ILS": 3.62,
    "CLP": 813.70,
    "PHP": 54.82,
    "AED": 3.67,
    "COP": 3900.57,
    "SAR": 3.75,
    "MYR": 4.61,
    "RON": 4.57,
    "NGN": 820.25,
    "BDT": 110.32,
    "PKR": 280.15,
    "VND": 24950.75,
    "EGP": 30.95,
    "PEN": 3.72,
})

# Currencies displayed without a fractional part
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW"})


def exchange_rate(currency_code: str) -> float:
    """Rate from USD, 1.0 for currencies missing from the table."""
    return EXCHANGE_RATES.get(currency_code.upper(), 1.0)


def _group(digits: str, indian: bool) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    size = 2 if indian else 3
    groups = []
    while head:
        groups.insert(0, head[-size:])
        head = head[:-size]
    return ",".join(groups + [tail])


def format_number(value: float, max_decimals: int = 2, indian: bool = False) -> str:
    """Thousands separators, up to max_decimals fractional digits, trailing zeros dropped."""
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return str(value)

    step = Decimal(1).scaleb(-max_decimals) if max_decimals > 0 else Decimal(1)
    amount = amount.quantize(step, rounding=ROUND_HALF_UP)

    sign = "-" if amount < 0 else ""
    whole, _, frac = f"{abs(amount):f}".partition(".")
    frac = frac.rstrip("0")

    text = _group(whole, indian)
    return f"{sign}{text}.{frac}" if frac else f"{sign}{text}"


def format_price(price: float, currency_symbol: str = "₹", currency_code: str = "INR") -> str:
    """
    Format a price with the currency symbol.
    INR uses lakh grouping (1,23,456.78), JPY/KRW have no decimals.
    """
    code = currency_code.upper()
    if code == "INR":
        formatted = format_number(price, 2, indian=True)
    elif code in ZERO_DECIMAL_CURRENCIES:
        formatted = format_number(price, 0)
    else:
        formatted = format_number(price, 2)
    return f"{currency_symbol}{formatted}"


def convert_price(price_text: str, country: Country, source_currency: str = "USD") -> str:
    """
    Convert a display price quoted in source_currency into the country's currency.
    Returns price_text unchanged when it holds no number.
    """
    value: Optional[float] = parse_price_value(price_text)
    if value is None:
        return price_text

    converted = value / exchange_rate(source_currency) * exchange_rate(country.currency.code)
    return format_price(converted, country.currency.symbol, country.currency.code)

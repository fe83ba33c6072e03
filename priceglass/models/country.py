"""
Country and currency reference data.
The table is built once and handed to whichever component needs it.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    name: str


@dataclass(frozen=True)
class Country:
    name: str
    code: str
    currency: Currency
    flag: str

    def to_dict(self):
        return {
            "name": self.name,
            "code": self.code,
            "currency": {
                "code": self.currency.code,
                "symbol": self.currency.symbol,
                "name": self.currency.name,
            },
            "flag": self.flag,
        }


DEFAULT_COUNTRY_CODE = "IN"

_EUR = Currency("EUR", "€", "Euro")

COUNTRIES: Tuple[Country, ...] = (
    Country("United States", "US", Currency("USD", "$", "US Dollar"), "🇺🇸"),
    Country("China", "CN", Currency("CNY", "¥", "Chinese Yuan"), "🇨🇳"),
    Country("Japan", "JP", Currency("JPY", "¥", "Japanese Yen"), "🇯🇵"),
    Country("Germany", "DE", _EUR, "🇩🇪"),
    Country("India", "IN", Currency("INR", "₹", "Indian Rupee"), "🇮🇳"),
    Country("United Kingdom", "GB", Currency("GBP", "£", "British Pound"), "🇬🇧"),
    Country("France", "FR", _EUR, "🇫🇷"),
    Country("Italy", "IT", _EUR, "🇮🇹"),
    Country("Canada", "CA", Currency("CAD", "C$", "Canadian Dollar"), "🇨🇦"),
    Country("Brazil", "BR", Currency("BRL", "R$", "Brazilian Real"), "🇧🇷"),
    Country("Russia", "RU", Currency("RUB", "₽", "Russian Ruble"), "🇷🇺"),
    Country("South Korea", "KR", Currency("KRW", "₩", "South Korean Won"), "🇰🇷"),
    Country("Australia", "AU", Currency("AUD", "A$", "Australian Dollar"), "🇦🇺"),
    Country("Mexico", "MX", Currency("MXN", "Mex$", "Mexican Peso"), "🇲🇽"),
    Country("Spain", "ES", _EUR, "🇪🇸"),
    Country("Indonesia", "ID", Currency("IDR", "Rp", "Indonesian Rupiah"), "🇮🇩"),
    Country("Netherlands", "NL", _EUR, "🇳🇱"),
    Country("Saudi Arabia", "SA", Currency("SAR", "﷼", "Saudi Riyal"), "🇸🇦"),
    Country("Turkey", "TR", Currency("TRY", "₺", "Turkish Lira"), "🇹🇷"),
    Country("Switzerland", "CH", Currency("CHF", "Fr", "Swiss Franc"), "🇨🇭"),
    Country("Taiwan", "TW", Currency("TWD", "NT$", "New Taiwan Dollar"), "🇹🇼"),
    Country("Poland", "PL", Currency("PLN", "zł", "Polish Złoty"), "🇵🇱"),
    Country("Sweden", "SE", Currency("SEK", "kr", "Swedish Krona"), "🇸🇪"),
    Country("Belgium", "BE", _EUR, "🇧🇪"),
    Country("Thailand", "TH", Currency("THB", "฿", "Thai Baht"), "🇹🇭"),
    Country("Argentina", "AR", Currency("ARS", "Arg$", "Argentine Peso"), "🇦🇷"),
    Country("Austria", "AT", _EUR, "🇦🇹"),
    Country("United Arab Emirates", "AE", Currency("AED", "د.إ", "UAE Dirham"), "🇦🇪"),
    Country("Norway", "NO", Currency("NOK", "kr", "Norwegian Krone"), "🇳🇴"),
    Country("Israel", "IL", Currency("ILS", "₪", "Israeli New Shekel"), "🇮🇱"),
    Country("Ireland", "IE", _EUR, "🇮🇪"),
    Country("Nigeria", "NG", Currency("NGN", "₦", "Nigerian Naira"), "🇳🇬"),
    Country("South Africa", "ZA", Currency("ZAR", "R", "South African Rand"), "🇿🇦"),
    Country("Hong Kong", "HK", Currency("HKD", "HK$", "Hong Kong Dollar"), "🇭🇰"),
    Country("Denmark", "DK", Currency("DKK", "kr", "Danish Krone"), "🇩🇰"),
    Country("Singapore", "SG", Currency("SGD", "S$", "Singapore Dollar"), "🇸🇬"),
    Country("Malaysia", "MY", Currency("MYR", "RM", "Malaysian Ringgit"), "🇲🇾"),
    Country("Colombia", "CO", Currency("COP", "Col$", "Colombian Peso"), "🇨🇴"),
    Country("Philippines", "PH", Currency("PHP", "₱", "Philippine Peso"), "🇵🇭"),
    Country("Pakistan", "PK", Currency("PKR", "₨", "Pakistani Rupee"), "🇵🇰"),
    Country("Chile", "CL", Currency("CLP", "CL$", "Chilean Peso"), "🇨🇱"),
    Country("Finland", "FI", _EUR, "🇫🇮"),
    Country("Bangladesh", "BD", Currency("BDT", "৳", "Bangladeshi Taka"), "🇧🇩"),
    Country("Egypt", "EG", Currency("EGP", "E£", "Egyptian Pound"), "🇪🇬"),
    Country("Vietnam", "VN", Currency("VND", "₫", "Vietnamese Đồng"), "🇻🇳"),
    Country("Portugal", "PT", _EUR, "🇵🇹"),
    Country("Czech Republic", "CZ", Currency("CZK", "Kč", "Czech Koruna"), "🇨🇿"),
    Country("Romania", "RO", Currency("RON", "lei", "Romanian Leu"), "🇷🇴"),
    Country("Peru", "PE", Currency("PEN", "S/", "Peruvian Sol"), "🇵🇪"),
    Country("New Zealand", "NZ", Currency("NZD", "NZ$", "New Zealand Dollar"), "🇳🇿"),
)


class CountryTable:
    """
    Read-only lookup over a fixed set of countries.
    resolve() always returns a country: unknown codes map to the default.
    """

    def __init__(self, countries: Tuple[Country, ...] = COUNTRIES,
                 default_code: str = DEFAULT_COUNTRY_CODE):
        self._by_code: Mapping[str, Country] = MappingProxyType(
            {country.code: country for country in countries}
        )
        if default_code not in self._by_code:
            raise ValueError(f"Default country {default_code!r} not in table")
        self.default = self._by_code[default_code]

    def __iter__(self) -> Iterator[Country]:
        return iter(self._by_code.values())

    def __len__(self) -> int:
        return len(self._by_code)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.upper() in self._by_code

    def get(self, code: Optional[str]) -> Optional[Country]:
        if not code:
            return None
        return self._by_code.get(code.strip().upper())

    def resolve(self, code: Optional[str]) -> Country:
        return self.get(code) or self.default

    def search(self, text: str) -> Tuple[Country, ...]:
        """Match on country name or currency code, case-insensitive."""
        needle = text.strip().lower()
        return tuple(
            c for c in self
            if needle in c.name.lower() or needle == c.currency.code.lower() or needle == c.code.lower()
        )

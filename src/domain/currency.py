"""Currency minor-unit lookup

Local amounts are stored in major units; the payment provider works in
integer subunits. The multiplier depends on the currency's ISO 4217
exponent and must be looked up, never assumed to be 100.
"""

from decimal import Decimal, ROUND_HALF_UP

# ISO 4217 minor-unit exponents
CURRENCY_EXPONENTS = {
    # zero-decimal currencies
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0,
    "KRW": 0, "PYG": 0, "RWF": 0, "UGX": 0, "VND": 0, "VUV": 0, "XAF": 0,
    "XOF": 0, "XPF": 0,
    # three-decimal currencies
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
    # two-decimal currencies
    "AED": 2, "AUD": 2, "BRL": 2, "CAD": 2, "CHF": 2, "CNY": 2, "EGP": 2,
    "EUR": 2, "GBP": 2, "GHS": 2, "INR": 2, "KES": 2, "MAD": 2, "MXN": 2,
    "NGN": 2, "NZD": 2, "SEK": 2, "SGD": 2, "TZS": 2, "USD": 2, "XCD": 2,
    "ZAR": 2, "ZMW": 2,
}


class UnsupportedCurrencyError(ValueError):
    """Raised for a currency code with no known minor-unit exponent"""


def currency_exponent(currency: str) -> int:
    code = (currency or "").upper()
    if code not in CURRENCY_EXPONENTS:
        raise UnsupportedCurrencyError(f"Unsupported currency: {currency!r}")
    return CURRENCY_EXPONENTS[code]


def minor_unit_multiplier(currency: str) -> int:
    """Number of subunits in one major unit (e.g. 100 for NGN, 1 for JPY)"""
    return 10 ** currency_exponent(currency)


def to_major_units(amount_minor: int, currency: str) -> Decimal:
    """Convert a provider subunit integer to a major-unit Decimal"""
    exponent = currency_exponent(currency)
    return (Decimal(amount_minor) / (10 ** exponent)).quantize(Decimal(1).scaleb(-exponent), rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert a major-unit amount to the provider's subunit integer"""
    return int((Decimal(amount) * minor_unit_multiplier(currency)).to_integral_value(rounding=ROUND_HALF_UP))


def quantize_amount(amount: Decimal, currency: str) -> Decimal:
    """Round a major-unit amount to the currency's minor unit"""
    exponent = currency_exponent(currency)
    return Decimal(amount).quantize(Decimal(1).scaleb(-exponent), rounding=ROUND_HALF_UP)

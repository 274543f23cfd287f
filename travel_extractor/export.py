"""Download serialization and currency display helpers"""
from datetime import datetime
from typing import Optional

from .schema import ExtractionResult

CURRENCY_SYMBOLS = {
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'JPY': '¥',
    'AUD': 'A$',
    'CAD': 'CA$',
    'NZD': 'NZ$',
    'CHF': 'CHF ',
    'INR': '₹',
}


def serialize_result(result: ExtractionResult) -> bytes:
    """Indented UTF-8 JSON of the published database"""
    return result.to_json(indent=2).encode('utf-8')


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"travel-database-{int(now.timestamp() * 1000)}.json"


def format_currency(amount: float, currency: str) -> str:
    """
    Format an amount for display

    Recognised 3-letter codes get a symbol (or the code) and two decimals;
    any other token falls back to "<currency> <amount>".
    """
    code = (currency or '').strip().upper()
    if len(code) != 3 or not code.isalpha():
        plain = int(amount) if float(amount).is_integer() else amount
        return f"{currency} {plain}"
    prefix = CURRENCY_SYMBOLS.get(code, f"{code} ")
    return f"{prefix}{amount:,.2f}"

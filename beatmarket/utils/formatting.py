# beatmarket/utils/formatting.py
from datetime import datetime
from typing import Optional

from beatmarket.app.config import settings

_CURRENCY_SYMBOLS = {"eur": "€", "usd": "$", "gbp": "£"}


def format_price(cents: int, locale: str = "en", currency: str = "eur") -> str:
    """
    Render an amount in minor units for humans.

    French groups thousands with U+00A0, which the base-14 PDF fonts carry.

    >>> format_price(2900, "en")
    '€29.00'
    >>> format_price(2900, "fr")
    '29,00 €'
    """
    symbol = _CURRENCY_SYMBOLS.get(currency.lower(), currency.upper() + " ")
    units, remainder = divmod(int(cents), 100)
    if locale == "fr":
        return f"{units:,}".replace(",", "\u00a0") + f",{remainder:02d} {symbol}"
    return f"{symbol}{units:,}.{remainder:02d}"


def format_date(value: datetime, locale: str = "en") -> str:
    if locale == "fr":
        return value.strftime("%d/%m/%Y")
    return value.strftime("%B %d, %Y").replace(" 0", " ")


def resolve_locale(locale: Optional[str]) -> str:
    """Normalize a requested locale to a supported one, else the default."""
    if locale and locale.lower() in settings.SUPPORTED_LOCALES:
        return locale.lower()
    return settings.DEFAULT_LOCALE

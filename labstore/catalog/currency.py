"""
Devises du catalogue et table de préférence.

L'ordre de repli (devise demandée -> devise principale -> autres devises) est une
table explicite: currency_preference() est le seul endroit où il est défini.
"""
from enum import Enum
from typing import List, Optional, Tuple

from labstore import config


class Currency(str, Enum):
    USD = "USD"
    MXN = "MXN"


def parse_currency(value) -> Optional[Currency]:
    """'usd' / 'USD ' -> Currency.USD; None si inconnue."""
    if not isinstance(value, str):
        return None
    try:
        return Currency(value.strip().upper())
    except ValueError:
        return None


def supported_currencies() -> Tuple[Currency, ...]:
    """Devises configurées (SUPPORTED_CURRENCIES), dans l'ordre, sans doublon ni inconnue."""
    order: List[Currency] = []
    for code in config.SUPPORTED_CURRENCIES:
        currency = parse_currency(code)
        if currency and currency not in order:
            order.append(currency)
    return tuple(order) or tuple(Currency)


def primary_currency() -> Currency:
    return supported_currencies()[0]


def is_supported(value) -> bool:
    currency = parse_currency(value)
    return currency is not None and currency in supported_currencies()


def currency_preference(requested=None) -> Tuple[Currency, ...]:
    """
    Ordre total de sélection d'un prix:
      1) devise demandée (si supportée)
      2) devise principale
      3) autres devises supportées, dans l'ordre configuré
    """
    supported = supported_currencies()
    order: List[Currency] = []
    wanted = parse_currency(requested)
    if wanted and wanted in supported:
        order.append(wanted)
    for currency in supported:
        if currency not in order:
            order.append(currency)
    return tuple(order)

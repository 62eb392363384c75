"""
Catalogue de prix: sélection déterministe du prix actif d'un lab.
Pas d'effet de bord; renvoie None ("aucun prix disponible") plutôt que de lever.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from labstore.catalog import repository
from labstore.catalog.currency import Currency, currency_preference, parse_currency


@dataclass(frozen=True)
class LabPrice:
    lab_id: str
    currency: Currency
    amount_cents: int


def _to_lab_price(row: dict) -> Optional[LabPrice]:
    if not row.get("is_active", True):
        return None
    currency = parse_currency(row.get("currency"))
    try:
        amount = int(row.get("amount_cents"))
    except (TypeError, ValueError):
        return None
    if currency is None or amount <= 0:
        return None
    return LabPrice(lab_id=str(row.get("lab_id") or ""), currency=currency, amount_cents=amount)


def select_price(prices: Iterable[dict], requested_currency=None) -> Optional[LabPrice]:
    """
    Choisit le prix d'UN lab parmi ses lignes de prix.
    - Parcourt currency_preference(requested_currency); la première devise active gagne.
    - Ignore les lignes inactives, à montant <= 0 ou en devise non supportée.
    """
    by_currency: Dict[Currency, LabPrice] = {}
    for row in prices or []:
        price = _to_lab_price(row)
        if price and price.currency not in by_currency:
            by_currency[price.currency] = price
    for currency in currency_preference(requested_currency):
        if currency in by_currency:
            return by_currency[currency]
    return None


def group_by_lab(prices: Iterable[dict]) -> Dict[str, List[dict]]:
    grouped: Dict[str, List[dict]] = {}
    for row in prices or []:
        grouped.setdefault(str(row.get("lab_id") or ""), []).append(row)
    return grouped


def resolve_prices(lab_ids: List[str], requested_currency=None) -> Optional[Tuple[Currency, Dict[str, LabPrice]]]:
    """
    Prix autoritatifs d'un panier, tous dans une même devise.
    - Parcourt currency_preference(requested_currency); la première devise dans
      laquelle chaque lab a un prix actif gagne.
    - None si aucune devise ne couvre tout le panier.
    """
    grouped = group_by_lab(repository.fetch_active_prices(list(lab_ids)))
    for currency in currency_preference(requested_currency):
        chosen = {lab_id: select_price(grouped.get(lab_id, []), currency) for lab_id in lab_ids}
        if all(price is not None and price.currency is currency for price in chosen.values()):
            return currency, chosen
    return None


@dataclass(frozen=True)
class LineItem:
    """Ligne payable d'une cotation: un lab et son montant en centimes."""
    lab_id: str
    lab_title: str
    amount_cents: int

    def to_dict(self) -> dict:
        return {"labId": self.lab_id, "labTitle": self.lab_title, "amountCents": self.amount_cents}

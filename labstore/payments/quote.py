"""
Constructeur de cotation: "combien sera facturé, et pour quels labs".

Lecture seule et déterministe pour des entrées et un état identiques. Sert à
l'endpoint /quote, au démarrage du checkout (cotation fraîche) et à l'accès gratuit.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from labstore.catalog import repository as catalog_repo
from labstore.catalog.currency import Currency, is_supported, parse_currency
from labstore.catalog.service import LineItem, resolve_prices
from labstore.coupons import service as coupons
from labstore.entitlements import repository as entitlements_repo
from labstore.errors import (
    CouponRejectedError,
    NotFoundError,
    NothingToPurchaseError,
    ValidationError,
)
from labstore.payments.cart import normalize_lab_ids

BASE_MESSAGE = "Base amount"


@dataclass(frozen=True)
class Quote:
    currency: Currency
    line_items: Tuple[LineItem, ...]
    original_amount_cents: int
    discount_cents: int = 0
    coupon_code: Optional[str] = None
    message: str = BASE_MESSAGE

    @property
    def final_amount_cents(self) -> int:
        return max(self.original_amount_cents - self.discount_cents, 0)

    @property
    def coupon_applied(self) -> bool:
        return self.coupon_code is not None

    @property
    def free_access(self) -> bool:
        return self.final_amount_cents == 0

    @property
    def lab_ids(self) -> Tuple[str, ...]:
        return tuple(line.lab_id for line in self.line_items)

    def to_dict(self) -> Dict[str, object]:
        return {
            "ok": True,
            "currency": self.currency.value,
            "lineItems": [line.to_dict() for line in self.line_items],
            "originalAmountCents": self.original_amount_cents,
            "discountCents": self.discount_cents,
            "finalAmountCents": self.final_amount_cents,
            "couponApplied": self.coupon_applied,
            "freeAccess": self.free_access,
            "message": self.message,
        }


def _price_lines(lab_ids: List[str], labs: Dict[str, dict], wanted: Currency) -> Tuple[Currency, List[LineItem]]:
    """
    Prix de chaque lab payable via le catalogue (tout ou rien), dans une seule devise.
    Refusée si aucune devise de la table de préférence ne couvre tout le panier.
    """
    resolved = resolve_prices(lab_ids, wanted)
    if resolved is None:
        raise ValidationError(f"No single currency prices every selected lab (requested {wanted.value})")
    currency, prices = resolved
    lines = [
        LineItem(lab_id=lab_id, lab_title=labs[lab_id].get("title") or "", amount_cents=prices[lab_id].amount_cents)
        for lab_id in lab_ids
    ]
    return currency, lines


def build_quote(
    user_id: str,
    lab_ids: Iterable[str],
    currency,
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Quote:
    """
    Étapes:
      1) normaliser les labs (ordre conservé, sans doublon) et la devise
      2) charger labs + accès actifs; exclure les labs déjà possédés
      3) prix des labs restants via le catalogue (tout ou rien, une seule devise)
      4) appliquer le cupon sur le sous-total cible
    Erreurs: ValidationError, NotFoundError, NothingToPurchaseError, CouponRejectedError.
    """
    requested = normalize_lab_ids(lab_ids)
    if not is_supported(currency):
        raise ValidationError("Invalid currency")
    wanted = parse_currency(currency)

    labs = catalog_repo.fetch_labs(list(requested))
    missing = [lab_id for lab_id in requested if lab_id not in labs]
    if missing:
        raise NotFoundError("Labs not found")

    owned = entitlements_repo.fetch_active_lab_ids(user_id, requested)
    payable = [lab_id for lab_id in requested if lab_id not in owned]
    if not payable:
        raise NothingToPurchaseError("You already have active access to every selected lab")

    quote_currency, lines = _price_lines(payable, labs, wanted)
    subtotal = sum(line.amount_cents for line in lines)
    quote = Quote(
        currency=quote_currency,
        line_items=tuple(lines),
        original_amount_cents=subtotal,
    )

    code = coupons.normalize_code(coupon_code)
    if not code:
        return quote

    coupon = coupons.find_coupon(code)
    if coupon is None:
        raise NotFoundError("Coupon not found")
    result = coupons.validate_coupon(coupon, quote.currency, lines, now=now)
    if not result.ok:
        raise CouponRejectedError(result.rejection)

    canonical = str(coupon.get("code") or code).upper()
    discount = result.discount_cents
    if subtotal - discount <= 0:
        message = f'Coupon "{canonical}" applied: free access'
    else:
        message = f'Coupon "{canonical}" applied'
    return replace(quote, discount_cents=discount, coupon_code=canonical, message=message)

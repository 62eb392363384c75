"""
Validateur de cupons.

Applique un cupon à un ensemble de lignes payables et renvoie soit un montant de remise
(en centimes), soit la raison du refus. Ne lève jamais pour une règle métier: l'appelant
choisit le message à afficher selon la règle qui a échoué.

Règles, dans l'ordre (la première qui échoue gagne):
  1) cupon actif
  2) expires_at strictement dans le futur (si renseigné)
  3) cupon restreint à un lab: le panier doit contenir ce lab (sinon "non applicable")
  4) pourcentage dans ]0, 100], remise = arrondi commercial(sous-total cible * % / 100)
  5) montant fixe > 0, même devise que la cotation, remise = min(montant, sous-total cible)
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from labstore.catalog.currency import parse_currency
from labstore.coupons import repository
from labstore.utils.money import round_half_up

logger = logging.getLogger(__name__)


class CouponRejection(str, Enum):
    INACTIVE = "Coupon is inactive"
    EXPIRED = "Coupon has expired"
    NOT_APPLICABLE = "Coupon is not applicable to this cart"
    INVALID_PERCENT = "Invalid percentage coupon"
    INVALID_AMOUNT = "Invalid fixed-amount coupon"
    CURRENCY_MISMATCH = "Fixed-amount coupon does not apply to the selected currency"


@dataclass(frozen=True)
class CouponResult:
    discount_cents: int = 0
    rejection: Optional[CouponRejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None


def normalize_code(code) -> str:
    """Forme canonique d'un code: sans espaces autour, en majuscules."""
    return code.strip().upper() if isinstance(code, str) else ""


def find_coupon(code) -> Optional[dict]:
    canonical = normalize_code(code)
    if not canonical:
        return None
    return repository.get_coupon_by_code(canonical)


def _parse_instant(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # Supabase renvoie des timestamptz; une valeur naïve est lue en UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _number(value) -> float:
    if isinstance(value, bool) or value is None:
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def target_lines(coupon: dict, line_items: Iterable) -> List:
    """Sous-ensemble des lignes que le cupon peut remiser (tout le panier si pas de lab_id)."""
    lines = list(line_items or [])
    lab_id = coupon.get("lab_id")
    if not lab_id:
        return lines
    return [line for line in lines if line.lab_id == str(lab_id)]


def validate_coupon(coupon: dict, currency, line_items: Iterable, now: Optional[datetime] = None) -> CouponResult:
    now = now or datetime.now(timezone.utc)

    if not coupon.get("is_active"):
        return CouponResult(rejection=CouponRejection.INACTIVE)

    try:
        expires_at = _parse_instant(coupon.get("expires_at"))
    except ValueError:
        # expiration illisible: le cupon est traité comme expiré
        logger.warning("coupons.service unreadable expires_at code=%s value=%r", coupon.get("code"), coupon.get("expires_at"))
        return CouponResult(rejection=CouponRejection.EXPIRED)
    if expires_at is not None and expires_at <= now:
        return CouponResult(rejection=CouponRejection.EXPIRED)

    targets = target_lines(coupon, line_items)
    if not targets:
        return CouponResult(rejection=CouponRejection.NOT_APPLICABLE)
    subtotal = sum(line.amount_cents for line in targets)

    if coupon.get("discount_type") == "percent":
        percent = _number(coupon.get("percent_off"))
        if percent <= 0 or percent > 100:
            return CouponResult(rejection=CouponRejection.INVALID_PERCENT)
        discount = round_half_up(subtotal * percent / 100)
        return CouponResult(discount_cents=min(max(discount, 0), subtotal))

    amount_off = _number(coupon.get("amount_off_cents"))
    if amount_off <= 0:
        return CouponResult(rejection=CouponRejection.INVALID_AMOUNT)
    coupon_currency = parse_currency(coupon.get("currency"))
    if coupon_currency is None or coupon_currency != parse_currency(currency):
        return CouponResult(rejection=CouponRejection.CURRENCY_MISMATCH)
    return CouponResult(discount_cents=min(round_half_up(amount_off), subtotal))

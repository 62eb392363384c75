"""
Cas d'usage 'entitlements': accès gratuit quand la cotation tombe à zéro.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from labstore.entitlements import repository
from labstore.errors import ConflictError
from labstore.payments.quote import build_quote

logger = logging.getLogger(__name__)

def grant_free_access(
    user_id: str,
    lab_ids: List[str],
    currency=None,
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, object]:
    """
    Recalcule la cotation puis, si elle est gratuite, active un accès par lab payable.
    Stripe n'est jamais appelé; une cotation payante lève ConflictError (409).
    """
    quote = build_quote(user_id, lab_ids, currency, coupon_code=coupon_code, now=now)
    if not quote.free_access:
        raise ConflictError("This purchase is not free; payment is required")

    granted = list(quote.lab_ids)
    repository.upsert_entitlements(user_id, granted, source="coupon")
    logger.info("entitlements.grant_free_access user_id=%s labs=%s coupon=%s", user_id, granted, coupon_code)
    return {"ok": True, "labIds": granted, "message": quote.message}

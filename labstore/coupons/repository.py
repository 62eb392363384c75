"""
Accès aux données 'coupons' (lecture seule pour le moteur).
"""
from typing import Optional
import logging
import labstore.infra.supabase_client as supabase_client
from labstore.errors import PersistenceError

logger = logging.getLogger(__name__)

COUPON_COLUMNS = "code, discount_type, percent_off, amount_off_cents, currency, lab_id, is_active, expires_at"

def get_coupon_by_code(code: str) -> Optional[dict]:
    """
    Récupère un cupon par son code canonique (majuscules).
    - Retourne None si aucun cupon ne correspond.
    """
    if not code:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("coupons")
            .select(COUPON_COLUMNS)
            .eq("code", code)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("coupons.repository.get_coupon_by_code failed code=%s", code)
        raise PersistenceError("Could not load coupon")
    rows = res.data or []
    return rows[0] if rows else None

"""
Accès aux données pour la feature 'payments' (table 'payment_orders').
Une commande par session Stripe: écritures en upsert sur stripe_session_id.
"""
from typing import Any, Dict, Optional
import logging
import labstore.infra.supabase_client as supabase_client
from labstore.errors import PersistenceError

logger = logging.getLogger(__name__)

# module labstore.payments.repository
def get_order(session_id: str) -> Optional[dict]:
    """
    Commande associée à une session Stripe, ou None si jamais vue.
    """
    if not session_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payment_orders")
            .select("stripe_session_id, status")
            .eq("stripe_session_id", session_id)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.get_order failed session=%s", session_id)
        raise PersistenceError("Could not load order")
    rows = res.data or []
    return rows[0] if rows else None

def upsert_order(order: Dict[str, Any]) -> Optional[dict]:
    """
    Insère ou met à jour la commande (conflit sur stripe_session_id).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payment_orders")
            .upsert([order], on_conflict="stripe_session_id")
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.upsert_order failed session=%s", order.get("stripe_session_id"))
        raise PersistenceError("Could not save order")
    rows = res.data or []
    return rows[0] if rows else None

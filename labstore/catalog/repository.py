"""
Accès aux données du catalogue (tables 'labs' et 'lab_prices').
"""
from typing import Dict, List, Optional
import logging
import labstore.infra.supabase_client as supabase_client
from labstore.errors import PersistenceError

logger = logging.getLogger(__name__)

def fetch_labs(lab_ids: List[str]) -> Dict[str, dict]:
    """
    Retourne {lab_id: {id, title}} pour les IDs demandés.
    - Les IDs inconnus sont simplement absents du dict.
    """
    if not lab_ids:
        return {}
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("labs")
            .select("id, title")
            .in_("id", [str(i) for i in lab_ids])
            .execute()
        )
    except Exception:
        logger.exception("catalog.repository.fetch_labs failed ids=%s", lab_ids)
        raise PersistenceError("Could not load labs")
    return {str(row.get("id")): row for row in (res.data or []) if row.get("id")}

def get_lab(lab_id: str) -> Optional[dict]:
    if not lab_id:
        return None
    return fetch_labs([lab_id]).get(str(lab_id))

def fetch_active_prices(lab_ids: List[str]) -> List[dict]:
    """
    Prix actifs (toutes devises) des labs demandés.
    Lignes: {lab_id, currency, amount_cents, is_active}
    """
    if not lab_ids:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("lab_prices")
            .select("lab_id, currency, amount_cents, is_active")
            .in_("lab_id", [str(i) for i in lab_ids])
            .eq("is_active", True)
            .execute()
        )
    except Exception:
        logger.exception("catalog.repository.fetch_active_prices failed ids=%s", lab_ids)
        raise PersistenceError("Could not load lab prices")
    return res.data or []

"""
Accès aux données 'lab_entitlements' (registre des accès).
Écritures en upsert sur (user_id, lab_id): rejouer une écriture est sans effet.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Set
import logging
import labstore.infra.supabase_client as supabase_client
from labstore.errors import PersistenceError

logger = logging.getLogger(__name__)

def fetch_active_lab_ids(user_id: str, lab_ids: Iterable[str]) -> Set[str]:
    """
    Sous-ensemble de lab_ids pour lesquels l'utilisateur a un accès 'active'.
    """
    ids = [str(i) for i in (lab_ids or [])]
    if not user_id or not ids:
        return set()
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("lab_entitlements")
            .select("lab_id")
            .eq("user_id", user_id)
            .eq("status", "active")
            .in_("lab_id", ids)
            .execute()
        )
    except Exception:
        logger.exception("entitlements.repository.fetch_active_lab_ids failed user_id=%s", user_id)
        raise PersistenceError("Could not load entitlements")
    return {str(row.get("lab_id")) for row in (res.data or []) if row.get("lab_id")}

def has_active_entitlement(user_id: str, lab_id: str) -> bool:
    return str(lab_id) in fetch_active_lab_ids(user_id, [lab_id])

def upsert_entitlements(user_id: str, lab_ids: List[str], source: str) -> List[dict]:
    """
    Active l'accès de l'utilisateur à chaque lab (une ligne par lab).
    - source: 'stripe' (webhook) ou 'coupon' (accès gratuit)
    """
    if not user_id or not lab_ids:
        return []
    now = datetime.now(timezone.utc).isoformat()
    rows = [
        {"user_id": user_id, "lab_id": str(lab_id), "status": "active", "source": source, "updated_at": now}
        for lab_id in lab_ids
    ]
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("lab_entitlements")
            .upsert(rows, on_conflict="user_id,lab_id")
            .execute()
        )
    except Exception:
        logger.exception("entitlements.repository.upsert_entitlements failed user_id=%s labs=%s", user_id, lab_ids)
        raise PersistenceError("Could not save entitlements")
    return res.data or []

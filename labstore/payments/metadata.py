"""
Sérialisation/désérialisation des métadonnées Stripe de la session Checkout.

Stripe n'accepte que des chaînes plates: la liste des labs y voyage en "id1,id2".
Ce module est le seul à connaître ce format; le reste du code manipule des tuples.
"""
from typing import Any, Dict, Iterable, Optional, Tuple

LAB_IDS_SEPARATOR = ","

# module labstore.payments.metadata
def join_lab_ids(lab_ids: Iterable[str]) -> str:
    return LAB_IDS_SEPARATOR.join(str(i) for i in lab_ids)

def parse_lab_ids(raw: Any) -> Tuple[str, ...]:
    """
    "a, b,,a" -> ("a", "b"): ordre conservé, sans doublon ni vide.
    Toute valeur non textuelle donne un tuple vide.
    """
    if not isinstance(raw, str) or not raw:
        return ()
    ordered = []
    for part in raw.split(LAB_IDS_SEPARATOR):
        value = part.strip()
        if value and value not in ordered:
            ordered.append(value)
    return tuple(ordered)

def make_metadata(
    *,
    user_id: str,
    lab_ids: Iterable[str],
    currency: str,
    original_amount_cents: int,
    discount_cents: int,
    final_amount_cents: int,
    coupon_code: Optional[str] = None,
) -> Dict[str, str]:
    """
    Métadonnées visibles par Stripe et renvoyées par le webhook.
    - lab_id: lab principal (premier de la liste), lab_ids: liste complète
    - coupon_code: chaîne vide si aucun cupon
    """
    ids = tuple(lab_ids)
    return {
        "user_id": user_id,
        "lab_id": ids[0] if ids else "",
        "lab_ids": join_lab_ids(ids),
        "coupon_code": coupon_code or "",
        "currency": str(currency),
        "original_amount_cents": str(int(original_amount_cents)),
        "discount_cents": str(int(discount_cents)),
        "final_amount_cents": str(int(final_amount_cents)),
    }

def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""

def extract_metadata(session: Dict[str, Any]) -> Tuple[str, Tuple[str, ...], Optional[str]]:
    """
    Extrait (user_id, lab_ids, coupon_code) d'un objet session Checkout.
    - user_id: metadata.user_id, sinon client_reference_id
    - lab_ids: metadata.lab_ids, sinon metadata.lab_id
    - coupon_code: None si vide
    """
    session = session if isinstance(session, dict) else {}
    meta = session.get("metadata") if isinstance(session.get("metadata"), dict) else {}
    user_id = _text(meta.get("user_id")) or _text(session.get("client_reference_id"))
    lab_ids = parse_lab_ids(meta.get("lab_ids"))
    if not lab_ids:
        single = _text(meta.get("lab_id")).strip()
        lab_ids = (single,) if single else ()
    coupon_code = _text(meta.get("coupon_code")) or None
    return user_id, lab_ids, coupon_code

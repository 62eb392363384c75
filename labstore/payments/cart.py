"""
Logique panier pure (pas de Stripe, pas de DB).
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

from labstore.errors import ValidationError

# module labstore.payments.cart
def normalize_lab_ids(lab_ids: Optional[Iterable[Any]] = None, lab_id: Optional[Any] = None) -> Tuple[str, ...]:
    """
    Fusionne labIds et labId en un tuple ordonné, sans doublon ni valeur vide.
    - Les valeurs non textuelles sont ignorées.
    - Soulève ValidationError (400) si aucune valeur exploitable n'est fournie.
    """
    candidates: List[Any] = list(lab_ids or [])
    if lab_id is not None:
        candidates.append(lab_id)
    ordered: List[str] = []
    for raw in candidates:
        if not isinstance(raw, str):
            continue
        value = raw.strip()
        if value and value not in ordered:
            ordered.append(value)
    if not ordered:
        raise ValidationError("labId or labIds is required")
    return tuple(ordered)

def to_line_items(*, title: str, currency: str, amount_cents: int) -> List[Dict[str, Any]]:
    """
    Ligne Stripe unique dont unit_amount est le montant final de la cotation.
    La remise est déjà appliquée: Stripe ne calcule rien.
    """
    return [{
        "quantity": 1,
        "price_data": {
            "currency": str(currency).lower(),
            "unit_amount": int(amount_cents),
            "product_data": {"name": f"Lab: {title or 'Lab'}"},
        },
    }]

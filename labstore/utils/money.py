from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

def round_half_up(value: Any) -> int:
    """
    Arrondi commercial (0.5 -> vers le haut) vers un entier de centimes.
    - round() natif arrondit au pair (2.5 -> 2): à éviter pour les montants.
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def to_cents(value: Any) -> int:
    """
    Normalise un montant en centimes entier positif.
    - Valeurs non numériques, booléennes, non finies ou négatives -> 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return 0
    if not amount.is_finite() or amount < 0:
        return 0
    return round_half_up(amount)

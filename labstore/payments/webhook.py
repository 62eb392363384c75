"""
Réconciliation des événements Stripe Checkout.

Machine d'états d'une commande: created -> paid | failed | expired; paid est terminal.
Livraison "au moins une fois", désordonnée: chaque écriture est un upsert et le
statut stocké ne redescend jamais (cf. merge_status).

Codes de retour pour Stripe:
- 200: traité, ou ignoré (type non géré, objet sans acheteur ou sans lab)
- 400: signature invalide, JSON invalide, id de session manquant (pas de rejeu utile)
- 500: échec Supabase ou configuration manquante (Stripe rejoue)
"""
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from labstore import config
from labstore.catalog.currency import is_supported
from labstore.entitlements import repository as entitlements_repo
from labstore.errors import AuthenticityError, UpstreamError, ValidationError
from labstore.payments import metadata as meta
from labstore.payments import repository
from labstore.payments.signature import verify_signature
from labstore.utils.money import to_cents

logger = logging.getLogger(__name__)

SESSION_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
SESSION_EXPIRED = "checkout.session.expired"

HANDLED_EVENTS = frozenset({SESSION_COMPLETED, ASYNC_PAYMENT_SUCCEEDED, ASYNC_PAYMENT_FAILED, SESSION_EXPIRED})


class OrderStatus(str, Enum):
    CREATED = "created"
    FAILED = "failed"
    EXPIRED = "expired"
    PAID = "paid"


# rang de finalité: un statut stocké n'est remplacé que par un rang supérieur
_FINALITY = {
    OrderStatus.CREATED: 0,
    OrderStatus.FAILED: 1,
    OrderStatus.EXPIRED: 1,
    OrderStatus.PAID: 2,
}


@dataclass(frozen=True)
class WebhookResult:
    ignored: bool = False
    session_id: Optional[str] = None
    status: Optional[OrderStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.ignored:
            return {"ok": True, "ignored": True}
        return {"ok": True}


def map_order_status(event_type: str, payment_status: Optional[str]) -> OrderStatus:
    if event_type == SESSION_EXPIRED:
        return OrderStatus.EXPIRED
    if event_type == ASYNC_PAYMENT_FAILED:
        return OrderStatus.FAILED
    if event_type == ASYNC_PAYMENT_SUCCEEDED or payment_status == "paid":
        return OrderStatus.PAID
    return OrderStatus.CREATED


def merge_status(stored: Optional[str], incoming: OrderStatus) -> OrderStatus:
    """
    Statut à écrire compte tenu du statut déjà stocké.
    - paid n'est jamais quitté; à rang égal, le statut stocké est conservé.
    """
    try:
        current = OrderStatus(stored) if stored else None
    except ValueError:
        current = None
    if current is None or _FINALITY[incoming] > _FINALITY[current]:
        return incoming
    return current


def normalize_currency(value: Any) -> str:
    code = value.strip().upper() if isinstance(value, str) else ""
    if code and is_supported(code):
        return code
    return config.WEBHOOK_FALLBACK_CURRENCY


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def reconcile_event(event: Dict[str, Any]) -> WebhookResult:
    """
    Applique un événement déjà authentifié et décodé.
    - upsert de la commande (statut fusionné avec l'existant)
    - si l'événement signale un paiement: upsert d'un accès 'active' par lab
    """
    event_type = _text(event.get("type"))
    data = event.get("data") if isinstance(event.get("data"), dict) else {}
    session = data.get("object") if isinstance(data.get("object"), dict) else None
    if session is None or event_type not in HANDLED_EVENTS:
        logger.info("payments.webhook ignored type=%s", event_type or "?")
        return WebhookResult(ignored=True)

    session_id = _text(session.get("id"))
    if not session_id:
        raise ValidationError("Missing session id")

    user_id, lab_ids, coupon_code = meta.extract_metadata(session)
    if not user_id or not lab_ids:
        logger.info("payments.webhook ignored session=%s (no user or labs)", session_id)
        return WebhookResult(ignored=True, session_id=session_id)

    event_status = map_order_status(event_type, _text(session.get("payment_status")))
    stored = repository.get_order(session_id)
    status = merge_status((stored or {}).get("status"), event_status)

    raw_meta = session.get("metadata") if isinstance(session.get("metadata"), dict) else {}
    now = datetime.now(timezone.utc).isoformat()
    repository.upsert_order({
        "stripe_session_id": session_id,
        "stripe_payment_intent_id": _text(session.get("payment_intent")) or None,
        "user_id": user_id,
        "lab_id": lab_ids[0],
        "amount_cents": to_cents(session.get("amount_total")),
        "currency": normalize_currency(session.get("currency")),
        "coupon_code": coupon_code,
        "status": status.value,
        "source": "stripe",
        "metadata": {**raw_meta, "lab_ids": meta.join_lab_ids(lab_ids), "lab_count": len(lab_ids)},
        "updated_at": now,
    })

    if event_status is OrderStatus.PAID:
        entitlements_repo.upsert_entitlements(user_id, list(lab_ids), source="stripe")

    logger.info(
        "payments.webhook type=%s session=%s user_id=%s labs=%s status=%s",
        event_type, session_id, user_id, len(lab_ids), status.value,
    )
    return WebhookResult(session_id=session_id, status=status)


def handle_webhook(raw_body: bytes, signature_header: Optional[str], now: Optional[float] = None) -> WebhookResult:
    """
    Point d'entrée du webhook: signature sur le corps brut, puis JSON, puis réconciliation.
    """
    if not config.STRIPE_WEBHOOK_SECRET:
        raise UpstreamError("STRIPE_WEBHOOK_SECRET is not configured")
    try:
        verify_signature(
            raw_body,
            signature_header,
            config.STRIPE_WEBHOOK_SECRET,
            tolerance=config.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
            now=time.time() if now is None else now,
        )
    except AuthenticityError as e:
        logger.warning("payments.webhook rejected signature: %s", e.message)
        raise

    try:
        event = json.loads(raw_body)
    except (UnicodeDecodeError, ValueError):
        raise ValidationError("Invalid JSON payload")
    if not isinstance(event, dict):
        raise ValidationError("Invalid JSON payload")
    return reconcile_event(event)

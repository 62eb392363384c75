"""
Initiation d'une session Stripe Checkout à partir d'une cotation fraîche.

Le montant envoyé à Stripe est toujours le montant final de la cotation (remise
déjà déduite); une cotation gratuite passe par l'accès gratuit, jamais par une
session à 0.
"""
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote as urlquote

from labstore import config
from labstore.catalog import repository as catalog_repo
from labstore.catalog.currency import primary_currency
from labstore.entitlements import repository as entitlements_repo
from labstore.errors import ConflictError, NotFoundError, ValidationError
from labstore.payments import cart
from labstore.payments import metadata as meta
from labstore.payments import stripe_client
from labstore.payments.quote import build_quote

logger = logging.getLogger(__name__)


def checkout_urls(base_url: str, lab_id: str) -> Tuple[str, str]:
    """URLs de retour (succès, annulation) pour un lab, à partir de APP_URL ou de l'URL de la requête."""
    base = (config.APP_URL or base_url or "").rstrip("/")
    lab = urlquote(str(lab_id), safe="")
    success = config.CHECKOUT_SUCCESS_PATH.format(lab_id=lab)
    cancel = config.CHECKOUT_CANCEL_PATH.format(lab_id=lab)
    return f"{base}{success}", f"{base}{cancel}"


def create_checkout_session(
    user: Dict[str, Any],
    lab_id: Optional[str],
    currency: Optional[str],
    coupon_code: Optional[str],
    success_url: str,
    cancel_url: str,
) -> Dict[str, Any]:
    """
    Crée la session Stripe pour un lab.
    - 400 si labId manquant, 404 si lab inconnu
    - 409 si l'acheteur a déjà accès au lab, ou si le cupon ramène le montant à zéro
    - 500 si Stripe échoue (UpstreamError)
    Retour: {url, amountCents, discountCents, currency, sessionId}
    """
    lab_id = lab_id.strip() if isinstance(lab_id, str) else ""
    if not lab_id:
        raise ValidationError("labId is required")

    lab = catalog_repo.get_lab(lab_id)
    if not lab:
        raise NotFoundError("Lab not found")

    user_id = str(user.get("id") or "")
    if entitlements_repo.has_active_entitlement(user_id, lab_id):
        raise ConflictError("You already have active access to this lab")

    quote = build_quote(user_id, [lab_id], currency or primary_currency().value, coupon_code=coupon_code)
    if quote.free_access:
        raise ConflictError("The coupon reduces the amount to zero; use free access instead")

    line_items = cart.to_line_items(
        title=lab.get("title") or "",
        currency=quote.currency.value,
        amount_cents=quote.final_amount_cents,
    )
    metadata = meta.make_metadata(
        user_id=user_id,
        lab_ids=quote.lab_ids,
        currency=quote.currency.value,
        original_amount_cents=quote.original_amount_cents,
        discount_cents=quote.discount_cents,
        final_amount_cents=quote.final_amount_cents,
        coupon_code=quote.coupon_code,
    )
    session = stripe_client.create_session(
        line_items=line_items,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
        client_reference_id=user_id,
        customer_email=user.get("email"),
    )
    logger.info(
        "payments.checkout session=%s user_id=%s lab_id=%s amount=%s %s",
        session.get("id"), user_id, lab_id, quote.final_amount_cents, quote.currency.value,
    )
    return {
        "url": session.get("url"),
        "amountCents": quote.final_amount_cents,
        "discountCents": quote.discount_cents,
        "currency": quote.currency.value,
        "sessionId": session.get("id"),
    }

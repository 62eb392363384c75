import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from labstore.utils.security import require_user
from labstore.utils.rate_limit import optional_rate_limit
from labstore.entitlements import service as entitlements_service
from labstore.payments import checkout as payments_checkout
from labstore.payments import webhook as payments_webhook
from labstore.payments.cart import normalize_lab_ids
from labstore.payments.quote import build_quote

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

class SelectionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lab_id: Optional[str] = Field(default=None, alias="labId")
    lab_ids: Optional[List[Any]] = Field(default=None, alias="labIds")
    currency: Optional[str] = None
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lab_id: Optional[str] = Field(default=None, alias="labId")
    currency: Optional[str] = None
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")

# module labstore.payments.views
@router.post("/quote", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def quote(req: SelectionRequest, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """
    Cotation d'un ensemble de labs pour l'acheteur authentifié.
    - Entrée JSON: { "labIds": [...], "labId": "...", "currency": "USD", "couponCode": "..." }
    - Exclut les labs déjà possédés; 409 si tous le sont
    - Erreurs: 400 (entrée/prix/cupon), 401, 404 (lab ou cupon inconnu), 409
    """
    lab_ids = normalize_lab_ids(req.lab_ids, req.lab_id)
    result = build_quote(user.get("id"), lab_ids, req.currency, coupon_code=req.coupon_code)
    return result.to_dict()

@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(req: CheckoutRequest, request: Request, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """
    Crée une session Checkout Stripe pour un lab.
    - Le montant vient d'une cotation recalculée ici, jamais du client
    - Réponse: {url, amountCents, discountCents, currency, sessionId}
    - Erreurs: 400, 401, 404, 409 (déjà possédé / montant nul), 500 (Stripe)
    """
    success_url, cancel_url = payments_checkout.checkout_urls(str(request.base_url), (req.lab_id or "").strip())
    return payments_checkout.create_checkout_session(
        user,
        req.lab_id,
        req.currency,
        req.coupon_code,
        success_url=success_url,
        cancel_url=cancel_url,
    )

@router.post("/free-access", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def free_access(req: SelectionRequest, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """
    Active l'accès sans paiement quand la cotation est gratuite (cupon à 100%).
    - Erreurs: comme /quote, plus 409 si un paiement reste dû
    """
    lab_ids = normalize_lab_ids(req.lab_ids, req.lab_id)
    return entitlements_service.grant_free_access(user.get("id"), list(lab_ids), req.currency, req.coupon_code)

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request) -> Dict[str, Any]:
    """
    Webhook Stripe (Checkout): authentifie le corps brut puis réconcilie commande et accès.
    - Réponses: {"ok": true} ou {"ok": true, "ignored": true}
    - Erreurs: 400 si signature/payload invalide, 500 si Supabase échoue (Stripe rejoue)
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    result = await run_in_threadpool(payments_webhook.handle_webhook, payload, sig_header)
    return result.to_dict()

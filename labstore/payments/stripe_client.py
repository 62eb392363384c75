"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import logging
from typing import Any, Dict, List, Optional

import stripe

from labstore import config
from labstore.errors import UpstreamError

logger = logging.getLogger(__name__)

# module labstore.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - Aucune relance réseau: un échec remonte tel quel à l'acheteur.
    - Soulève UpstreamError (500) si la clé est absente.
    """
    if not config.STRIPE_SECRET_KEY:
        raise UpstreamError("STRIPE_SECRET_KEY is not configured")
    stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.max_network_retries = 0
    return stripe

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    client_reference_id: str,
    customer_email: Optional[str] = None,
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - line_items: une ligne price_data au montant final (cf. cart.to_line_items)
    - metadata: cf. metadata.make_metadata
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    Erreurs: UpstreamError (500) si Stripe refuse ou est injoignable.
    """
    client = require_stripe()
    params: Dict[str, Any] = {
        "mode": mode,
        "line_items": line_items,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "client_reference_id": client_reference_id,
        "metadata": metadata,
    }
    if customer_email:
        params["customer_email"] = customer_email
    try:
        session = client.checkout.Session.create(**params)
    except stripe.StripeError:
        logger.exception("payments.stripe_client.create_session failed user_id=%s", client_reference_id)
        raise UpstreamError("Could not create Stripe session")
    # stripe retourne un StripeObject; on le traite comme dict-compatible
    data = dict(session)
    if not data.get("url"):
        logger.error("payments.stripe_client.create_session returned no url id=%s", data.get("id"))
        raise UpstreamError("Could not create Stripe session")
    return data

"""
Vérification de l'en-tête Stripe-Signature sur le corps brut du webhook.

La signature v1 (HMAC-SHA256 de "{t}.{corps brut}") est vérifiée par le SDK Stripe
(stripe.WebhookSignature), avant tout parsing JSON. L'horodatage signé doit en plus
être à moins de `tolerance` secondes de l'heure courante, dans un sens comme dans
l'autre: le SDK ne refuse que les signatures trop anciennes.
"""
import logging
import time
from typing import Optional

import stripe

from labstore.errors import AuthenticityError

logger = logging.getLogger(__name__)

# module labstore.payments.signature
def signed_timestamp(header: Optional[str]) -> Optional[int]:
    """ "t=1,v1=ab" -> 1; None si absent ou illisible. """
    for part in (header or "").split(","):
        key, sep, value = part.strip().partition("=")
        if sep and key == "t":
            try:
                return int(value)
            except ValueError:
                return None
    return None

def verify_signature(
    raw_body: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = 300,
    now: Optional[float] = None,
) -> int:
    """
    Valide la signature et retourne l'horodatage signé.
    Soulève AuthenticityError (400):
    - "Missing signature" si l'en-tête manque
    - "Invalid signature" si le SDK refuse l'en-tête (malformé, aucune v1 correspondante)
    - "Signature expired" si |now - t| > tolerance
    """
    if not header:
        raise AuthenticityError("Missing signature")
    try:
        # tolerance=None: la fenêtre (dans les deux sens) est vérifiée ci-dessous
        stripe.WebhookSignature.verify_header(raw_body, header, secret)
    except stripe.SignatureVerificationError as e:
        logger.info("payments.signature rejected by stripe: %s", e)
        raise AuthenticityError("Invalid signature")
    except UnicodeDecodeError:
        raise AuthenticityError("Invalid signature")

    timestamp = signed_timestamp(header)
    current = int(time.time() if now is None else now)
    if timestamp is None or abs(current - timestamp) > tolerance:
        raise AuthenticityError("Signature expired")
    return timestamp

"""
Module 'payments' (feature-first): point d'entrée public.
Réunit cotation, panier, metadata Stripe, client Stripe, signature webhook et repository BD.
"""

from .cart import normalize_lab_ids, to_line_items
from .quote import Quote, build_quote
from .metadata import make_metadata, parse_lab_ids, extract_metadata
from .stripe_client import require_stripe, create_session
from .checkout import checkout_urls, create_checkout_session
from .signature import signed_timestamp, verify_signature
from .repository import get_order, upsert_order
from .webhook import OrderStatus, WebhookResult, map_order_status, merge_status, reconcile_event, handle_webhook

__all__ = [
    # cart
    "normalize_lab_ids",
    "to_line_items",
    # quote
    "Quote",
    "build_quote",
    # metadata
    "make_metadata",
    "parse_lab_ids",
    "extract_metadata",
    # stripe
    "require_stripe",
    "create_session",
    "checkout_urls",
    "create_checkout_session",
    # webhook
    "verify_signature",
    "signed_timestamp",
    "OrderStatus",
    "WebhookResult",
    "map_order_status",
    "merge_status",
    "reconcile_event",
    "handle_webhook",
    # repository
    "get_order",
    "upsert_order",
]

"""
Taxonomie d'erreurs du moteur checkout.

Toutes les erreurs héritent de fastapi.HTTPException: les services les lèvent
directement et FastAPI les rend en {"detail": "<message>"} avec le bon code HTTP.
- 4xx: erreurs côté client (jamais rejouées)
- 5xx: Stripe ou Supabase indisponibles (Stripe rejoue le webhook sur 5xx)
"""
from typing import Optional
from fastapi import HTTPException


class CheckoutError(HTTPException):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.status_code, detail=message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(CheckoutError):
    status_code = 400


class CouponRejectedError(ValidationError):
    """Cupon trouvé mais refusé par une règle du validateur (inactif, expiré, ...)."""

    def __init__(self, rejection):
        super().__init__(rejection.value)
        self.rejection = rejection


class NotFoundError(CheckoutError):
    status_code = 404


class ConflictError(CheckoutError):
    status_code = 409


class NothingToPurchaseError(ConflictError):
    """L'acheteur possède déjà tous les labs demandés: pas une erreur pour l'appelant."""


class AuthenticityError(CheckoutError):
    status_code = 400


class UpstreamError(CheckoutError):
    status_code = 500


class PersistenceError(CheckoutError):
    status_code = 500

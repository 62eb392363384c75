"""
Cas d'usage Auth: identité de l'acheteur à partir d'un jeton Supabase.
La connexion elle-même (login, cookies) est gérée par le front.
"""
from typing import Any, Dict
from .repository import get_user_from_access_token as _repo_get_user_from_token

def get_user_from_token(token: str) -> Dict[str, Any]:
    """
    Retourne {id, email} pour un access token valide, {} sinon.
    """
    user = _repo_get_user_from_token(token)
    if not user.get("id"):
        return {}
    return {"id": str(user.get("id")), "email": user.get("email")}

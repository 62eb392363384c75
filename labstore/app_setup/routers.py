"""
Registre central des routers (API v1 payments, health).
"""
from fastapi import FastAPI
from labstore.payments import views as payments_views
from labstore.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    - L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    # API v1
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)

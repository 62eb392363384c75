"""
Factory d'application pour les entrypoints (ex: labstore.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
import os
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_force_https_middleware
from .security import register_security_middleware
from .exception_handlers import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base et en-têtes de sécurité
      - gestionnaires d'exceptions
      - routers (payments API, health)
      - redirection HTTPS si FORCE_HTTPS=1 (ajoutée en dernier pour s'exécuter en premier)
    """
    app = FastAPI(title="Labstore checkout", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    if os.getenv("FORCE_HTTPS") == "1":
        register_force_https_middleware(app)
    return app

"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `labstore.asgi:app`.
- Toute la configuration FastAPI est centralisée dans labstore.app_setup; ce fichier expose l'instance.
"""

from labstore.app import app

__all__ = ["app"]

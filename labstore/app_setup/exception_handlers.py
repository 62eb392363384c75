"""
Gestionnaires d'exceptions.
- HTTPException (dont labstore.errors.*): body JSON {"detail": "<message>"} et code d'origine.
- RequestValidationError (payload pydantic invalide): 400 au lieu du 422 FastAPI.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def invalid_payload(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg") or "Invalid payload"
        detail = f"Invalid payload: {field} {message}".strip() if field else "Invalid payload"
        return JSONResponse(status_code=400, content={"detail": detail})

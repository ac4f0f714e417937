"""
Middleware de logging des requêtes API
"""

import time
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("gestion_missions")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware pour logger toutes les requêtes API"""

    # Chemins à exclure du logging (pour éviter le bruit)
    EXCLUDED_PATHS = [
        "/health",
        "/favicon.ico",
    ]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        for excluded in self.EXCLUDED_PATHS:
            if request.url.path.startswith(excluded):
                return await call_next(request)

        start_time = time.time()
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else None

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"Erreur lors de la requête {method} {path}")
            raise

        response_time = int((time.time() - start_time) * 1000)

        log_level = logging.INFO if response.status_code < 400 else logging.WARNING
        logger.log(
            log_level,
            f"{method} {path} - {response.status_code} ({response_time}ms) [{client_ip}]"
        )

        return response

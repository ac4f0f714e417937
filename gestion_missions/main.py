"""
Gestion Missions - Application principale FastAPI

Point d'entrée du serveur API REST pour les ordres de mission, leur
validation, le parc automobile et le suivi des remboursements.
"""

import sys
import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from gestion_missions.config import Settings, settings, get_database_url, get_log_path
from gestion_missions.database import Database
from gestion_missions.exceptions import (
    MissionError,
    AuthError,
    PermissionDeniedError,
    PersistenceError,
)
from gestion_missions.middleware.logging import LoggingMiddleware
from gestion_missions.routers import (
    auth_router,
    missions_router,
    manager_router,
    finance_router,
    vehicules_router,
    personnel_router,
    admin_router,
)
from gestion_missions.models import User, Role
from gestion_missions.services import AuthService

# ============== Configuration du logging ==============

def setup_logging(config: Settings = settings):
    """Configure le système de logging"""
    logger = logging.getLogger("gestion_missions")
    logger.setLevel(getattr(logging, config.log_level.upper()))

    # Une seule configuration par processus (create_app peut être appelé plusieurs fois)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Handler fichier (optionnel)
    log_path = get_log_path(config)
    if log_path:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Handler console
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Réduire le bruit des autres loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logger


logger = setup_logging()


# ============== Initialisation des données ==============

async def init_default_admin(database: Database, config: Settings):
    """Crée l'administrateur par défaut si la table du personnel est vide"""
    if not config.default_admin_enabled:
        return

    async with database.session_maker() as db:
        result = await db.execute(select(User).limit(1))
        if result.scalar_one_or_none():
            return  # Des utilisateurs existent déjà

        logger.info("Création de l'utilisateur admin par défaut...")

        auth = AuthService(db, config)
        password = config.default_admin_password or AuthService.generate_temp_password()
        admin_user = await auth.create_user(
            user_id=config.default_admin_id,
            nom_et_prenom="Administrateur",
            role=Role.ADMIN,
            password=password,
        )

        logger.info(f"  Admin créé: {admin_user.id}")
        if not config.default_admin_password:
            logger.info(f"  ╔════════════════════════════════════════════════════════╗")
            logger.info(f"  ║  MOT DE PASSE TEMPORAIRE: {password:<24}    ║")
            logger.info(f"  ╚════════════════════════════════════════════════════════╝")
            logger.info(f"  IMPORTANT: Changez ce mot de passe à la première connexion!")


# ============== Cycle de vie de l'application ==============

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestionnaire du cycle de vie de l'application"""
    config: Settings = app.state.settings
    database: Database = app.state.database

    # Démarrage
    logger.info("=" * 60)
    logger.info(f"Démarrage de {config.app_name} v{config.app_version}")
    logger.info("=" * 60)

    app.state.started_at = datetime.now()

    logger.info("Initialisation de la base de données...")
    await database.init()
    await init_default_admin(database, config)
    logger.info("Base de données initialisée")

    logger.info(f"Serveur prêt sur http://{config.host}:{config.port}")
    logger.info("=" * 60)

    yield

    # Arrêt
    logger.info("Arrêt du serveur...")
    await database.close()
    logger.info("Serveur arrêté proprement")


# ============== Gestion des erreurs ==============

async def mission_error_handler(request: Request, exc: MissionError):
    """Erreurs métier: code HTTP porté par l'exception"""
    headers = None
    if isinstance(exc, AuthError) and not isinstance(exc, PermissionDeniedError):
        headers = {"WWW-Authenticate": "Bearer"}

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Erreur base de données hors transaction: message générique"""
    logger.exception(f"Erreur base de données sur {request.method} {request.url.path}")
    error = PersistenceError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})


# ============== Application FastAPI ==============

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Construit l'application avec sa propre base (une par configuration)"""
    config = app_settings or settings
    setup_logging(config)

    app = FastAPI(
        title=config.app_name,
        description="API REST pour les ordres de mission et le suivi des remboursements",
        version=config.app_version,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.database = Database(get_database_url(config), echo=config.debug)
    app.state.started_at = None

    # CORS pour permettre les requêtes depuis les clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware de logging
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(MissionError, mission_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # ============== Routes API ==============

    app.include_router(auth_router)
    app.include_router(missions_router)
    app.include_router(manager_router)
    app.include_router(finance_router)
    app.include_router(vehicules_router)
    app.include_router(personnel_router)
    app.include_router(admin_router)

    # ============== Endpoints de base ==============

    @app.get("/health")
    async def health_check():
        """Vérification de l'état du serveur"""
        uptime_seconds = _uptime_seconds(app)
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": uptime_seconds,
            "uptime_formatted": format_uptime(uptime_seconds),
            "version": config.app_version,
        }

    @app.get("/server-info")
    async def server_info():
        """Informations sur le serveur (pour les clients)"""
        started_at = app.state.started_at
        uptime_seconds = _uptime_seconds(app)
        return {
            "name": config.app_name,
            "version": config.app_version,
            "status": "running",
            "host": config.host,
            "port": config.port,
            "started_at": started_at.isoformat() if started_at else None,
            "uptime_seconds": uptime_seconds,
            "uptime_formatted": format_uptime(uptime_seconds),
        }

    return app


def _uptime_seconds(app: FastAPI) -> int:
    started_at = app.state.started_at
    if not started_at:
        return 0
    return int((datetime.now() - started_at).total_seconds())


def format_uptime(seconds: int) -> str:
    """Formate une durée en secondes en format lisible"""
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    parts = []
    if days > 0:
        parts.append(f"{days}j")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")

    return " ".join(parts)


app = create_app()


# ============== Point d'entrée ==============

def main():
    """Point d'entrée pour lancer le serveur"""
    import uvicorn

    uvicorn.run(
        "gestion_missions.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

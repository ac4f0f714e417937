"""
Configuration du serveur Gestion Missions
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
import secrets


class Settings(BaseSettings):
    """Configuration principale du serveur"""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="GESTION_MISSIONS_")

    # Serveur
    app_name: str = "Gestion Missions"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8010
    debug: bool = False
    cors_origins: List[str] = ["*"]

    # Base de données
    database_path: str = "./data/missions.db"

    # Sécurité
    secret_key: str = secrets.token_urlsafe(32)
    access_token_expire_minutes: int = 60  # 1 heure
    bcrypt_rounds: int = 12

    # Admin par défaut (utilisé uniquement à l'initialisation)
    default_admin_enabled: bool = True
    default_admin_id: str = "ADMIN"
    default_admin_password: Optional[str] = None

    # Logs
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    log_file: Optional[str] = "./logs/server.log"


# Instance globale de configuration
settings = Settings()


def get_database_url(config: Settings = settings) -> str:
    """Retourne l'URL de connexion SQLite"""
    db_path = Path(config.database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{db_path}"


def get_log_path(config: Settings = settings) -> Optional[Path]:
    """Retourne le chemin du fichier de logs (None si désactivé)"""
    if not config.log_file:
        return None
    log_path = Path(config.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return log_path

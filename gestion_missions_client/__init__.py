"""
Client Python pour l'API Gestion Missions
"""

from gestion_missions_client.api_client import GestionMissionsClient, ApiError

__all__ = ["GestionMissionsClient", "ApiError"]

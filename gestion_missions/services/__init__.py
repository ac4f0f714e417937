"""
Services métier pour Gestion Missions
"""

from gestion_missions.services.auth_service import AuthService
from gestion_missions.services.mission_service import MissionService
from gestion_missions.services.query_service import MissionQueryService

__all__ = ["AuthService", "MissionService", "MissionQueryService"]

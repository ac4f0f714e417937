"""
Modèles SQLAlchemy pour Gestion Missions
"""

from gestion_missions.models.user import User, Role
from gestion_missions.models.vehicle import Vehicle, StatutVehicule
from gestion_missions.models.mission import (
    Mission,
    StatutMission,
    StatutRemboursement,
    MoyenTransport,
)
from gestion_missions.models.activity_log import ActivityLog

__all__ = [
    "User",
    "Role",
    "Vehicle",
    "StatutVehicule",
    "Mission",
    "StatutMission",
    "StatutRemboursement",
    "MoyenTransport",
    "ActivityLog",
]
